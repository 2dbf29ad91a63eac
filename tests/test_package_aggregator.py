"""
Package aggregation tests - required/optional/upgrade roll-up and tier comparison.
"""
from decimal import Decimal

import pytest

from service_pricing.engine.errors import NotFound
from service_pricing.engine.models import OverrideDelta


def test_scenario_c_required_and_optional(engine):
    totals = engine.aggregate('pkg-c')

    assert totals.required_total == Decimal('200')
    assert totals.optional_value == Decimal('100')
    assert totals.upgrade_value == Decimal('0')
    assert totals.required_item_count == 1
    assert totals.optional_item_count == 1
    assert totals.total_potential_value == Decimal('300')


def test_required_total_excludes_every_optional_item(engine, store):
    for package_id in store.packages:
        totals = engine.aggregate(package_id)
        required = sum((line.item_value for line in totals.lines if not line.is_optional), Decimal(0))
        assert totals.required_total == required


def test_optional_upgrade_counts_toward_both_upsell_values(engine):
    """opt-b flagged optional+upgrade adds to optional and upgrade, never required."""
    totals = engine.aggregate('pkg-deluxe')

    assert totals.required_total == Decimal('550')   # 2 × 200 + 3 × 50 (upgrade, not optional)
    assert totals.optional_value == Decimal('50')
    assert totals.upgrade_value == Decimal('200')
    assert totals.required_item_count == 2
    assert totals.optional_item_count == 1
    assert totals.upgrade_item_count == 2


def test_package_uses_organization_price_override(engine):
    engine.save_override('opt-a', 'org-1', OverrideDelta(price_override=Decimal('180')))

    assert engine.aggregate('pkg-c', 'org-1').required_total == Decimal('180')
    assert engine.aggregate('pkg-c').required_total == Decimal('200')


def test_compare_orders_by_level(engine):
    comparison = engine.compare_packages(['pkg-deluxe', 'pkg-c', 'pkg-basic'])

    assert [t.level for t in comparison] == ['essentials', 'complete', 'deluxe']


def test_price_summary(engine):
    summary = engine.price_summary(['opt-a', 'opt-b'])

    assert summary.option_count == 2
    assert summary.min_price == Decimal('50')
    assert summary.max_price == Decimal('200')
    assert summary.avg_price == Decimal('125')


def test_missing_package_raises_not_found(engine):
    with pytest.raises(NotFound):
        engine.aggregate('pkg-none')
