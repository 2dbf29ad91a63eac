"""
Option composition tests - paint job scenarios, categories, price overrides
and data-missing isolation.
"""
from decimal import Decimal

import pytest

from service_pricing.engine.errors import IndeterminateCalculation, InvalidReference, NotFound
from service_pricing.engine.models import (
    CalculationStrategy,
    CustomizationOverride,
    OverrideDelta,
    ServiceOption,
    ServiceOptionComponent,
    UNCATEGORIZED,
    money,
)
from service_pricing.engine.option_composer import compose


def test_scenario_a_standard_paint_job(engine):
    """Coverage paint plus per-unit labor at 500 sqft."""
    breakdown = engine.compose('opt-paint', Decimal('500'), 'org-1')
    lines = {line.component_id: line for line in breakdown.lines}

    assert money(lines['paint'].total) == Decimal('64.29')
    assert lines['labor'].total == Decimal('1500')
    assert money(breakdown.total) == Decimal('1564.29')
    assert breakdown.has_override is False
    assert breakdown.display_name == 'Standard Paint Job'


def test_scenario_b_override_removes_labor_adds_primer(engine):
    engine.save_override('opt-paint', 'org-1', OverrideDelta(
        removed_component_ids={'labor'},
        added_components=[ServiceOptionComponent(
            id='', line_item_ref='li-primer', quantity=Decimal('1'), strategy=CalculationStrategy.FIXED,
        )],
    ))

    breakdown = engine.compose('opt-paint', Decimal('500'), 'org-1')

    assert money(breakdown.total) == Decimal('144.29')
    assert [line.source for line in breakdown.lines] == ['base', 'added']
    assert breakdown.has_override is True


def test_override_only_applies_to_its_organization(engine):
    engine.save_override('opt-paint', 'org-1', OverrideDelta(removed_component_ids={'labor'}))

    other = engine.compose('opt-paint', Decimal('500'), 'org-2')
    base = engine.compose('opt-paint', Decimal('500'))

    assert money(other.total) == money(base.total) == Decimal('1564.29')


def test_category_subtotals_ordered_and_summed(engine):
    breakdown = engine.compose('opt-paint', Decimal('500'), None)

    assert list(breakdown.category_subtotals) == ['labor', 'material']
    assert sum(breakdown.category_subtotals.values()) == breakdown.total


def test_unrecognized_category_lands_in_uncategorized(line_items):
    option = ServiceOption(
        id='opt-demo', name='Demo', unit='room',
        base_components=(
            ServiceOptionComponent(id='haul', line_item_ref='li-haul', quantity=Decimal('2'), strategy=CalculationStrategy.FIXED),
            ServiceOptionComponent(id='primer', line_item_ref='li-primer', quantity=Decimal('1'), strategy=CalculationStrategy.MULTIPLY),
        ),
    )
    breakdown = compose(option, Decimal('3'), line_items)

    assert breakdown.category_subtotals == {'material': Decimal('240'), UNCATEGORIZED: Decimal('60')}
    assert breakdown.total == Decimal('300')


def test_price_override_replaces_total_but_not_subtotals(engine):
    engine.save_override('opt-paint', 'org-1', OverrideDelta(price_override=Decimal('1499.00')))

    breakdown = engine.compose('opt-paint', Decimal('500'), 'org-1')

    assert breakdown.total == Decimal('1499.00')
    assert money(breakdown.items_total) == Decimal('1564.29')
    assert money(sum(breakdown.category_subtotals.values())) == Decimal('1564.29')
    assert any('differs from item total' in w for w in breakdown.warnings)


def test_indeterminate_line_does_not_abort_composition(line_items):
    option = ServiceOption(
        id='opt-broken', name='Broken', unit='sqft',
        base_components=(
            ServiceOptionComponent(id='paint', line_item_ref='li-paint', quantity=Decimal('1'),
                                   strategy=CalculationStrategy.COVERAGE, coverage_amount=None),
            ServiceOptionComponent(id='labor', line_item_ref='li-labor', quantity=Decimal('0.05'),
                                   strategy=CalculationStrategy.PER_UNIT),
        ),
    )
    breakdown = compose(option, Decimal('500'), line_items)
    paint = breakdown.lines[0]

    assert paint.indeterminate is True
    assert paint.total == Decimal('0')
    assert paint.quantity_display == 'data missing'
    assert breakdown.total == Decimal('1500')
    assert breakdown.has_indeterminate
    with pytest.raises(IndeterminateCalculation):
        breakdown.raise_if_indeterminate()


def test_dangling_line_item_reference_raises(line_items):
    option = ServiceOption(
        id='opt-dangling', name='Dangling', unit='each',
        base_components=(
            ServiceOptionComponent(id='x', line_item_ref='li-gone', quantity=Decimal('1')),
        ),
    )
    with pytest.raises(InvalidReference):
        compose(option, Decimal('1'), line_items)


def test_negative_quantity_is_rejected(engine):
    with pytest.raises(ValueError):
        engine.compose('opt-paint', Decimal('-1'))


def test_missing_option_raises_not_found(engine):
    with pytest.raises(NotFound):
        engine.compose('opt-nope', Decimal('1'))


def test_override_name_becomes_display_name(paint_option, line_items):
    override = CustomizationOverride(base_option_id='opt-paint', organization_id='org-1', name='Acme Paint Special')
    breakdown = compose(paint_option, Decimal('100'), line_items, override=override)

    assert breakdown.display_name == 'Acme Paint Special'
    assert breakdown.organization_id == 'org-1'


def test_trace_explains_each_line(engine):
    breakdown = engine.compose('opt-paint', Decimal('500'))

    assert 'Standard Paint Job' in breakdown.get_trace_text()
    for line in breakdown.lines:
        assert 'Strategy' in line.get_trace_text()


def test_preview_does_not_persist(engine, store):
    delta = OverrideDelta(removed_component_ids={'labor'})
    preview = engine.preview_override('opt-paint', 'org-1', delta, Decimal('500'))

    assert money(preview.total) == Decimal('64.29')
    assert store.fetch_override('opt-paint', 'org-1') is None
