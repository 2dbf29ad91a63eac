"""
Override persistence tests - validation, atomic upsert and round trips.
"""
from decimal import Decimal

import pytest

from service_pricing.engine.errors import ConflictOnSave, InvalidReference, NotFound, ValidationError
from service_pricing.engine.models import CalculationStrategy, OverrideDelta, ServiceOptionComponent
from service_pricing.engine.override_resolver import resolve_override
from service_pricing.store import InMemoryCatalogStore, StoreError
from service_pricing.store.base import DuplicateOverrideError


def added(ref='li-primer', **kwargs):
    defaults = dict(id='', line_item_ref=ref, quantity=Decimal('1'), strategy=CalculationStrategy.FIXED)
    defaults.update(kwargs)
    return ServiceOptionComponent(**defaults)


def test_save_then_fetch_round_trip(engine, store, paint_option):
    """The stored override resolves to the same effective set as the submitted delta."""
    delta = OverrideDelta(
        swapped_components={'paint': 'li-paint-premium'},
        removed_component_ids={'labor'},
        added_components=[added()],
        price_override=Decimal('250'),
        name='Premium Touch-Up',
    )
    saved = engine.save_override('opt-paint', 'org-1', delta)
    fetched = store.fetch_override('opt-paint', 'org-1')

    expected = resolve_override(paint_option, delta.to_override('opt-paint', 'org-1'))
    actual = resolve_override(paint_option, fetched)

    assert saved.created is True
    assert actual.components == expected.components
    assert fetched.price_override == Decimal('250')
    assert fetched.name == 'Premium Touch-Up'
    assert engine.overrides.effective_component_ids('opt-paint', 'org-1') == actual.component_ids


def test_resave_replaces_existing_override(engine, store):
    engine.save_override('opt-paint', 'org-1', OverrideDelta(removed_component_ids={'labor'}))
    second = engine.save_override('opt-paint', 'org-1', OverrideDelta(price_override=Decimal('99')))

    overrides = store.list_overrides('org-1')
    assert second.created is False
    assert len(overrides) == 1
    assert overrides[0].removed_component_ids == frozenset()
    assert overrides[0].price_override == Decimal('99')


def test_unknown_swap_target_rejects_whole_save(engine, store):
    delta = OverrideDelta(
        swapped_components={'paint': 'li-does-not-exist'},
        added_components=[added()],
    )
    with pytest.raises(InvalidReference) as exc:
        engine.save_override('opt-paint', 'org-1', delta)

    assert exc.value.refs == ['li-does-not-exist']
    assert store.fetch_override('opt-paint', 'org-1') is None


def test_unknown_added_line_item_is_rejected(engine, store):
    with pytest.raises(InvalidReference):
        engine.save_override('opt-paint', 'org-1', OverrideDelta(added_components=[added('li-ghost')]))
    assert store.list_overrides() == []


def test_invalid_data_is_rejected(engine, store):
    delta = OverrideDelta(
        price_override=Decimal('-5'),
        added_components=[added('li-paint', strategy=CalculationStrategy.COVERAGE, coverage_amount=None)],
    )
    with pytest.raises(ValidationError) as exc:
        engine.save_override('opt-paint', 'org-1', delta)

    assert len(exc.value.errors) == 2
    assert store.list_overrides() == []


def test_price_override_is_stored_as_given(engine, store):
    engine.save_override('opt-paint', 'org-1', OverrideDelta(price_override=Decimal('0')))
    assert store.fetch_override('opt-paint', 'org-1').price_override == Decimal('0')


def test_warnings_do_not_block_save(engine):
    saved = engine.save_override('opt-paint', 'org-1', OverrideDelta(
        removed_component_ids={'labor', 'ghost'},
        swapped_components={'labor': 'li-sprayer'},
    ))

    assert len(saved.warnings) == 2
    assert engine.overrides.effective_component_ids('opt-paint', 'org-1') == ['paint']


def test_missing_option_raises_not_found(engine):
    with pytest.raises(NotFound):
        engine.save_override('opt-missing', 'org-1', OverrideDelta())


class RacingStore(InMemoryCatalogStore):
    """Insert always loses the race; update fails a configurable number of times."""

    def __init__(self, *args, update_failures=0, **kwargs):
        super().__init__(*args, **kwargs)
        self.update_failures = update_failures
        self.insert_calls = 0
        self.update_calls = 0

    def insert_override(self, override):
        self.insert_calls += 1
        raise DuplicateOverrideError(*override.key)

    def update_override(self, override):
        self.update_calls += 1
        if self.update_failures:
            self.update_failures -= 1
            raise StoreError("row locked")
        self._overrides[override.key] = override
        return override


def racing_engine(store, **kwargs):
    from service_pricing.engine import ServicePricingEngine

    racing = RacingStore(
        line_items=store.line_items.values(),
        options=store.options.values(),
        packages=store.packages.values(),
        **kwargs,
    )
    return ServicePricingEngine(racing), racing


def test_duplicate_insert_retries_as_update_once(store):
    engine, racing = racing_engine(store)
    saved = engine.save_override('opt-paint', 'org-1', OverrideDelta(price_override=Decimal('10')))

    assert saved.created is False
    assert racing.insert_calls == 1
    assert racing.update_calls == 1
    assert racing.fetch_override('opt-paint', 'org-1').price_override == Decimal('10')


def test_second_failure_surfaces_conflict(store):
    engine, racing = racing_engine(store, update_failures=1)

    with pytest.raises(ConflictOnSave):
        engine.save_override('opt-paint', 'org-1', OverrideDelta(price_override=Decimal('10')))

    assert racing.update_calls == 1
    assert racing.fetch_override('opt-paint', 'org-1') is None


def test_delete_override_resets_to_base(engine):
    engine.save_override('opt-paint', 'org-1', OverrideDelta(removed_component_ids={'labor'}))

    assert engine.delete_override('opt-paint', 'org-1') is True
    assert engine.delete_override('opt-paint', 'org-1') is False
    assert engine.overrides.effective_component_ids('opt-paint', 'org-1') == ['paint', 'labor']


def test_store_stamps_updated_at_on_save(engine, store):
    delta = OverrideDelta(price_override=Decimal('10'))
    assert delta.to_override('opt-paint', 'org-1').updated_at is None

    saved = engine.save_override('opt-paint', 'org-1', delta)

    assert saved.override.updated_at is not None
    assert store.fetch_override('opt-paint', 'org-1').updated_at == saved.override.updated_at
