"""
Override resolver tests - removal/swap/add ordering and determinism.
"""
from decimal import Decimal

import pytest

from service_pricing.engine.models import CalculationStrategy, CustomizationOverride, ServiceOptionComponent
from service_pricing.engine.override_resolver import SOURCE_ADDED, SOURCE_BASE, SOURCE_SWAPPED, resolve_override


def primer(component_id=''):
    return ServiceOptionComponent(
        id=component_id, line_item_ref='li-primer', quantity=Decimal('1'), strategy=CalculationStrategy.FIXED,
    )


def override(**kwargs):
    return CustomizationOverride(base_option_id='opt-paint', organization_id='org-1', **kwargs)


def test_no_override_returns_base_components(paint_option):
    resolution = resolve_override(paint_option, None)

    assert resolution.component_ids == ['paint', 'labor']
    assert all(resolution.source_of(cid) == SOURCE_BASE for cid in resolution.component_ids)
    assert resolution.warnings == []


def test_removal_takes_precedence_over_swap(paint_option):
    """An id both removed and swapped is removed."""
    resolution = resolve_override(paint_option, override(
        removed_component_ids=frozenset({'labor'}),
        swapped_components={'labor': 'li-sprayer'},
    ))

    assert resolution.component_ids == ['paint']
    assert all(c.line_item_ref != 'li-sprayer' for c in resolution.components)
    assert any('removal wins' in w for w in resolution.warnings)


def test_swap_replaces_only_line_item(paint_option):
    resolution = resolve_override(paint_option, override(swapped_components={'paint': 'li-paint-premium'}))
    swapped = resolution.components[0]
    original = paint_option.base_components[0]

    assert swapped.id == 'paint'
    assert swapped.line_item_ref == 'li-paint-premium'
    assert swapped.quantity == original.quantity
    assert swapped.strategy == original.strategy
    assert swapped.coverage_amount == original.coverage_amount
    assert resolution.source_of('paint') == SOURCE_SWAPPED


def test_added_components_get_fresh_disjoint_ids(paint_option):
    """Added ids never collide with base ids, including removed ones."""
    resolution = resolve_override(paint_option, override(
        removed_component_ids=frozenset({'labor'}),
        added_components=[primer('labor'), primer('paint'), primer()],
    ))
    ids = resolution.component_ids

    assert len(ids) == len(set(ids)) == 4
    added = [cid for cid in ids if resolution.source_of(cid) == SOURCE_ADDED]
    assert len(added) == 3
    assert not set(added) & {'paint', 'labor'}


def test_added_components_follow_base_display_order(paint_option):
    resolution = resolve_override(paint_option, override(added_components=[primer(), primer()]))
    orders = [c.display_order for c in resolution.components]

    assert orders == sorted(orders)
    assert orders[-2:] == [3, 4]


def test_resolution_is_idempotent(paint_option):
    customization = override(
        removed_component_ids=frozenset({'labor'}),
        swapped_components={'paint': 'li-paint-premium'},
        added_components=[primer()],
    )

    first = resolve_override(paint_option, customization)
    second = resolve_override(paint_option, customization)

    assert first.components == second.components
    assert first.sources == second.sources


def test_base_option_is_not_mutated(paint_option):
    before = paint_option.base_components
    resolve_override(paint_option, override(
        removed_component_ids=frozenset({'paint'}),
        swapped_components={'labor': 'li-sprayer'},
        added_components=[primer()],
    ))

    assert paint_option.base_components == before
    assert paint_option.base_components[1].line_item_ref == 'li-labor'


def test_unknown_ids_are_reported(paint_option):
    resolution = resolve_override(paint_option, override(
        removed_component_ids=frozenset({'ghost'}),
        swapped_components={'phantom': 'li-sprayer'},
    ))

    assert resolution.component_ids == ['paint', 'labor']
    assert len(resolution.warnings) == 2


def test_override_for_other_option_is_rejected(paint_option):
    other = CustomizationOverride(base_option_id='opt-a', organization_id='org-1')
    with pytest.raises(ValueError):
        resolve_override(paint_option, other)
