"""
Override Resolver - layers an organization's customization over a base
service option without touching the base.

Application order is fixed:
1. Start from the base components, indexed by component id
2. Drop removed ids
3. Swap line items on the ids that survived (removal wins over swap);
   quantity, strategy and coverage data are kept
4. Append added components under fresh ids

The result is deterministic: resolving the same base and override twice
gives the same components with the same ids.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from .models import CustomizationOverride, ServiceOption, ServiceOptionComponent

logger = logging.getLogger(__name__)

SOURCE_BASE = 'base'
SOURCE_SWAPPED = 'swapped'
SOURCE_ADDED = 'added'


@dataclass
class OverrideResolution:
    """Effective component set of a (possibly customized) option."""
    option_id: str
    components: list[ServiceOptionComponent] = field(default_factory=list)
    sources: dict[str, str] = field(default_factory=dict)  # component id → base/swapped/added
    warnings: list[str] = field(default_factory=list)

    @property
    def component_ids(self) -> list[str]:
        return [c.id for c in self.components]

    def source_of(self, component_id: str) -> str:
        return self.sources.get(component_id, SOURCE_BASE)


def base_resolution(base: ServiceOption) -> OverrideResolution:
    """Effective set of an option with no customization."""
    resolution = OverrideResolution(option_id=base.id)
    seen = set()
    for component in base.base_components:
        if component.id in seen:
            resolution.warnings.append(f"Duplicate component id '{component.id}' in base option ignored")
            continue
        seen.add(component.id)
        resolution.components.append(component)
        resolution.sources[component.id] = SOURCE_BASE
    return resolution


def _fresh_id(option_id: str, ordinal: int, taken: set[str]) -> str:
    candidate = f"{option_id}:added:{ordinal}"
    counter = 1
    while candidate in taken:
        candidate = f"{option_id}:added:{ordinal}-{counter}"
        counter += 1
    return candidate


def resolve_override(base: ServiceOption, override: Optional[CustomizationOverride]) -> OverrideResolution:
    """
    Compute the effective components of ``base`` under ``override``.

    Args:
        base: Shared base option (not modified)
        override: The organization's customization, or None

    Returns:
        OverrideResolution with components in display order, the source of
        each component and warnings for ids that did not apply
    """
    resolution = base_resolution(base)
    if override is None:
        return resolution

    if override.base_option_id != base.id:
        raise ValueError(
            f"Override for option '{override.base_option_id}' applied to option '{base.id}'"
        )

    base_ids = set(resolution.sources)
    index = {c.id: c for c in resolution.components}

    # 1. Removals
    for component_id in sorted(override.removed_component_ids):
        if component_id in index:
            del index[component_id]
            del resolution.sources[component_id]
        else:
            resolution.warnings.append(f"Removed component '{component_id}' is not part of option '{base.id}'")

    # 2. Swaps on what survived
    for component_id, new_ref in sorted(override.swapped_components.items()):
        if component_id in override.removed_component_ids:
            resolution.warnings.append(f"Component '{component_id}' is both removed and swapped; removal wins")
            continue
        if component_id not in index:
            resolution.warnings.append(f"Swapped component '{component_id}' is not part of option '{base.id}'")
            continue
        if index[component_id].line_item_ref == new_ref:
            continue
        index[component_id] = index[component_id].with_line_item(new_ref)
        resolution.sources[component_id] = SOURCE_SWAPPED

    resolution.components = list(index.values())

    # 3. Additions under ids disjoint from every base id (removed ones included)
    taken = set(base_ids)
    next_order = max((c.display_order for c in resolution.components), default=0)
    for ordinal, added in enumerate(override.added_components, start=1):
        fresh = _fresh_id(base.id, ordinal, taken)
        taken.add(fresh)
        component = added.with_id(fresh)
        if not component.display_order:
            next_order += 1
            component = replace(component, display_order=next_order)
        resolution.components.append(component)
        resolution.sources[fresh] = SOURCE_ADDED

    for warning in resolution.warnings:
        logger.warning("Override %s/%s: %s", override.base_option_id, override.organization_id, warning)

    return resolution
