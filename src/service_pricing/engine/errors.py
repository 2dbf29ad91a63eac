"""
Error taxonomy for the pricing engine.

Composition isolates per-component problems on the priced line; only
missing records and rejected saves propagate as exceptions.
"""
from typing import Optional


class ServicePricingError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ServicePricingError):
    """A service option, line item, package or override does not exist."""

    def __init__(self, entity: str, key: str):
        super().__init__(f"{entity} '{key}' not found")
        self.entity = entity
        self.key = key


class InvalidReference(ServicePricingError):
    """A component or customization points at a line item absent from the catalog."""

    def __init__(self, message: str, refs: Optional[list[str]] = None):
        super().__init__(message)
        self.refs = refs or []


class IndeterminateCalculation(ServicePricingError):
    """A component is missing the data its strategy needs (coverage, quantity)."""

    def __init__(self, component_id: str, reason: str):
        super().__init__(f"Component '{component_id}': {reason}")
        self.component_id = component_id
        self.reason = reason


class ValidationError(ServicePricingError):
    """A customization delta carries invalid data (negative price, bad coverage)."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class ConflictOnSave(ServicePricingError):
    """Persisting an override failed after the single insert→update retry."""

    def __init__(self, option_id: str, organization_id: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Could not save customization of '{option_id}' for organization "
            f"'{organization_id}': {cause}"
        )
        self.option_id = option_id
        self.organization_id = organization_id
        self.cause = cause
