"""Engine subpackage - core pricing, customization and package logic."""
from .pricing_engine import ServicePricingEngine
from .errors import (
    ConflictOnSave,
    IndeterminateCalculation,
    InvalidReference,
    NotFound,
    ServicePricingError,
    ValidationError,
)
from .models import (
    CalculationStrategy,
    CustomizationOverride,
    LineItem,
    OverrideDelta,
    PackageTotals,
    PricedBreakdown,
    PricedLine,
    ServiceOption,
    ServiceOptionComponent,
    ServicePackage,
    ServicePackageItem,
)

__all__ = [
    'ServicePricingEngine',
    'ConflictOnSave',
    'IndeterminateCalculation',
    'InvalidReference',
    'NotFound',
    'ServicePricingError',
    'ValidationError',
    'CalculationStrategy',
    'CustomizationOverride',
    'LineItem',
    'OverrideDelta',
    'PackageTotals',
    'PricedBreakdown',
    'PricedLine',
    'ServiceOption',
    'ServiceOptionComponent',
    'ServicePackage',
    'ServicePackageItem',
]
