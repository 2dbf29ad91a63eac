"""Services subpackage - persistence workflows around the engine."""
from .override_service import OverrideService, SavedOverride, ValidationResult

__all__ = ['OverrideService', 'SavedOverride', 'ValidationResult']
