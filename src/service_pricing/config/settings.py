"""
Centralized settings and path configuration for the service pricing engine.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file (src/service_pricing/config)
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Catalog data directory (CSV exports of the catalog store)
    data_dir: Path

    # Organization customizations
    overrides_path: Path

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # Display rounding for money values
    money_places: int = 2

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        data_dir = Path(os.getenv('SERVICE_PRICING_DATA_DIR', root / 'data'))
        overrides = os.getenv('SERVICE_PRICING_OVERRIDES')
        log_file = os.getenv('SERVICE_PRICING_LOG_FILE')

        return cls(
            project_root=root,
            data_dir=data_dir,
            overrides_path=Path(overrides) if overrides else data_dir / 'overrides.json',
            log_level=os.getenv('SERVICE_PRICING_LOG_LEVEL', 'INFO'),
            log_file=Path(log_file) if log_file else None,
            money_places=int(os.getenv('SERVICE_PRICING_MONEY_PLACES', '2')),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
