# Core module - configuration, logging and the export database
from newsscraper.core.config import Settings, get_settings
from newsscraper.core.database import Base, Database, database
from newsscraper.core.logging import configure_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "Database",
    "database",
    # Logging
    "configure_logging",
]
