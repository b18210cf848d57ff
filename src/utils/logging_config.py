"""
Centralized logging configuration with categorized loggers.

This module provides a flexible logging system with:
- Named categories for different subsystems
- Per-category log level control
- Persistent configuration via database
"""
import logging
from typing import Dict, Optional
from pathlib import Path
from logging.handlers import TimedRotatingFileHandler

from src.utils.file_utils import get_data_dir


class LoggerCategory:
    """Named categories for application loggers"""
    CORE = "core"                  # Core services (context, offline cache, loader)
    AUTH = "auth"                  # Auth providers
    NETWORK = "network"            # HTTP and REST clients
    DATABASE = "database"          # Database operations
    PLAYBACK = "playback"          # Sequencer and viewers
    UI = "ui"                      # Windows and widgets


DEFAULT_LOG_LEVELS = {
    LoggerCategory.CORE: logging.INFO,
    LoggerCategory.AUTH: logging.INFO,
    LoggerCategory.NETWORK: logging.INFO,
    LoggerCategory.DATABASE: logging.WARNING,  # Reduce DB query noise
    LoggerCategory.PLAYBACK: logging.INFO,
    LoggerCategory.UI: logging.WARNING,  # Reduce UI noise
}


# Map module names to categories
MODULE_TO_CATEGORY = {
    # Core
    'src.core': LoggerCategory.CORE,
    'src.core.context': LoggerCategory.CORE,
    'src.core.offline_cache': LoggerCategory.CORE,
    'src.core.playlist_loader': LoggerCategory.CORE,
    'src.core.repository': LoggerCategory.CORE,
    'src.core.media_validation': LoggerCategory.CORE,

    # Auth
    'src.core.auth': LoggerCategory.AUTH,
    'src.ui.auth': LoggerCategory.AUTH,

    # Network
    'src.core.http_client': LoggerCategory.NETWORK,
    'src.core.api': LoggerCategory.NETWORK,
    'src.core.api.base': LoggerCategory.NETWORK,
    'src.core.api.firebase': LoggerCategory.NETWORK,

    # Database
    'src.core.database': LoggerCategory.DATABASE,

    # Playback
    'src.core.sequencer': LoggerCategory.PLAYBACK,
    'src.ui.player': LoggerCategory.PLAYBACK,
    'src.ui.video': LoggerCategory.PLAYBACK,
    'src.ui.images': LoggerCategory.PLAYBACK,

    # UI
    'src.ui': LoggerCategory.UI,
    'src.ui.common': LoggerCategory.UI,
    'src.ui.dashboard': LoggerCategory.UI,
    'src.ui.main_window': LoggerCategory.UI,
    'src.ui.widgets': LoggerCategory.UI,
}


class LoggingManager:
    """Manages application-wide logging configuration"""

    def __init__(self, log_dir: Optional[Path] = None, db_manager=None):
        """
        Initialize logging manager.

        Args:
            log_dir: Directory for log files
            db_manager: Database manager for persistent configuration
        """
        self.log_dir = log_dir or (get_data_dir() / "logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.db_manager = db_manager
        self._category_levels: Dict[str, int] = {}
        self._load_levels_from_db()

    def _load_levels_from_db(self):
        """Load log levels from database configuration"""
        if not self.db_manager:
            self._category_levels = DEFAULT_LOG_LEVELS.copy()
            return

        for category, default_level in DEFAULT_LOG_LEVELS.items():
            config_key = f'log_level_{category}'
            level_name = self.db_manager.get_config(config_key, logging.getLevelName(default_level))
            level = logging.getLevelName(str(level_name).upper())
            self._category_levels[category] = level if isinstance(level, int) else default_level

    def attach_database(self, db_manager):
        """Reload levels once the database is available (it opens after logging starts)."""
        self.db_manager = db_manager
        self._load_levels_from_db()
        for category, level in self._category_levels.items():
            self._apply_category_level(category, level)

    def get_category_level(self, category: str) -> int:
        """Get log level for a category"""
        return self._category_levels.get(category, logging.INFO)

    def set_category_level(self, category: str, level: int):
        """Set log level for a category"""
        self._category_levels[category] = level
        if self.db_manager:
            config_key = f'log_level_{category}'
            self.db_manager.set_config(config_key, logging.getLevelName(level))

        self._apply_category_level(category, level)

    def _apply_category_level(self, category: str, level: int):
        """Apply level to all loggers in a category"""
        for module_name, cat in MODULE_TO_CATEGORY.items():
            if cat == category:
                logging.getLogger(module_name).setLevel(level)

    def setup_logging(self, root_level: int = logging.INFO):
        """
        Setup application logging with categories.

        Args:
            root_level: Root logger level (default: INFO)
        """
        log_file = self.log_dir / "infinite_loop_display.log"

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # File handler with rotation
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)

        root_logger = logging.getLogger()
        root_logger.setLevel(root_level)

        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)

        root_logger.addHandler(file_handler)
        root_logger.addHandler(stream_handler)

        for category, level in self._category_levels.items():
            self._apply_category_level(category, level)

        # Silence noisy third-party loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        logging.getLogger('aiohttp').setLevel(logging.WARNING)
        logging.getLogger('asyncio').setLevel(logging.WARNING)

    def get_all_levels(self) -> Dict[str, int]:
        """Get all category log levels"""
        return self._category_levels.copy()


_logging_manager: Optional[LoggingManager] = None


def get_logging_manager(db_manager=None) -> LoggingManager:
    """Get or create the global logging manager"""
    global _logging_manager
    if _logging_manager is None:
        _logging_manager = LoggingManager(db_manager=db_manager)
    return _logging_manager


def setup_logging(db_manager=None):
    """Setup application logging (convenience function)"""
    manager = get_logging_manager(db_manager)
    manager.setup_logging()
    return manager
