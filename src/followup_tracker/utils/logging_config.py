"""
Centralized logging configuration for the follow-up tracker.
Provides component-specific loggers with separate log files.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime

from ..config import get_config


DETAILED_FORMAT = (
    '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s'
)
SIMPLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class ComponentLogger:
    """Manages component-specific logging with separate files."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None
    _to_file = False
    _debug = False

    # Component definitions with their log levels
    COMPONENTS = {
        'editor': {'level': logging.INFO, 'file': 'editor.log'},
        'repository': {'level': logging.INFO, 'file': 'repository.log'},
        'database': {'level': logging.INFO, 'file': 'database.log'},
        'api': {'level': logging.INFO, 'file': 'api.log'},
        'main': {'level': logging.INFO, 'file': 'main.log'},
        'error': {'level': logging.ERROR, 'file': 'errors.log'},  # Centralized error log
    }

    @classmethod
    def initialize(
        cls,
        log_dir: Optional[str] = None,
        debug: bool = False,
        to_file: Optional[bool] = None,
    ) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components
            to_file: Write log files. Defaults to config.app.log_to_file
        """
        if cls._initialized:
            return

        config = get_config()
        if to_file is None:
            to_file = config.app.log_to_file
        cls._debug = debug

        session_dir = datetime.now().strftime("%Y%m%d_%H%M%S")
        if to_file:
            try:
                base_dir = Path(log_dir) if log_dir else Path(config.app.log_dir)
                cls._log_dir = base_dir / session_dir
                cls._log_dir.mkdir(parents=True, exist_ok=True)

                with open(cls._log_dir / "session_info.txt", 'w', encoding='utf-8') as f:
                    f.write(f"Session started: {datetime.now().isoformat()}\n")
                    f.write(f"Debug mode: {debug}\n")
                    f.write("Config:\n")
                    f.write(f"  Database: {config.database.url}\n")
                    f.write(f"  Development mode: {config.app.is_development}\n")
                    f.write(f"  Log directory: {cls._log_dir}\n")
            except OSError as e:
                # Logging must never take the application down
                print(f"File logging unavailable, using console only: {e}", file=sys.stderr)
                cls._log_dir = None
                to_file = False
        cls._to_file = to_file

        root_level = logging.DEBUG if debug else logging.INFO
        logging.getLogger().setLevel(root_level)

        if to_file:
            unified_logger = logging.getLogger('followup.unified')
            unified_logger.handlers.clear()
            unified_logger.setLevel(root_level)
            unified_logger.propagate = False
            unified_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / 'unified.log',
                maxBytes=20 * 1024 * 1024,  # 20MB
                backupCount=3,
                encoding='utf-8'
            )
            unified_handler.setLevel(root_level)
            unified_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            unified_logger.addHandler(unified_handler)
            cls._loggers['unified'] = unified_logger

        for component_name, component_config in cls.COMPONENTS.items():
            level = logging.DEBUG if debug else component_config['level']
            cls._build_logger(component_name, level, component_config['file'])

        # Mark as initialized before logging to avoid recursion
        cls._initialized = True

        main_logger = cls._loggers.get('main')
        if main_logger:
            main_logger.info("=" * 80)
            main_logger.info("Follow-up Tracker Logging System Initialized")
            main_logger.info(f"Session: {session_dir}")
            main_logger.info(f"Log directory: {cls._log_dir}")
            main_logger.info(f"Debug mode: {debug}")
            main_logger.info("=" * 80)

    @classmethod
    def _unified_handler(cls) -> Optional[logging.Handler]:
        unified_logger = cls._loggers.get('unified')
        if unified_logger is None:
            return None
        for handler in unified_logger.handlers:
            if getattr(handler, 'baseFilename', '').endswith('unified.log'):
                return handler
        return None

    @classmethod
    def _build_logger(cls, component: str, level: int, file_name: str) -> logging.Logger:
        logger = logging.getLogger(f"followup.{component}")

        # Clear existing handlers
        logger.handlers.clear()
        logger.propagate = False
        logger.setLevel(level)

        if cls._to_file and cls._log_dir is not None:
            file_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / file_name,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            logger.addHandler(file_handler)

            unified_handler = cls._unified_handler()
            if unified_handler:
                logger.addHandler(unified_handler)

        # Console handler for errors and critical
        if component in ('error', 'main'):
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.ERROR)
            console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt='%H:%M:%S'))
            logger.addHandler(console_handler)

        if not logger.handlers:
            logger.addHandler(logging.NullHandler())

        cls._loggers[component] = logger
        return logger

    @staticmethod
    def component_for_module(module_name: str) -> str:
        """Map a module path like ``followup_tracker.editor.controller`` to a component."""
        if not module_name.startswith('followup_tracker'):
            return module_name

        parts = module_name.split('.')
        if len(parts) < 2:
            return 'main'

        package = parts[1]
        if package == 'editor':
            return 'editor'
        if package in ('repositories', 'services'):
            return 'repository'
        if package == 'db':
            return 'database'
        if package == 'api':
            return 'api'
        if package in ('main', 'launcher', 'config'):
            return 'main'
        return package

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (editor, repository, database, api, ...)
                      Can also be a module path like 'followup_tracker.editor.controller'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        component = cls.component_for_module(component)

        if component not in cls._loggers:
            cls._create_component_logger(component)
        return cls._loggers.get(component, cls._loggers.get('main'))

    @classmethod
    def _create_component_logger(cls, component: str) -> None:
        """Create a component logger on-demand."""
        if not cls._initialized or component in cls._loggers:
            return

        level = logging.DEBUG if cls._debug else logging.INFO
        cls._build_logger(component, level, f'{component}.log')

    @classmethod
    def log_exception(cls, component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        if not cls._initialized:
            cls.initialize()

        component_logger = cls.get_logger(component)
        error_logger = cls._loggers.get('error')

        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        component_logger.error(f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}", exc_info=exc)
        if error_logger is not None and error_logger is not component_logger:
            error_logger.error(f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc)

    @classmethod
    def get_log_directory(cls) -> Optional[Path]:
        """Get the current log directory path."""
        return cls._log_dir

    @classmethod
    def rotate_logs(cls) -> None:
        """Manually trigger log rotation for all handlers."""
        for logger in cls._loggers.values():
            for handler in logger.handlers:
                if isinstance(handler, logging.handlers.RotatingFileHandler):
                    handler.doRollover()

    @classmethod
    def reset(cls) -> None:
        """Close handlers and return to the uninitialized state."""
        for logger in cls._loggers.values():
            for handler in list(logger.handlers):
                handler.close()
            logger.handlers.clear()
        cls._loggers = {}
        cls._initialized = False
        cls._log_dir = None
        cls._to_file = False


# Convenience functions
def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Get a logger for a module using its __name__.
    This automatically maps module paths to appropriate components.

    Example:
        logger = get_module_logger(__name__)  # Works from any module
    """
    return ComponentLogger.get_logger(module_name)


def initialize_logging(
    log_dir: Optional[str] = None, debug: bool = False, to_file: Optional[bool] = None
) -> None:
    """Initialize the logging system."""
    ComponentLogger.initialize(log_dir=log_dir, debug=debug, to_file=to_file)


def log_exception(component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)


def get_log_directory() -> Optional[Path]:
    """Get the current log directory path."""
    return ComponentLogger.get_log_directory()
