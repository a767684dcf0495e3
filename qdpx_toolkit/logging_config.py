from __future__ import annotations

"""Central logging configuration for QDPX Toolkit.

The library never configures logging by itself; applications call
:func:`setup_logging` once at start-up.
"""

import copy
import logging
import logging.config
import os
import sys

from qdpx_toolkit.config import ConfigManager

__all__ = ["setup_logging"]

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging() -> None:
    """Configure logging from the ``logging.yml`` configuration section."""
    log_dir = os.environ.get("QDPX_LOG_DIR", "logs")
    log_file = os.path.join(log_dir, "qdpx_toolkit.log")

    logging_config = copy.deepcopy(ConfigManager().get_logging_config())
    if isinstance(logging_config, dict) and logging_config.get("version"):
        try:
            handlers = logging_config.get("handlers", {})
            if "file" in handlers:
                os.makedirs(log_dir, exist_ok=True)
                handlers["file"]["filename"] = log_file
            logging.config.dictConfig(logging_config)
            logging.getLogger("qdpx_toolkit").info("===== Logging initialised from config files =====")
        except (ValueError, TypeError, AttributeError, ImportError, OSError) as exc:
            print(f"Error loading logging config: {exc}", file=sys.stderr)
            _setup_minimal_logging()
    else:
        _setup_minimal_logging()

    _apply_debug_overrides()


def _setup_minimal_logging() -> None:
    """Set up console-only logging when the configuration is unusable."""
    minimal_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {'format': _FORMAT},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': 'INFO',
            },
        },
        'root': {
            'level': 'INFO',
            'handlers': ['console'],
        },
    }
    logging.config.dictConfig(minimal_config)
    logging.getLogger("qdpx_toolkit").warning(
        "===== Logging initialised with minimal fallback (config error) ====="
    )


def _apply_debug_overrides() -> None:
    """Switch loggers named in ``QDPX_DEBUG_MODULES`` (comma separated) to DEBUG."""
    extra_modules = os.environ.get('QDPX_DEBUG_MODULES', '').strip()
    targets = [m.strip() for m in extra_modules.split(',') if m.strip()]
    for name in targets:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        # Ensure at least one handler emits DEBUG for this logger
        has_debug_handler = any(h.level <= logging.DEBUG for h in logger.handlers)
        if not has_debug_handler:
            handler = logging.StreamHandler()
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(_FORMAT))
            logger.addHandler(handler)
        logger.info("Debug override active for logger '%s'", name)
