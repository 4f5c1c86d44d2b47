"""
Logging setup for the recipe pipeline.

Usage:
    from recipe_pipeline.logging_utils import get_logger

    logger = get_logger(__name__)
    logger.info("Imported recipe")

Backend code logs through here; CLI output stays on print().
"""
import logging
import logging.config

from recipe_pipeline.config_loader import get_log_level

_configured = False


def build_logging_config(level: str = 'INFO') -> dict:
    """Return the dictConfig used for the package loggers."""
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'standard',
                'stream': 'ext://sys.stderr'
            }
        },
        'loggers': {
            'recipe_pipeline': {
                'handlers': ['console'],
                'level': level,
                'propagate': True
            }
        }
    }


def setup_logging(level: str = None):
    """
    Initialize logging configuration once.

    Safe to call multiple times; pass a level to reconfigure explicitly.
    """
    global _configured
    if _configured and level is None:
        return
    logging.config.dictConfig(build_logging_config(level or get_log_level()))
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for module.

    Args:
        name: Module name (use __name__)

    Returns:
        Configured logger instance
    """
    setup_logging()
    return logging.getLogger(name)
