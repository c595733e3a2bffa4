# backend/config/logging.py
import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from .settings import get_settings

settings = get_settings()

# Custom formatter with colors for console output
class ColoredFormatter(logging.Formatter):
    """Custom formatter with color coding for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        # Copy so other handlers do not see the escape codes
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)

# JSON formatter for structured logging
class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging in production."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for key in ('agent_id', 'request_id', 'duration'):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry)

def build_logging_config(log_file: Optional[str] = None) -> Dict[str, Any]:
    """Build the dictConfig mapping; file handlers are only added when a log file is set."""
    console_level = 'DEBUG' if settings.DEBUG else 'INFO'
    config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': settings.LOG_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(funcName)s(): %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'colored': {
                '()': ColoredFormatter,
                'format': settings.LOG_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'json': {
                '()': JSONFormatter
            }
        },
        'handlers': {
            'console': {
                'level': console_level,
                'class': 'logging.StreamHandler',
                'formatter': 'colored' if settings.DEBUG else 'standard',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {  # Root logger
                'handlers': ['console'],
                'level': settings.LOG_LEVEL,
            },
            'uvicorn.access': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False
            },
            'sqlalchemy.engine': {
                'handlers': ['console'],
                'level': 'INFO' if settings.DATABASE_ECHO else 'WARNING',
                'propagate': False
            },
            'api': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False
            },
            'services': {
                'handlers': ['console'],
                'level': 'DEBUG' if settings.DEBUG else 'INFO',
                'propagate': False
            },
            'repositories': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False
            },
            'fieldtrack': {
                'handlers': ['console'],
                'level': 'DEBUG' if settings.DEBUG else 'INFO',
                'propagate': False
            }
        }
    }

    if log_file:
        log_dir = os.path.dirname(log_file) or "."
        config['handlers']['file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'detailed',
            'filename': log_file,
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'encoding': 'utf8'
        }
        config['handlers']['api_file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'json' if not settings.DEBUG else 'detailed',
            'filename': os.path.join(log_dir, 'api.log'),
            'maxBytes': 20971520,  # 20MB
            'backupCount': 7,
            'encoding': 'utf8'
        }
        for name, logger_config in config['loggers'].items():
            extra = 'api_file' if name in ('api', 'uvicorn.access') else 'file'
            logger_config['handlers'].append(extra)

    return config

def setup_logging(log_file: Optional[str] = None):
    """Setup logging configuration."""
    log_file = log_file if log_file is not None else settings.LOG_FILE
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_file))

    if not settings.DEBUG:
        # Reduce noise in production
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("geopy").setLevel(logging.WARNING)

def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)

def log_api_request(request_id: str, method: str, path: str):
    """Log API request information."""
    logger = get_logger("api")
    logger.info(f"{method} {path}", extra={'request_id': request_id})

def log_api_response(request_id: str, status_code: int, duration: float):
    """Log API response information."""
    logger = get_logger("api")
    extra = {'request_id': request_id, 'duration': duration}
    logger.info(f"Response: {status_code} ({duration:.3f}s)", extra=extra)

# Performance logging decorator
def log_performance(logger_name: str = "services.performance"):
    """Decorator to log function performance."""
    def decorator(func):
        import functools
        import time

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(logger_name)
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                duration = time.perf_counter() - start_time
                logger.debug(f"{func.__name__} completed in {duration:.3f}s")
                return result
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.warning(f"{func.__name__} failed after {duration:.3f}s: {str(e)}")
                raise
        return wrapper
    return decorator

# Export commonly used functions
__all__ = [
    "setup_logging",
    "build_logging_config",
    "get_logger",
    "log_api_request",
    "log_api_response",
    "log_performance"
]
