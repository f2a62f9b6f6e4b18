"""
Centralized Logging and Security Filtering
==========================================

Logging infrastructure for the Metascribe application. All diagnostic
output goes through the standard ``logging`` module, configured once at
start-up by ``setup_logging()``, and credentials never reach the log files.

Key Features:
-------------
- Sensitive Data Masking: Google API keys, Bearer tokens and any dict value
  under a credential-like key are redacted before a record is emitted.
- API Instrumentation: Helpers and a decorator for logging outgoing
  requests and responses with timing and status.
- Contextual Logging: Timestamps, module origin and line numbers.
"""

import json
import logging
import re
import sys
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional


# Project root is two levels up from this file: utils -> metascribe -> root
PROJECT_ROOT = Path(__file__).parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE_NAME = "metascribe.log"

# Sensitive field patterns to mask
SENSITIVE_FIELDS = {
    'password', 'passwd', 'pwd', 'secret', 'token', 'api_key',
    'apikey', 'auth', 'authorization', 'credentials', 'x-goog-api-key'
}

# Regex patterns for sensitive data in strings
SENSITIVE_PATTERNS = [
    (re.compile(r'AIza[0-9A-Za-z\-_]{35}'), lambda m: f"***{m.group(0)[-4:]}"),  # Google API keys
    (re.compile(r'([?&]key=)[^&\s]+'), r'\1***'),  # Keys passed as query parameters
    (re.compile(r'(Bearer\s+[a-zA-Z0-9\-._~+/]+=*)'), 'Bearer ***'),
]


def _mask_string(text: str) -> str:
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SensitiveDataFilter(logging.Filter):
    """
    Redacts credentials from log records.

    Attached to both the file and console handlers so that a key leaked
    into an exception message or a request dump is masked everywhere.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _mask_string(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = mask_sensitive_data(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    mask_sensitive_data(arg) if isinstance(arg, (dict, str)) else arg
                    for arg in record.args
                )

        return True


def mask_sensitive_data(data: Any, mask_value: str = "***") -> Any:
    """
    Recursively redact sensitive fields from nested data.

    Dict values stored under credential-like keys are replaced; keys and
    tokens keep their last four characters so they can still be told
    apart in the log. Strings are scanned with ``SENSITIVE_PATTERNS``.

    Args:
        data: dict, list, tuple, str or any other value.
        mask_value: Replacement text.

    Returns:
        A masked copy of ``data``.
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
                if ('key' in key_lower or 'token' in key_lower) and isinstance(value, str) and len(value) > 4:
                    masked[key] = f"{mask_value}{value[-4:]}"
                else:
                    masked[key] = mask_value
            else:
                masked[key] = mask_sensitive_data(value, mask_value)
        return masked

    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, mask_value) for item in data)

    if isinstance(data, str):
        return _mask_string(data)

    return data


def setup_logging(
    log_level: int = logging.DEBUG,
    console_level: int = logging.INFO,
    log_format: Optional[str] = None,
    log_dir: Optional[Path] = None,
) -> Path:
    """
    Initialize application-wide logging.

    - Root logger at DEBUG; handlers do the filtering.
    - File handler writes to ``logs/metascribe.log``, replaced on each run.
    - Console handler writes INFO and above to stdout.

    Args:
        log_level: Level for the log file.
        console_level: Level for the terminal.
        log_format: Optional custom format string.
        log_dir: Directory for the log file, defaults to ``LOG_DIR``.

    Returns:
        Path to the log file.
    """
    log_dir = Path(log_dir) if log_dir is not None else LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    if log_format is None:
        log_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
    formatter = logging.Formatter(log_format, datefmt='%Y-%m-%d %H:%M:%S')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    # mode='w' overwrites the previous run's log
    file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(console_handler)

    # urllib3 logs full request lines at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO)
    logging.getLogger("PIL").setLevel(logging.INFO)

    logging.info("=" * 80)
    logging.info(f"Metascribe Application Started - Log file: {log_file}")
    logging.info("=" * 80)

    return log_file


def shutdown_logging():
    """Flush and close all handlers. Call before application exit."""
    logging.info("Shutting down logging system...")
    for handler in list(logging.root.handlers):
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        logging.root.removeHandler(handler)


def log_config(config_name: str, config_data: Dict[str, Any], logger: Optional[logging.Logger] = None):
    """
    Log configuration settings with sensitive values masked.

    Args:
        config_name: Label for the configuration block.
        config_data: Settings to log.
        logger: Logger to use; defaults to this module's logger.
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    masked_config = mask_sensitive_data(config_data)
    logger.info(f"Configuration: {config_name}")
    logger.debug(f"{config_name} details: {json.dumps(masked_config, indent=2, default=str)}")


def log_api_call(func: Optional[Callable] = None, *, api_name: str = "API"):
    """
    Decorator that logs entry, outcome and duration of an API method.

    Exceptions are logged and re-raised unchanged. Works both as
    ``@log_api_call`` and ``@log_api_call(api_name="Gemini")``.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(f.__module__)
            func_name = f.__name__

            logger.debug(f"{api_name} call: {func_name} - kwargs: {mask_sensitive_data(kwargs)}")

            start_time = time.time()
            status = "SUCCESS"
            try:
                return f(*args, **kwargs)
            except Exception as e:
                status = "FAILED"
                logger.error(f"{api_name} {func_name} failed: {type(e).__name__}: {e}")
                raise
            finally:
                elapsed = time.time() - start_time
                logger.info(
                    f"{api_name} {func_name} completed - Status: {status}, "
                    f"Duration: {elapsed:.3f}s"
                )

        return wrapper

    if func is None:
        return decorator
    return decorator(func)


def log_api_request(
    logger: logging.Logger,
    method: str,
    endpoint: str,
    headers: Optional[Dict] = None,
    data: Optional[Any] = None,
):
    """
    Log an outgoing request with masked headers.

    The body is summarised rather than dumped: inline image payloads are
    replaced by their length.
    """
    logger.info(f"API Request: {method} {_mask_string(endpoint)}")

    if headers:
        logger.debug(f"Request headers: {mask_sensitive_data(dict(headers))}")

    if data:
        logger.debug(f"Request body: {json.dumps(_summarise_payload(data), default=str)}")


def log_api_response(
    logger: logging.Logger,
    status_code: int,
    response_data: Optional[Any] = None,
    elapsed_time: Optional[float] = None
):
    """
    Log an API response with timing information.

    Large bodies are truncated to keep the log readable.
    """
    timing_info = f" ({elapsed_time:.3f}s)" if elapsed_time else ""
    logger.info(f"API Response: {status_code}{timing_info}")

    if response_data:
        response_str = json.dumps(mask_sensitive_data(response_data), indent=2, default=str)
        if len(response_str) > 1000:
            response_str = response_str[:1000] + "\n... (truncated)"
        logger.debug(f"Response body: {response_str}")


def _summarise_payload(data: Any) -> Any:
    if isinstance(data, dict):
        summary = {}
        for key, value in data.items():
            if key == "data" and isinstance(value, str):
                summary[key] = f"<{len(value)} base64 chars>"
            else:
                summary[key] = _summarise_payload(value)
        return summary
    if isinstance(data, list):
        return [_summarise_payload(item) for item in data]
    return mask_sensitive_data(data)
