# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from .error_handler import mask_credential

FAILURE_LOGGER_NAME = "upload_rotator.failures"


def setup_failure_logger(log_dir: Optional[str] = None) -> logging.Logger:
    """Sets up a dedicated JSON logger for failed uploads and quota probes."""
    log_dir = log_dir or os.getenv("UPLOADER_LOG_DIR", "logs")

    logger = logging.getLogger(FAILURE_LOGGER_NAME)
    logger.setLevel(logging.INFO)

    # Keep failure records out of the console output
    logger.propagate = False

    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return logger

    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        # Read-only deployments still get the diagnostic through the library logger
        logger.addHandler(logging.NullHandler())
        return logger

    # Use a rotating file handler to keep log files from growing too large
    handler = RotatingFileHandler(
        os.path.join(log_dir, "failures.log"),
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=2,
    )

    class JsonFormatter(logging.Formatter):
        def format(self, record):
            log_record = {
                "timestamp": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "message": record.msg
                if isinstance(record.msg, dict)
                else record.getMessage(),
            }
            return json.dumps(log_record, default=str)

    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger


_failure_logger: Optional[logging.Logger] = None


def get_failure_logger() -> logging.Logger:
    global _failure_logger
    if _failure_logger is None:
        _failure_logger = setup_failure_logger()
    return _failure_logger


def _raw_response(error: Exception) -> Optional[str]:
    body = getattr(error, "body", None)
    if body:
        return body
    response = getattr(error, "response", None)
    if response is not None and hasattr(response, "text"):
        try:
            return response.text
        except Exception:
            return None
    return None


def log_failure(
    api_key: str,
    asset_name: str,
    attempt: int,
    error: Exception,
    credential_name: Optional[str] = None,
):
    """Logs a structured message for a failed upload attempt."""
    log_data = {
        "event": "upload_attempt_failed",
        "api_key_ending": mask_credential(api_key),
        "credential_name": credential_name,
        "asset_name": asset_name,
        "attempt_number": attempt,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "raw_response": _raw_response(error),
    }
    get_failure_logger().error(log_data)


def log_probe_failure(api_key: str, credential_name: str, error: Exception):
    """Logs a quota probe that fell back to "assume available"."""
    log_data = {
        "event": "quota_probe_fail_open",
        "api_key_ending": mask_credential(api_key),
        "credential_name": credential_name,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "raw_response": _raw_response(error),
    }
    get_failure_logger().warning(log_data)
