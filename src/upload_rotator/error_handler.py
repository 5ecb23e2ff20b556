# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from typing import Optional

import httpx


# Length kept from an error message when it is shown in a result
ERROR_SUMMARY_LENGTH = 50


class UploadError(Exception):
    """Base class for all per-asset pipeline errors."""


class ValidationError(UploadError):
    """The asset is not a media type the pipeline uploads. Never retried."""


class QuotaExhaustedError(UploadError):
    """Every configured credential reported zero remaining quota."""

    def __init__(self, message: str = "All API keys have exhausted their upload quota"):
        super().__init__(message)


class QuotaProbeError(UploadError):
    """Quota endpoint failed or returned no quota data. Swallowed by the probe."""


class SubmissionError(UploadError):
    """The upload request was rejected or could not be sent."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PollTransportError(UploadError):
    """Polling an operation failed at the transport or HTTP level."""


class OperationTimeoutError(PollTransportError):
    """An operation did not finish before the poll deadline."""


def is_retryable(e: Exception) -> bool:
    """Checks if the orchestrator should spend another attempt after this error."""
    return isinstance(e, (SubmissionError, PollTransportError))


def is_http_error(e: Exception) -> bool:
    """Checks if the exception came from httpx (transport or status)."""
    return isinstance(e, (httpx.HTTPError, httpx.InvalidURL))


def describe_http_error(e: Exception, body_limit: int = 200) -> str:
    """Human readable summary of an httpx failure."""
    if isinstance(e, httpx.HTTPStatusError):
        return f"HTTP {e.response.status_code}: {e.response.text[:body_limit]}"
    return f"{type(e).__name__}: {e}" if str(e) else type(e).__name__


def mask_credential(key: str) -> str:
    """Format an API key for logs, keeping only its last 4 characters."""
    if not key:
        return "<empty>"
    if len(key) <= 4:
        return "****"
    return f"...{key[-4:]}"


def truncate_error(e: Exception, limit: int = ERROR_SUMMARY_LENGTH) -> str:
    """Bounded error message for result records."""
    message = str(e) or type(e).__name__
    return message[:limit]
