from .client import UploadClient
from .config import ConfigError, UploaderSettings, load_settings
from .error_handler import (
    OperationTimeoutError,
    PollTransportError,
    QuotaExhaustedError,
    QuotaProbeError,
    SubmissionError,
    UploadError,
    ValidationError,
)
from .orchestrator import UploadOrchestrator
from .poller import OperationPoller
from .quota_cache import QuotaCache
from .quota_probe import QuotaProbe
from .report import format_report
from .selector import CredentialSelector
from .submitter import AssetSubmitter
from .types import (
    Credential,
    Operation,
    OperationOutcome,
    PendingAsset,
    QuotaSnapshot,
    SubmissionRequest,
    UploadResult,
    UploadStatus,
)

__all__ = [
    "UploadClient",
    "UploadOrchestrator",
    "CredentialSelector",
    "QuotaCache",
    "QuotaProbe",
    "AssetSubmitter",
    "OperationPoller",
    "format_report",
    "load_settings",
    "UploaderSettings",
    "ConfigError",
    # Types
    "Credential",
    "Operation",
    "OperationOutcome",
    "PendingAsset",
    "QuotaSnapshot",
    "SubmissionRequest",
    "UploadResult",
    "UploadStatus",
    # Errors
    "UploadError",
    "ValidationError",
    "QuotaExhaustedError",
    "QuotaProbeError",
    "SubmissionError",
    "PollTransportError",
    "OperationTimeoutError",
]
