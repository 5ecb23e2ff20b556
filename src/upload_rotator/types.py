# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Type definitions for the upload pipeline.

This module contains the dataclasses passed between the quota cache,
credential selector, submitter, poller and orchestrator.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import AsyncContextManager, Callable, List, Optional, Sequence, Union

from .constants import DEFAULT_DESCRIPTION
from .error_handler import mask_credential


# Sentinel used for "no asset id" in results and reports
NO_ASSET_ID = "-"

# Sentinel for quota values the provider did not (or could not) report
UNKNOWN_UNITS = -1


# =============================================================================
# ENUMS
# =============================================================================


class UploadStatus(str, Enum):
    """Terminal outcome of one asset upload."""

    SUCCESS = "success"  # Operation completed, label carries moderation state
    REJECTED = "rejected"  # Not a media type we upload, nothing consumed
    FAILED = "failed"  # Exhausted, staging error or retries used up


# =============================================================================
# CREDENTIAL TYPES
# =============================================================================


@dataclass(frozen=True)
class Credential:
    """
    An API key granting quota-limited access to the upload service.

    Credentials are ordered by ascending priority (lower = tried first).
    """

    key: str = field(repr=False)
    name: str
    priority: int = 999  # Lower = higher priority

    @property
    def masked_key(self) -> str:
        return mask_credential(self.key)


def sort_credentials(credentials: Sequence[Credential]) -> List[Credential]:
    """
    Return credentials in fallback order.

    Priority first, then name, then original load order, so two keys
    sharing a priority are still tried in a deterministic sequence.
    """
    indexed = list(enumerate(credentials))
    indexed.sort(key=lambda item: (item[1].priority, item[1].name, item[0]))
    return [cred for _, cred in indexed]


# =============================================================================
# QUOTA TYPES
# =============================================================================


@dataclass(frozen=True)
class QuotaSnapshot:
    """
    Last known quota state for a credential.

    remaining/capacity are -1 when the provider could not be queried;
    such a snapshot is treated as "assume available".
    """

    remaining: int
    capacity: int
    valid_until: float  # Timestamp after which the snapshot is stale

    @property
    def is_unknown(self) -> bool:
        return self.remaining == UNKNOWN_UNITS

    @property
    def is_exhausted(self) -> bool:
        return self.remaining == 0

    def is_fresh(self, now: Optional[float] = None) -> bool:
        """True while the snapshot is inside its freshness window."""
        if now is None:
            now = time.time()
        return now < self.valid_until

    @classmethod
    def unknown(cls, valid_until: float) -> "QuotaSnapshot":
        """Fail-open snapshot used when the quota endpoint is unreachable."""
        return cls(
            remaining=UNKNOWN_UNITS,
            capacity=UNKNOWN_UNITS,
            valid_until=valid_until,
        )


# =============================================================================
# SUBMISSION TYPES
# =============================================================================


@dataclass
class SubmissionRequest:
    """
    A single asset ready to be uploaded.

    payload is either the raw bytes or a path to a staged temp file.
    """

    payload: Union[bytes, Path]
    display_name: str
    owner_context: int  # Creator group id
    description: str = DEFAULT_DESCRIPTION


@dataclass(frozen=True)
class Operation:
    """Handle for a remote asynchronous processing job."""

    id: str
    credential: Credential


@dataclass(frozen=True)
class OperationOutcome:
    """Terminal data extracted from a completed operation."""

    asset_id: str = NO_ASSET_ID
    state: str = "UNKNOWN"


# =============================================================================
# ASSET / RESULT TYPES
# =============================================================================


@dataclass
class PendingAsset:
    """
    An asset handed over by the chat collaborator.

    stage() returns an async context manager that yields the payload
    (bytes or a temp file path) and releases it on exit.
    """

    name: str
    content_type: Optional[str]
    stage: Callable[[], AsyncContextManager[Union[bytes, Path]]]

    @property
    def display_name(self) -> str:
        """Filename without its extension."""
        return Path(self.name).stem or self.name


@dataclass(frozen=True)
class UploadResult:
    """Per-asset result record aggregated into the batch report."""

    asset_name: str
    status: UploadStatus
    label: str
    asset_id: str = NO_ASSET_ID
    credential_name: Optional[str] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == UploadStatus.SUCCESS
