# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Per-asset upload state machine with credential fallback.

For each asset:
1. Reject anything that is not audio without touching a credential.
2. Stage the payload (download to a temp file, etc.).
3. Up to max_retry times: select a credential, submit, poll to completion.
   Exhaustion of every credential ends the asset immediately; other
   failures wait retry_backoff seconds and select again.
4. Release the staged payload on every exit path.

Every error is turned into an UploadResult so one bad asset never stops
the rest of the batch.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from .constants import (
    ACCEPTED_MEDIA_PREFIX,
    DEFAULT_MAX_RETRY,
    DEFAULT_RECONCILE_AFTER,
    DEFAULT_RETRY_BACKOFF_SECONDS,
)
from .error_handler import (
    QuotaExhaustedError,
    UploadError,
    ValidationError,
    is_retryable,
    truncate_error,
)
from .failure_logger import log_failure
from .poller import OperationPoller
from .quota_cache import QuotaCache
from .selector import CredentialSelector
from .submitter import AssetSubmitter
from .types import (
    Credential,
    PendingAsset,
    SubmissionRequest,
    UploadResult,
    UploadStatus,
    sort_credentials,
)

lib_logger = logging.getLogger("upload_rotator")

ProgressCallback = Callable[[str], Awaitable[Any]]

REJECTED_LABEL = "NOT AN AUDIO FILE"


def validate_media_type(content_type: Optional[str]) -> None:
    """
    Raises:
        ValidationError: if the media-type hint is not audio/*
    """
    if not content_type or not content_type.lower().startswith(ACCEPTED_MEDIA_PREFIX):
        raise ValidationError(f"Unsupported media type: {content_type or 'unknown'}")


class UploadOrchestrator:
    """
    Drives assets through selection, submission and polling.

    Owns no network resources itself; the collaborators are injected so
    tests (and UploadClient) decide how they talk to the provider.
    """

    def __init__(
        self,
        credentials: Sequence[Credential],
        group_id: int,
        cache: QuotaCache,
        selector: CredentialSelector,
        submitter: AssetSubmitter,
        poller: OperationPoller,
        max_retry: int = DEFAULT_MAX_RETRY,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        reconcile_after: int = DEFAULT_RECONCILE_AFTER,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_retry < 1:
            raise ValueError("max_retry must be at least 1.")
        self.credentials = sort_credentials(credentials)
        self.group_id = group_id
        self.max_retry = max_retry
        self.retry_backoff = retry_backoff
        self.reconcile_after = reconcile_after
        self._cache = cache
        self._selector = selector
        self._submitter = submitter
        self._poller = poller
        self._sleep = sleep
        self._local_decrements: Dict[str, int] = {}

    async def upload_batch(
        self,
        assets: Sequence[PendingAsset],
        progress: Optional[ProgressCallback] = None,
    ) -> List[UploadResult]:
        """Uploads assets one after another and returns one result per asset."""
        results = []
        for asset in assets:
            results.append(await self.upload(asset, progress=progress))
        return results

    async def upload(
        self,
        asset: PendingAsset,
        progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """Runs the full pipeline for a single asset. Never raises UploadError."""
        try:
            validate_media_type(asset.content_type)
        except ValidationError as e:
            lib_logger.info(f"Rejected {asset.name}: {e}")
            return UploadResult(
                asset_name=asset.name,
                status=UploadStatus.REJECTED,
                label=REJECTED_LABEL,
            )

        result: Optional[UploadResult] = None
        try:
            await self._notify(progress, f"Downloading {asset.name}...")
            async with asset.stage() as payload:
                request = SubmissionRequest(
                    payload=payload,
                    display_name=asset.display_name,
                    owner_context=self.group_id,
                )
                result = await self._run_attempts(request, progress)
        except Exception as e:
            if result is not None:
                # Upload already finished; only the cleanup failed
                lib_logger.warning(f"[Cleanup] Failed to release {asset.name}: {e}")
                return result
            if not isinstance(e, UploadError):
                lib_logger.exception(f"Unexpected error while preparing {asset.name}")
            else:
                lib_logger.error(f"[ERROR] {asset.name}: {e}")
            return self._failed(asset.display_name, e, attempts=0)

        lib_logger.debug(f"[Cleanup] Released staged payload for {asset.name}")
        return result

    async def _run_attempts(
        self,
        request: SubmissionRequest,
        progress: Optional[ProgressCallback],
    ) -> UploadResult:
        attempts = 0
        name = request.display_name

        while attempts < self.max_retry:
            credential = await self._selector.select(self.credentials)
            if credential is None:
                error = QuotaExhaustedError()
                lib_logger.error(f"[ERROR] {name}: {error}")
                return self._failed(name, error, attempts=attempts)

            lib_logger.info(
                f"[Upload Attempt {attempts + 1}/{self.max_retry}] {name} "
                f"using {credential.name} ({credential.masked_key})"
            )

            try:
                await self._notify(progress, f"Uploading to Roblox using {credential.name}...")
                operation = await self._submitter.submit(request, credential)
                await self._notify(progress, f"Processing... (Operation ID: {operation.id})")
                outcome = await self._poller.await_completion(operation)

            except Exception as e:
                attempts += 1
                log_failure(
                    api_key=credential.key,
                    asset_name=name,
                    attempt=attempts,
                    error=e,
                    credential_name=credential.name,
                )
                self._forget_unknown_quota(credential)
                if not is_retryable(e):
                    lib_logger.exception(f"[Attempt {attempts} Failed] {name}: unexpected error")
                    return self._failed(name, e, attempts=attempts)

                lib_logger.warning(f"[Attempt {attempts} Failed] {name}: {e}")
                if attempts >= self.max_retry:
                    return self._failed(name, e, attempts=attempts)

                await self._sleep(self.retry_backoff)
                continue

            attempts += 1
            self._record_success(credential)
            return UploadResult(
                asset_name=name,
                status=UploadStatus.SUCCESS,
                label=outcome.state.upper(),
                asset_id=outcome.asset_id,
                credential_name=credential.name,
                attempts=attempts,
            )

        # Unreachable while max_retry >= 1
        return self._failed(name, UploadError("No upload attempt was made"), attempts=attempts)

    def _record_success(self, credential: Credential) -> None:
        snapshot = self._cache.decrement(credential)
        if snapshot is not None:
            lib_logger.info(
                f"[Quota] {credential.name}: {snapshot.remaining}/{snapshot.capacity} "
                f"remaining after upload"
            )

        if self.reconcile_after <= 0:
            return
        count = self._local_decrements.get(credential.key, 0) + 1
        if count >= self.reconcile_after:
            # Next selection re-probes instead of trusting local arithmetic
            self._cache.invalidate(credential)
            count = 0
            lib_logger.info(f"[Quota] {credential.name}: scheduled quota re-check")
        self._local_decrements[credential.key] = count

    def _forget_unknown_quota(self, credential: Credential) -> None:
        # A fail-open snapshot would otherwise pin a dead key for the whole cache period
        snapshot = self._cache.get(credential)
        if snapshot is not None and snapshot.is_unknown:
            self._cache.invalidate(credential)
            lib_logger.info(
                f"[Quota] {credential.name}: quota unknown after a failed attempt, "
                f"re-checking on next selection"
            )

    def _failed(self, name: str, error: Exception, attempts: int) -> UploadResult:
        """FAILED result; no key is reported since none completed the upload."""
        return UploadResult(
            asset_name=name,
            status=UploadStatus.FAILED,
            label=f"ERROR: {truncate_error(error)}",
            attempts=attempts,
        )

    async def _notify(self, progress: Optional[ProgressCallback], message: str) -> None:
        if progress is None:
            return
        try:
            await progress(message)
        except Exception as e:
            lib_logger.warning(f"Progress callback failed: {e}")
