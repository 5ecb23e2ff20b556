# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx

lib_logger = logging.getLogger("upload_rotator")
lib_logger.propagate = False

if not lib_logger.handlers:
    lib_logger.addHandler(logging.NullHandler())

from .config import UploaderSettings
from .constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from .orchestrator import ProgressCallback, UploadOrchestrator
from .poller import OperationPoller
from .quota_cache import QuotaCache
from .quota_probe import QuotaProbe
from .selector import CredentialSelector
from .submitter import AssetSubmitter
from .types import Credential, PendingAsset, QuotaSnapshot, UploadResult


class UploadClient:
    """
    Wires the upload pipeline together around one shared httpx client.

    The quota cache belongs to this instance, so two clients never share
    quota state.
    """

    def __init__(
        self,
        settings: UploaderSettings,
        http_client: Optional[httpx.AsyncClient] = None,
        cache: Optional[QuotaCache] = None,
    ):
        if not settings.credentials:
            raise ValueError("At least one credential is required.")
        self.settings = settings
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=DEFAULT_HTTP_TIMEOUT_SECONDS
        )
        self.cache = cache or QuotaCache()
        self.probe = QuotaProbe(
            self.http_client, cache_period=settings.quota_cache_seconds
        )
        self.selector = CredentialSelector(self.cache, self.probe)
        self.submitter = AssetSubmitter(self.http_client)
        self.poller = OperationPoller(
            self.http_client,
            poll_interval=settings.poll_interval,
            timeout=settings.poll_timeout,
        )
        self.orchestrator = UploadOrchestrator(
            credentials=settings.credentials,
            group_id=settings.group_id,
            cache=self.cache,
            selector=self.selector,
            submitter=self.submitter,
            poller=self.poller,
            max_retry=settings.max_retry,
            retry_backoff=settings.retry_backoff,
            reconcile_after=settings.reconcile_after,
        )
        # Batches from concurrent tasks share one quota cache; run them one at a time
        self._batch_lock = asyncio.Lock()
        lib_logger.info(
            f"UploadClient initialized with {len(settings.credentials)} API keys "
            f"(max_retry={settings.max_retry}, poll_interval={settings.poll_interval}s)"
        )

    @property
    def credentials(self) -> Sequence[Credential]:
        return self.orchestrator.credentials

    async def upload(
        self, asset: PendingAsset, progress: Optional[ProgressCallback] = None
    ) -> UploadResult:
        async with self._batch_lock:
            return await self.orchestrator.upload(asset, progress=progress)

    async def upload_batch(
        self,
        assets: Sequence[PendingAsset],
        progress: Optional[ProgressCallback] = None,
    ) -> List[UploadResult]:
        async with self._batch_lock:
            return await self.orchestrator.upload_batch(assets, progress=progress)

    async def quota_overview(self) -> List[tuple]:
        """(credential, snapshot) for every key, probing where the cache is stale."""
        overview = []
        async with self._batch_lock:
            for credential in self.credentials:
                snapshot: QuotaSnapshot = await self.selector.snapshot_for(credential)
                overview.append((credential, snapshot))
        return overview

    async def close(self):
        """Closes the HTTP client if this instance created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "UploadClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
