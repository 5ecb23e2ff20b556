# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Priority-ordered credential selection.

Walks the credentials in fallback order and returns the first one whose
quota is not known to be exhausted. Unknown quota (-1) counts as
available.
"""

import logging
from typing import Optional, Sequence

from .quota_cache import QuotaCache
from .quota_probe import QuotaProbe
from .types import Credential, QuotaSnapshot, sort_credentials

lib_logger = logging.getLogger("upload_rotator")


class CredentialSelector:
    """
    Selects the highest priority (lowest number) credential with quota left.

    Holds no state of its own; the shared QuotaCache is the only memory
    between calls, so repeated calls with the same cache contents resolve
    to the same credential.
    """

    def __init__(self, cache: QuotaCache, probe: QuotaProbe):
        self._cache = cache
        self._probe = probe

    async def snapshot_for(self, credential: Credential) -> QuotaSnapshot:
        """Cached snapshot if fresh, otherwise probe and cache the result."""
        snapshot = self._cache.get(credential)
        if snapshot is None:
            snapshot = await self._probe.probe(credential)
            self._cache.put(credential, snapshot)
        return snapshot

    async def select(self, credentials: Sequence[Credential]) -> Optional[Credential]:
        """
        Return the first credential with remaining != 0.

        Returns:
            The selected credential, or None when every credential is
            exhausted (or the sequence is empty)
        """
        for credential in sort_credentials(credentials):
            snapshot = await self.snapshot_for(credential)
            lib_logger.info(
                f"[Quota] {credential.name}: "
                f"{snapshot.remaining}/{snapshot.capacity} remaining"
            )
            if not snapshot.is_exhausted:
                return credential
            lib_logger.info(
                f"[Skip] {credential.name} quota exhausted, trying next key..."
            )

        if credentials:
            lib_logger.warning(
                f"All {len(credentials)} credentials have exhausted their upload quota"
            )
        return None
