# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import logging
import time
from dataclasses import replace
from typing import Callable, Dict, Optional

from .types import Credential, QuotaSnapshot

lib_logger = logging.getLogger("upload_rotator")


class QuotaCache:
    """
    Holds the last known quota snapshot per credential.

    Staleness is checked lazily on read; there is no eviction task.
    Every method is synchronous, so under asyncio each read-check-write
    runs without interleaving even when several batches share the cache.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._snapshots: Dict[str, QuotaSnapshot] = {}  # key -> snapshot
        self._clock = clock

    def get(self, credential: Credential) -> Optional[QuotaSnapshot]:
        """Returns the cached snapshot, or None if absent or stale."""
        snapshot = self._snapshots.get(credential.key)
        if snapshot is None:
            return None
        if not snapshot.is_fresh(self._clock()):
            del self._snapshots[credential.key]
            lib_logger.debug(f"Quota snapshot for {credential.name} expired")
            return None
        return snapshot

    def put(self, credential: Credential, snapshot: QuotaSnapshot) -> None:
        """Stores a snapshot, replacing whatever was cached."""
        self._snapshots[credential.key] = snapshot

    def decrement(self, credential: Credential) -> Optional[QuotaSnapshot]:
        """
        Consumes one quota unit after a successful upload.

        No-op when nothing fresh is cached or remaining is already <= 0
        (this also leaves the -1 "unknown" marker untouched). The
        freshness window is preserved, not extended.
        """
        snapshot = self.get(credential)
        if snapshot is None or snapshot.remaining <= 0:
            return snapshot
        updated = replace(snapshot, remaining=snapshot.remaining - 1)
        self._snapshots[credential.key] = updated
        return updated

    def invalidate(self, credential: Credential) -> None:
        """Drops the snapshot so the next lookup probes the provider."""
        self._snapshots.pop(credential.key, None)

    def clear(self) -> None:
        self._snapshots.clear()

    def __len__(self) -> int:
        return len(self._snapshots)
