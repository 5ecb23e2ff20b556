# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Upload quota probing.

Queries the asset-quotas endpoint for a credential and turns the first
quota object into a QuotaSnapshot:

    {"quotas": [{"capacity": 100, "usage": 12, ...}]}

The probe is fail-open: when the endpoint cannot be reached or returns
something unusable, the credential is reported with unknown (-1) quota
so an outage of the quota service never blocks uploads. Every fail-open
is logged and written to the failure log.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from .constants import (
    ASSET_TYPE,
    DEFAULT_QUOTA_CACHE_SECONDS,
    QUOTA_RESOURCE_TYPE,
    QUOTA_URL,
    USER_AGENT,
)
from .error_handler import QuotaProbeError, describe_http_error, is_http_error
from .failure_logger import log_probe_failure
from .types import Credential, QuotaSnapshot

lib_logger = logging.getLogger("upload_rotator")


def parse_quota_payload(data: Any) -> Dict[str, int]:
    """
    Extract capacity/usage from the first quota object.

    Raises:
        QuotaProbeError: if the payload has no usable quota object
    """
    if not isinstance(data, dict):
        raise QuotaProbeError("Quota response is not a JSON object")
    quotas = data.get("quotas")
    if not quotas or not isinstance(quotas, list):
        raise QuotaProbeError("Quota data not found in response")

    quota = quotas[0]
    try:
        capacity = int(quota["capacity"])
        usage = int(quota["usage"])
    except (KeyError, TypeError, ValueError) as e:
        raise QuotaProbeError(f"Malformed quota object: {quota!r}") from e
    return {"capacity": capacity, "usage": usage}


class QuotaProbe:
    """Fetches a credential's current capacity and usage from the provider."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache_period: float = DEFAULT_QUOTA_CACHE_SECONDS,
        quota_url: str = QUOTA_URL,
        asset_type: str = ASSET_TYPE,
        clock: Callable[[], float] = time.time,
    ):
        self._http_client = http_client
        self.cache_period = cache_period
        self._quota_url = quota_url
        self._asset_type = asset_type
        self._clock = clock
        self.fail_open_count = 0

    async def probe(self, credential: Credential) -> QuotaSnapshot:
        """
        Query the quota endpoint for one credential.

        Never raises; see the module docstring for the fail-open policy.
        """
        now = self._clock()
        valid_until = now + self.cache_period

        try:
            response = await self._http_client.get(
                self._quota_url,
                params={
                    "resourceType": QUOTA_RESOURCE_TYPE,
                    "assetType": self._asset_type,
                },
                headers={
                    "x-api-key": credential.key,
                    "User-Agent": USER_AGENT,
                },
            )
            response.raise_for_status()
            quota = parse_quota_payload(response.json())

        except Exception as e:
            return self._fail_open(credential, e, valid_until)

        remaining = quota["capacity"] - quota["usage"]
        lib_logger.debug(
            f"Fetched quota for {credential.name}: "
            f"{remaining}/{quota['capacity']} remaining"
        )
        return QuotaSnapshot(
            remaining=max(0, remaining),
            capacity=quota["capacity"],
            valid_until=valid_until,
        )

    def _fail_open(
        self, credential: Credential, error: Exception, valid_until: float
    ) -> QuotaSnapshot:
        if is_http_error(error):
            message = describe_http_error(error)
        else:
            message = str(error) or type(error).__name__
        self.fail_open_count += 1
        lib_logger.warning(
            f"Quota check failed for {credential.name} ({credential.masked_key}): "
            f"{message}. Assuming quota is available."
        )
        log_probe_failure(credential.key, credential.name, error)
        return QuotaSnapshot.unknown(valid_until)
