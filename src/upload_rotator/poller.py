# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Operation status polling.

An upload returns an operation handle; the asset id and moderation
result only appear once the operation reports done=true:

    {"done": true, "response": {"assetId": "123",
        "moderationResult": {"moderationState": "Approved"}}}

Between polls the poller suspends on the injected async sleep, so the
event loop keeps serving other work. A deadline turns a hung operation
into OperationTimeoutError instead of waiting forever.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from .constants import DEFAULT_POLL_INTERVAL_SECONDS, OPERATIONS_URL
from .error_handler import (
    OperationTimeoutError,
    PollTransportError,
    describe_http_error,
)
from .types import NO_ASSET_ID, Operation, OperationOutcome

lib_logger = logging.getLogger("upload_rotator")

# Marks "use the poller's own timeout"; None is a real value (no deadline)
_DEFAULT_TIMEOUT: Any = object()


def parse_operation_outcome(data: Any) -> Optional[OperationOutcome]:
    """Returns the outcome if the operation is done, otherwise None."""
    if not isinstance(data, dict) or not data.get("done"):
        return None
    response = data.get("response") or {}
    moderation = response.get("moderationResult") or {}
    asset_id = response.get("assetId")
    return OperationOutcome(
        asset_id=str(asset_id) if asset_id else NO_ASSET_ID,
        state=moderation.get("moderationState") or "UNKNOWN",
    )


class OperationPoller:
    """Polls an operation at a fixed interval until it is done."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout: Optional[float] = None,
        operations_url: str = OPERATIONS_URL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._http_client = http_client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._operations_url = operations_url.rstrip("/")
        self._sleep = sleep
        self._clock = clock

    async def fetch_status(self, operation: Operation) -> Any:
        """
        Single status request.

        Raises:
            PollTransportError: on any transport/HTTP/JSON failure
        """
        url = f"{self._operations_url}/{operation.id}"
        try:
            response = await self._http_client.get(
                url, headers={"x-api-key": operation.credential.key}
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise PollTransportError(
                f"Polling operation {operation.id} failed: {describe_http_error(e)}"
            ) from e
        except ValueError as e:
            raise PollTransportError(
                f"Operation {operation.id} returned invalid JSON: {e}"
            ) from e

    async def await_completion(
        self,
        operation: Operation,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = _DEFAULT_TIMEOUT,
    ) -> OperationOutcome:
        """
        Poll until the operation is done.

        Args:
            operation: Handle returned by the submitter
            poll_interval: Seconds between polls (defaults to the instance value)
            timeout: Seconds before giving up; defaults to the instance value,
                and None waits indefinitely

        Raises:
            PollTransportError: a poll request failed; not retried here
            OperationTimeoutError: the deadline passed before completion
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        if timeout is _DEFAULT_TIMEOUT:
            timeout = self.timeout
        deadline = self._clock() + timeout if timeout is not None else None
        polls = 0

        while True:
            data = await self.fetch_status(operation)
            polls += 1

            outcome = parse_operation_outcome(data)
            if outcome is not None:
                lib_logger.info(
                    f"Operation {operation.id} done after {polls} poll(s): "
                    f"asset {outcome.asset_id}, state {outcome.state}"
                )
                return outcome

            if deadline is not None and self._clock() + interval > deadline:
                raise OperationTimeoutError(
                    f"Operation {operation.id} not done after {timeout:.0f}s"
                )

            lib_logger.debug(
                f"Operation {operation.id} pending, next poll in {interval:.1f}s"
            )
            await self._sleep(interval)
