# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Tuple, Union

import httpx

from .constants import ASSETS_URL, ASSET_TYPE
from .error_handler import SubmissionError, describe_http_error
from .types import Credential, Operation, SubmissionRequest

lib_logger = logging.getLogger("upload_rotator")


def build_asset_metadata(request: SubmissionRequest, asset_type: str = ASSET_TYPE) -> Dict[str, Any]:
    """JSON part of the multipart upload."""
    return {
        "assetType": asset_type,
        "displayName": request.display_name,
        "description": request.description,
        "creationContext": {
            "creator": {"groupId": int(request.owner_context)},
        },
    }


def operation_id_from_path(path: Any) -> str:
    """The operation id is the final segment of the returned path."""
    if not isinstance(path, str) or not path.strip("/"):
        raise SubmissionError(f"Upload response has no operation path: {path!r}")
    return path.rstrip("/").split("/")[-1]


@contextmanager
def open_payload(payload: Union[bytes, Path]) -> Iterator[Tuple[str, Union[bytes, BinaryIO]]]:
    """
    Yields (filename, content) for the fileContent part.

    Staged files are handed to httpx as an open file so the multipart body
    is streamed from disk instead of being read into memory.
    """
    if isinstance(payload, (bytes, bytearray)):
        yield "fileContent", bytes(payload)
        return
    with open(payload, "rb") as f:
        yield Path(payload).name, f


class AssetSubmitter:
    """
    Uploads one asset with one credential.

    No retries happen here and the quota cache is never touched; both
    belong to the orchestrator.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        assets_url: str = ASSETS_URL,
        asset_type: str = ASSET_TYPE,
    ):
        self._http_client = http_client
        self._assets_url = assets_url
        self._asset_type = asset_type

    async def submit(self, request: SubmissionRequest, credential: Credential) -> Operation:
        """
        Send the multipart upload request.

        Raises:
            SubmissionError: on transport errors, non-2xx responses, or a
                response without an operation path
        """
        metadata = build_asset_metadata(request, self._asset_type)

        try:
            with open_payload(request.payload) as (filename, content):
                files = {
                    "request": (
                        None,
                        json.dumps(metadata).encode("utf-8"),
                        "application/json",
                    ),
                    "fileContent": (filename, content, "application/octet-stream"),
                }
                response = await self._http_client.post(
                    self._assets_url,
                    files=files,
                    headers={"x-api-key": credential.key},
                )
            response.raise_for_status()
            data = response.json()
        except OSError as e:
            raise SubmissionError(f"Could not read staged payload: {e}") from e
        except httpx.HTTPStatusError as e:
            raise SubmissionError(
                describe_http_error(e),
                status_code=e.response.status_code,
                body=e.response.text[:500],
            ) from e
        except httpx.HTTPError as e:
            raise SubmissionError(f"Upload request failed: {describe_http_error(e)}") from e
        except ValueError as e:
            raise SubmissionError(f"Upload response is not valid JSON: {e}") from e

        path = data.get("path") if isinstance(data, dict) else None
        operation = Operation(id=operation_id_from_path(path), credential=credential)
        lib_logger.info(
            f"Submitted '{request.display_name}' with {credential.name}, "
            f"operation {operation.id}"
        )
        return operation
