import json

import httpx
import pytest

from upload_rotator.error_handler import SubmissionError
from upload_rotator.submitter import (
    AssetSubmitter,
    build_asset_metadata,
    open_payload,
    operation_id_from_path,
)
from upload_rotator.types import SubmissionRequest


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_request(payload=b"OggS-audio-bytes") -> SubmissionRequest:
    return SubmissionRequest(payload=payload, display_name="theme", owner_context=4242)


def test_metadata_matches_upload_contract() -> None:
    assert build_asset_metadata(make_request()) == {
        "assetType": "Audio",
        "displayName": "theme",
        "description": "Uploaded via Discord Bot",
        "creationContext": {"creator": {"groupId": 4242}},
    }


def test_operation_id_is_last_path_segment() -> None:
    assert operation_id_from_path("operations/9f8e7d") == "9f8e7d"
    assert operation_id_from_path("/assets/v1/operations/abc/") == "abc"
    with pytest.raises(SubmissionError):
        operation_id_from_path(None)


@pytest.mark.asyncio
async def test_submit_sends_multipart_and_returns_operation(key_a) -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["api_key"] = request.headers.get("x-api-key")
        captured["content_type"] = request.headers.get("content-type")
        captured["body"] = request.read()
        return httpx.Response(200, json={"path": "operations/op-123", "done": False})

    async with make_client(handler) as client:
        operation = await AssetSubmitter(client).submit(make_request(), key_a)

    assert operation.id == "op-123"
    assert operation.credential == key_a
    assert captured["api_key"] == key_a.key
    assert captured["content_type"].startswith("multipart/form-data")
    body = captured["body"]
    assert b'name="request"' in body
    assert b'name="fileContent"' in body
    assert b"OggS-audio-bytes" in body
    assert json.dumps(build_asset_metadata(make_request())).encode() in body


@pytest.mark.asyncio
async def test_submit_reads_staged_file(tmp_path, key_a) -> None:
    staged = tmp_path / "theme.ogg"
    staged.write_bytes(b"file-on-disk")
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = request.read()
        return httpx.Response(200, json={"path": "operations/op-9"})

    async with make_client(handler) as client:
        operation = await AssetSubmitter(client).submit(make_request(staged), key_a)

    assert operation.id == "op-9"
    assert b"file-on-disk" in captured["body"]
    assert b'filename="theme.ogg"' in captured["body"]


@pytest.mark.asyncio
async def test_submit_raises_with_remote_diagnostic(key_a) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "Invalid API Key"})

    async with make_client(handler) as client:
        with pytest.raises(SubmissionError) as exc_info:
            await AssetSubmitter(client).submit(make_request(), key_a)

    assert exc_info.value.status_code == 403
    assert "Invalid API Key" in exc_info.value.body
    assert "HTTP 403" in str(exc_info.value)


@pytest.mark.asyncio
async def test_submit_wraps_transport_errors(key_a) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_client(handler) as client:
        with pytest.raises(SubmissionError):
            await AssetSubmitter(client).submit(make_request(), key_a)


@pytest.mark.asyncio
async def test_submit_rejects_response_without_path(key_a) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    async with make_client(handler) as client:
        with pytest.raises(SubmissionError):
            await AssetSubmitter(client).submit(make_request(), key_a)


@pytest.mark.asyncio
async def test_submit_reports_missing_staged_file(tmp_path, key_a) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with make_client(handler) as client:
        with pytest.raises(SubmissionError):
            await AssetSubmitter(client).submit(make_request(tmp_path / "gone.ogg"), key_a)


def test_staged_file_is_passed_as_open_file(tmp_path) -> None:
    staged = tmp_path / "theme.ogg"
    staged.write_bytes(b"file-on-disk")

    with open_payload(staged) as (filename, content):
        assert filename == "theme.ogg"
        assert hasattr(content, "read")
        assert not content.closed

    assert content.closed


def test_in_memory_payload_is_passed_as_bytes() -> None:
    with open_payload(b"raw-bytes") as (filename, content):
        assert filename == "fileContent"
        assert content == b"raw-bytes"
