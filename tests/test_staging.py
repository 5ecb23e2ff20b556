import httpx
import pytest

from upload_bot.staging import safe_filename, stage_attachment


def test_safe_filename_strips_paths_and_odd_characters() -> None:
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("C:\\music\\theme.mp3") == "theme.mp3"
    assert safe_filename("boss fight?.ogg") == "boss fight_.ogg"
    assert safe_filename("..") == "attachment"
    assert safe_filename("") == "attachment"


@pytest.mark.asyncio
async def test_attachment_is_downloaded_then_removed(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/attachments/theme.mp3"
        return httpx.Response(200, content=b"ID3" + b"\x00" * 1024)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        async with stage_attachment(
            client,
            "https://cdn.example.com/attachments/theme.mp3",
            "theme.mp3",
            directory=str(tmp_path),
        ) as path:
            assert path.exists()
            assert path.name == "theme.mp3"
            assert path.read_bytes().startswith(b"ID3")
            staged_dir = path.parent

    assert not path.exists()
    assert not staged_dir.exists()
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_staging_cleans_up_when_body_raises(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"audio")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(RuntimeError):
            async with stage_attachment(
                client, "https://cdn.example.com/a.ogg", "a.ogg", directory=str(tmp_path)
            ):
                raise RuntimeError("upload blew up")

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_failed_download_raises_and_leaves_nothing(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="gone")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            async with stage_attachment(
                client, "https://cdn.example.com/a.ogg", "a.ogg", directory=str(tmp_path)
            ):
                pytest.fail("body must not run for a failed download")

    assert list(tmp_path.iterdir()) == []
