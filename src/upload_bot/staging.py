import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import httpx

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def safe_filename(name: str) -> str:
    """Strip directories and characters that do not belong in a filename."""
    base = os.path.basename(name.replace("\\", "/")) or "attachment"
    cleaned = "".join(c if c.isalnum() or c in "._- " else "_" for c in base).strip()
    if cleaned in ("", ".", ".."):
        return "attachment"
    return cleaned


@asynccontextmanager
async def stage_attachment(
    http_client: httpx.AsyncClient,
    url: str,
    filename: str,
    directory: Optional[str] = None,
) -> AsyncIterator[Path]:
    """
    Download an attachment into a private temp directory.

    Yields the file path; the file and its directory are removed when the
    context exits, whether the upload succeeded or not.
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="upload-", dir=directory))
    file_path = temp_dir / safe_filename(filename)
    try:
        async with http_client.stream("GET", url) as response:
            response.raise_for_status()
            async with aiofiles.open(file_path, "wb") as f:
                async for chunk in response.aiter_bytes(CHUNK_SIZE):
                    await f.write(chunk)
        logger.info(f"Downloaded {filename} ({file_path.stat().st_size} bytes)")
        yield file_path
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
        logger.info(f"[Cleanup] Deleted {file_path}")
