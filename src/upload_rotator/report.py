# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from typing import Iterable, List

from .types import UploadResult

REPORT_HEADER = "===== UPLOAD RESULTS ====="


def format_result(index: int, result: UploadResult) -> str:
    """Text block for one asset, numbered from 1."""
    lines = [
        f"{index}. {result.asset_name}",
        f"   Asset ID: {result.asset_id}",
        f"   Status: {result.label}",
    ]
    if result.credential_name:
        lines.append(f"   Key: {result.credential_name}")
    return "\n".join(lines) + "\n"


def format_report(results: Iterable[UploadResult], code_block: bool = True) -> str:
    """
    Render a batch of results as one reply.

    Args:
        results: Results in the order the assets were processed
        code_block: Wrap the report in a fenced block for chat clients
    """
    blocks: List[str] = [f"{REPORT_HEADER}\n"]
    for index, result in enumerate(results, start=1):
        blocks.append(format_result(index, result))
    output = "\n".join(blocks)
    if code_block:
        return f"```\n{output}```"
    return output
