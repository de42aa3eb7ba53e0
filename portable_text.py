"""
portable_text.py — Cleanup for portable-text arrays coming out of the CMS.
"""

from __future__ import annotations
from typing import Any, Optional


def is_valid_block(block: Any) -> bool:
    if not isinstance(block, dict) or not block.get("_type"):
        return False
    if block["_type"] == "block":
        return isinstance(block.get("children"), list)
    return True


def fix_portable_text(*fields: Optional[list]) -> None:
    """Drop invalid blocks from each portable-text list, in place.

    None entries are skipped so optional fields can be passed straight through.
    """
    for field in fields:
        if field is None:
            continue
        field[:] = [block for block in field if is_valid_block(block)]
