"""
Canonical serialization and integrity hashing.

Used by the layout export/import bundle: the checksum is computed over
the canonical JSON bytes of the exported layouts, so re-serializing the
same layouts always yields the same checksum.

IMPORTANT DESIGN RULE:
- ``compute_checksum`` hashes bytes, and bytes only.
- Canonicalization happens in ``canonical_json_bytes``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Union


def _canonical_json_default(obj: Any) -> str:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(
        f"Object of type {obj.__class__.__name__} is not JSON serializable"
    )


def canonical_json_bytes(payload: Any) -> bytes:
    return json.dumps(
        payload,
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_canonical_json_default,
    ).encode("utf-8")


def compute_checksum(canonical_bytes: Union[bytes, bytearray]) -> str:
    """
    Return ``SHA-256:<hex>`` for already-canonicalized bytes.
    """
    if not isinstance(canonical_bytes, (bytes, bytearray)):
        raise TypeError(
            "compute_checksum expects canonical bytes, "
            f"got {type(canonical_bytes).__name__}"
        )

    digest = hashlib.sha256(canonical_bytes).hexdigest()
    return f"SHA-256:{digest}"
