"""Continuation tokens for paging through a multi-cell scan.

A caller that queries one cell after another stores the index of the cell it
was scanning and the last key it read in that cell. The token is a
base64-encoded JSON object so it can travel through an API unchanged.
"""

from __future__ import annotations

import base64
import binascii
import json
import sys
from dataclasses import dataclass
from typing import Sequence

from geocells.model import ValidationError

__all__ = ["SpatialContinuationToken", "remaining_cells"]


_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class SpatialContinuationToken:
    """Position of a paused scan: cell index plus the last key read there."""

    cell_index: int
    last_evaluated_key: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.cell_index, bool) or not isinstance(self.cell_index, int):
            raise ValidationError("cell_index must be an integer")
        if self.cell_index < 0:
            raise ValidationError(f"cell_index must be non-negative, got {self.cell_index}")

    def to_base64(self) -> str:
        payload = {"CellIndex": self.cell_index, "LastEvaluatedKey": self.last_evaluated_key}
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")

    @classmethod
    def from_base64(cls, token: str) -> SpatialContinuationToken:
        if not token:
            raise ValidationError("Continuation token cannot be empty")
        try:
            raw = base64.b64decode(token, validate=True)
            payload = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise ValidationError("Malformed continuation token") from exc
        if not isinstance(payload, dict) or "CellIndex" not in payload:
            raise ValidationError("Continuation token is missing the cell index")
        last_key = payload.get("LastEvaluatedKey")
        if last_key is not None and not isinstance(last_key, str):
            raise ValidationError("Continuation token has a non-string last key")
        return cls(payload["CellIndex"], last_key)


def remaining_cells(
    keys: Sequence[str], token: SpatialContinuationToken | None
) -> list[tuple[str, str | None]]:
    """Return the ``(cell, start_key)`` pairs still to scan after ``token``.

    The first pair resumes the interrupted cell from its last evaluated key;
    later cells start from the beginning (``None``). Without a token every
    cell is returned.
    """

    if token is None:
        return [(key, None) for key in keys]
    if token.cell_index >= len(keys):
        raise ValidationError(
            f"Continuation token points at cell {token.cell_index} "
            f"but only {len(keys)} cells are covered"
        )
    pending = [(key, None) for key in keys[token.cell_index :]]
    pending[0] = (pending[0][0], token.last_evaluated_key)
    return pending
