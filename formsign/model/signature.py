"""Captured handwritten signature artifacts."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone

DATA_URI_PREFIX = "data:image/png;base64,"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Signature:
    field_name: str
    data_uri: str
    signed_at: datetime = field(default_factory=_utc_now)

    def image_bytes(self) -> bytes:
        _, _, encoded = self.data_uri.partition(",")
        return base64.b64decode(encoded)

    def to_payload(self) -> dict[str, str]:
        return {
            "annotation_field_name": self.field_name,
            "data_uri": self.data_uri,
            "timestamp": self.signed_at.isoformat(),
        }


def png_data_uri(png_bytes: bytes) -> str:
    return DATA_URI_PREFIX + base64.b64encode(png_bytes).decode("ascii")
