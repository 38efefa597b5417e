from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ImageEntity:
    id: str
    user_id: str
    path: str  # storage path {user_id}/{uuid}.{ext}
    width: int
    height: int
    mime_type: str
    created_at: datetime
    # Root of the derivation chain; None only for uploads.
    original_id: str | None = None
    original_filename: str | None = None
    file_size: int | None = None  # bytes

    @property
    def is_root(self) -> bool:
        return self.original_id is None

    @property
    def root_id(self) -> str:
        return self.original_id if self.original_id else self.id
