from __future__ import annotations

import threading
import uuid
from datetime import UTC, datetime

from supabase import Client

from src.config import get_settings
from src.domain.entities.image import ImageEntity
from src.domain.errors import PersistenceFailure

# module-level in-memory store for disabled mode
_MEM_IMAGES: dict[str, ImageEntity] = {}
_MEM_LOCK = threading.Lock()


class ImageRepository:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.disabled = get_settings().supabase_disabled

    def _in_memory(self) -> bool:
        return self.disabled or self.client is None

    def _row_to_entity(self, row: dict) -> ImageEntity:
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return ImageEntity(
            id=row["id"],
            user_id=row["user_id"],
            path=row.get("storage_path", row.get("path", "")),
            width=row["width"],
            height=row["height"],
            mime_type=row["mime_type"],
            created_at=created_at,
            original_id=row.get("original_id"),
            original_filename=row.get("original_filename"),
            file_size=row.get("file_size"),
        )

    def create(
        self,
        user_id: str,
        path: str,
        width: int,
        height: int,
        mime_type: str,
        original_filename: str | None,
        original_id: str | None = None,
        file_size: int | None = None,
    ) -> ImageEntity:
        now = datetime.now(UTC)

        # In-memory mode
        if self._in_memory():
            entity = ImageEntity(
                id=f"img_{uuid.uuid4().hex}",
                user_id=user_id,
                path=path,
                width=width,
                height=height,
                mime_type=mime_type,
                created_at=now,
                original_id=original_id,
                original_filename=original_filename,
                file_size=file_size,
            )
            with _MEM_LOCK:
                _MEM_IMAGES[entity.id] = entity
            return entity

        # Supabase mode
        data = {
            "user_id": user_id,
            "storage_path": path,
            "width": width,
            "height": height,
            "mime_type": mime_type,
            "original_id": original_id,
            "original_filename": original_filename,
            "file_size": file_size,
            "created_at": now.isoformat(),
        }
        try:  # pragma: no cover - network
            res = self.client.table("images").insert(data).execute()
            return self._row_to_entity(res.data[0])
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB insert image failed: {exc}") from exc

    def list_by_user(self, user_id: str) -> list[ImageEntity]:
        if self._in_memory():
            with _MEM_LOCK:
                return [img for img in _MEM_IMAGES.values() if img.user_id == user_id]

        try:  # pragma: no cover - network
            res = self.client.table("images").select("*").eq("user_id", user_id).execute()
            rows = res.data or []
            return [self._row_to_entity(row) for row in rows]
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB list images failed: {exc}") from exc

    def list_derived(self, root_image_id: str, user_id: str) -> list[ImageEntity]:
        """All images derived from a root, oldest first."""
        if self._in_memory():
            with _MEM_LOCK:
                chain = [
                    img
                    for img in _MEM_IMAGES.values()
                    if img.user_id == user_id and img.original_id == root_image_id
                ]
            return sorted(chain, key=lambda x: x.created_at)

        try:  # pragma: no cover - network
            res = (
                self.client.table("images")
                .select("*")
                .eq("original_id", root_image_id)
                .eq("user_id", user_id)
                .order("created_at")
                .execute()
            )
            return [self._row_to_entity(row) for row in res.data or []]
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB list derived images failed: {exc}") from exc

    def get(self, image_id: str) -> ImageEntity | None:
        if self._in_memory():
            with _MEM_LOCK:
                return _MEM_IMAGES.get(image_id)

        try:  # pragma: no cover - network
            res = self.client.table("images").select("*").eq("id", image_id).limit(1).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB get image failed: {exc}") from exc

    def delete(self, image_id: str) -> bool:
        if self._in_memory():
            with _MEM_LOCK:
                return _MEM_IMAGES.pop(image_id, None) is not None

        try:  # pragma: no cover - network
            res = self.client.table("images").delete().eq("id", image_id).execute()
            return bool(res.data)
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB delete image failed: {exc}") from exc
