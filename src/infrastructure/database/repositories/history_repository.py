from __future__ import annotations

import json
import threading
import uuid
from datetime import UTC, datetime
from typing import Any

from supabase import Client

from src.config import get_settings
from src.domain.entities.edit_history import EditHistoryEntity
from src.domain.errors import PersistenceFailure

# module-level in-memory store for disabled mode; insertion order is append order
_MEM_HISTORY: dict[str, EditHistoryEntity] = {}
_MEM_LOCK = threading.Lock()


class HistoryRepository:
    """Append-only ledger of executed batches."""

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.disabled = get_settings().supabase_disabled

    def _in_memory(self) -> bool:
        return self.disabled or self.client is None

    def _row_to_entity(self, row: dict) -> EditHistoryEntity:
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        parameters = row.get("parameters") or {}
        if isinstance(parameters, str):
            parameters = json.loads(parameters)

        return EditHistoryEntity(
            id=row["id"],
            user_id=row["user_id"],
            image_id=row["image_id"],
            operation_type=row["operation_type"],
            parameters=parameters,
            created_at=created_at,
            result_storage_path=row.get("result_storage_path"),
            source_image_id=row.get("source_image_id"),
            root_image_id=row.get("root_image_id"),
        )

    def create(
        self,
        user_id: str,
        image_id: str,
        operation_type: str,
        parameters: dict[str, Any],
        result_storage_path: str | None = None,
        source_image_id: str | None = None,
        root_image_id: str | None = None,
    ) -> EditHistoryEntity:
        now = datetime.now(UTC)

        # In-memory mode
        if self._in_memory():
            entity = EditHistoryEntity(
                id=f"hist_{uuid.uuid4().hex}",
                user_id=user_id,
                image_id=image_id,
                operation_type=operation_type,
                parameters=parameters,
                created_at=now,
                result_storage_path=result_storage_path,
                source_image_id=source_image_id,
                root_image_id=root_image_id,
            )
            with _MEM_LOCK:
                _MEM_HISTORY[entity.id] = entity
            return entity

        # Supabase mode
        data = {
            "user_id": user_id,
            "image_id": image_id,
            "operation_type": operation_type,
            "parameters": parameters,
            "created_at": now.isoformat(),
        }
        if result_storage_path:
            data["result_storage_path"] = result_storage_path
        if source_image_id:
            data["source_image_id"] = source_image_id
        if root_image_id:
            data["root_image_id"] = root_image_id
        try:  # pragma: no cover - network
            res = self.client.table("edit_history").insert(data).execute()
            return self._row_to_entity(res.data[0])
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB insert history failed: {exc}") from exc

    def list_by_user(
        self,
        user_id: str,
        image_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[EditHistoryEntity], int]:
        """Newest-first page of a user's history, plus the total matching count."""
        if self._in_memory():
            with _MEM_LOCK:
                items = [
                    h
                    for h in reversed(_MEM_HISTORY.values())
                    if h.user_id == user_id and (image_id is None or h.image_id == image_id)
                ]
            end = None if limit is None else offset + limit
            return items[offset:end], len(items)

        try:  # pragma: no cover - network
            query = (
                self.client.table("edit_history")
                .select("*", count="exact")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
            )
            if image_id:
                query = query.eq("image_id", image_id)
            if limit is not None:
                query = query.range(offset, offset + limit - 1)
            res = query.execute()
            rows = res.data or []
            total = res.count if res.count is not None else len(rows)
            return [self._row_to_entity(row) for row in rows], total
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB list history failed: {exc}") from exc

    def get(self, hist_id: str) -> EditHistoryEntity | None:
        if self._in_memory():
            with _MEM_LOCK:
                return _MEM_HISTORY.get(hist_id)

        try:  # pragma: no cover - network
            res = self.client.table("edit_history").select("*").eq("id", hist_id).limit(1).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB get history failed: {exc}") from exc

    def delete_by_image(self, image_id: str) -> int:
        if self._in_memory():
            with _MEM_LOCK:
                ids = [k for k, v in _MEM_HISTORY.items() if v.image_id == image_id]
                for k in ids:
                    _MEM_HISTORY.pop(k, None)
            return len(ids)

        try:  # pragma: no cover - network
            res = self.client.table("edit_history").delete().eq("image_id", image_id).execute()
            return len(res.data or [])
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB delete history failed: {exc}") from exc

    def delete(self, hist_id: str) -> bool:
        if self._in_memory():
            with _MEM_LOCK:
                return _MEM_HISTORY.pop(hist_id, None) is not None

        try:  # pragma: no cover - network
            res = self.client.table("edit_history").delete().eq("id", hist_id).execute()
            return bool(res.data)
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"DB delete history failed: {exc}") from exc
