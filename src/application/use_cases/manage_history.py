from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.entities.edit_history import EditHistoryEntity
from src.domain.errors import InvalidParameter, NotFound
from src.infrastructure.database.repositories.history_repository import HistoryRepository

logger = logging.getLogger(__name__)


@dataclass
class HistoryPage:
    entries: list[EditHistoryEntity]
    total: int
    limit: int
    offset: int


@dataclass
class ListHistoryUseCase:
    history_repo: HistoryRepository

    def execute(
        self, user_id: str, limit: int = 50, offset: int = 0, image_id: str | None = None
    ) -> HistoryPage:
        if limit < 1 or offset < 0:
            raise InvalidParameter("limit must be >= 1 and offset >= 0")
        entries, total = self.history_repo.list_by_user(
            user_id, image_id=image_id, limit=limit, offset=offset
        )
        return HistoryPage(entries=entries, total=total, limit=limit, offset=offset)

    def get(self, user_id: str, history_id: str) -> EditHistoryEntity:
        item = self.history_repo.get(history_id)
        if item is None or item.user_id != user_id:
            raise NotFound("History item not found or access denied")
        return item


@dataclass
class DeleteHistoryUseCase:
    """Remove a ledger row. The image it produced is left untouched."""

    history_repo: HistoryRepository

    def execute(self, user_id: str, history_id: str) -> bool:
        item = self.history_repo.get(history_id)
        if item is None or item.user_id != user_id:
            raise NotFound("History item not found or access denied")
        ok = self.history_repo.delete(history_id)
        logger.info("Deleted history entry %s (image %s kept)", history_id, item.image_id)
        return ok
