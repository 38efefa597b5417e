from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.entities.image import ImageEntity
from src.domain.errors import InvalidParameter
from src.domain.services.derivation_resolver import DerivationResolver
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)


@dataclass
class ListVersionsUseCase:
    image_repo: ImageRepository
    resolver: DerivationResolver

    def execute(self, user_id: str, image_id: str) -> tuple[ImageEntity, list[ImageEntity]]:
        """Root of the chain ``image_id`` belongs to and every image derived from it."""
        root = self.resolver.resolve(user_id, image_id).root
        return root, self.image_repo.list_derived(root.id, user_id)


@dataclass
class DeleteImageUseCase:
    image_repo: ImageRepository
    history_repo: HistoryRepository
    storage: SupabaseStorage
    resolver: DerivationResolver

    def execute(self, user_id: str, image_id: str) -> bool:
        entity = self.resolver.get_owned(user_id, image_id)
        if entity.is_root:
            derived = self.image_repo.list_derived(entity.id, user_id)
            if derived:
                raise InvalidParameter(
                    f"Image {entity.id} is the original of {len(derived)} edited version(s); "
                    "delete those first"
                )
        # cascade: delete history, then file, then db row
        self.history_repo.delete_by_image(entity.id)
        self.storage.delete(entity.path)
        ok = self.image_repo.delete(entity.id)
        logger.info("Deleted image %s for user %s", entity.id, user_id)
        return ok
