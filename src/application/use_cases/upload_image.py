from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from src.domain.entities.image import ImageEntity
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)


@dataclass
class UploadImageUseCase:
    storage: SupabaseStorage
    image_repo: ImageRepository

    def execute(
        self,
        user_id: str,
        array: np.ndarray,
        ext: str,
        original_filename: str,
        *,
        file_size: int | None = None,
    ) -> ImageEntity:
        """
        Upload a new image.

        Uploads are always roots: ``original_id`` stays None.
        """
        stored = self.storage.upload_numpy(user_id=user_id, array=array, ext=ext)
        try:
            entity = self.image_repo.create(
                user_id=user_id,
                path=stored.path,
                width=stored.width,
                height=stored.height,
                mime_type=stored.content_type,
                original_id=None,
                original_filename=original_filename,
                file_size=file_size if file_size is not None else stored.size,
            )
        except Exception:
            self.storage.delete(stored.path)
            raise
        logger.info("Uploaded root image %s for user %s", entity.id, user_id)
        return entity
