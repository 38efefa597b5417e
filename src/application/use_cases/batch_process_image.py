from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import numpy as np

from src.domain.entities.edit_history import EditHistoryEntity
from src.domain.entities.image import ImageEntity
from src.domain.entities.operation import MergeImages, Operation, parse_operations
from src.domain.errors import InvalidParameter, PersistenceFailure, ProcessingError
from src.domain.services.derivation_resolver import DerivationResolver
from src.domain.services.processing_service import ProcessingService
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.supabase_storage import StorageResult, SupabaseStorage

logger = logging.getLogger(__name__)

BATCH_OPERATION_TYPE = "batch_process"
RESET_OPERATION_TYPE = "reset"


@dataclass(frozen=True)
class BatchResult:
    image: ImageEntity
    history: EditHistoryEntity
    anchor_image_id: str
    root_image_id: str
    operations: list[Operation] = field(default_factory=list)


@dataclass
class BatchProcessImageUseCase:
    """
    Process multiple operations on an image in a single request.

    This use case solves the problem of cumulative modifications by:
    1. Always starting from the root/original image
    2. Applying all operations in sequence to that original
    3. Saving only the final result as a new version, a direct child of the root

    Either the whole batch lands (one new image and one history entry) or
    nothing does: persistence failures roll back whatever was already written.
    """

    storage: SupabaseStorage
    image_repo: ImageRepository
    history_repo: HistoryRepository
    processing: ProcessingService
    resolver: DerivationResolver | None = None

    def __post_init__(self) -> None:
        if self.resolver is None:
            self.resolver = DerivationResolver(self.image_repo)

    def execute(
        self,
        user_id: str,
        image_id: str,
        operations: Iterable[Operation | Mapping[str, Any]],
    ) -> BatchResult:
        """
        Apply multiple operations to the root image and save as new version.

        Args:
            user_id: ID of the user performing the operations
            image_id: ID of any image in the derivation chain (the anchor)
            operations: Operation values or wire dicts of the form
                       {"operation": "brightness", "params": {"factor": 1.2}}

        Returns:
            BatchResult with the new image and its history entry

        Raises:
            UnknownOperation / InvalidParameter: bad batch, nothing persisted
            NotFound: anchor or merge overlay missing or not owned
            PersistenceFailure: storage or ledger write failed, nothing persisted
        """
        try:
            ops = parse_operations(operations)
            if not ops:
                raise InvalidParameter("A batch needs at least one operation")

            resolution = self.resolver.resolve(user_id, image_id)
            root = resolution.root
            src = self.storage.download_to_numpy(root.path)

            processed = src
            for op in ops:
                overlay = self._load_overlay(user_id, op) if isinstance(op, MergeImages) else None
                processed = self.processing.apply(processed, op, overlay)
        except ProcessingError as exc:
            logger.warning(
                "Rejected batch on %s for user %s: %s (%s)", image_id, user_id, exc.message, exc.kind
            )
            raise

        if len(ops) == 1:
            operation_type = ops[0].name
            parameters = ops[0].to_params()
        else:
            operation_type = BATCH_OPERATION_TYPE
            parameters = {"operations": [op.to_dict() for op in ops]}

        entity, history = self._persist(
            user_id, root, processed, operation_type, parameters
        )
        logger.info(
            "Applied %d operation(s) on root %s (anchor %s) -> %s",
            len(ops),
            root.id,
            image_id,
            entity.id,
        )
        return BatchResult(
            image=entity,
            history=history,
            anchor_image_id=image_id,
            root_image_id=root.id,
            operations=ops,
        )

    def reset(self, user_id: str, image_id: str) -> BatchResult:
        """Create a new version whose pixels are the root's, recorded as a reset."""
        resolution = self.resolver.resolve(user_id, image_id)
        root = resolution.root
        src = self.storage.download_to_numpy(root.path)
        entity, history = self._persist(
            user_id, root, src, RESET_OPERATION_TYPE, {"anchor_image_id": image_id}
        )
        logger.info("Reset %s to root %s -> %s", image_id, root.id, entity.id)
        return BatchResult(
            image=entity, history=history, anchor_image_id=image_id, root_image_id=root.id
        )

    def _load_overlay(self, user_id: str, op: MergeImages) -> np.ndarray:
        # the overlay is the referenced image itself, not its root
        other = self.resolver.get_owned(user_id, op.other_image_id)
        return self.storage.download_to_numpy(other.path)

    def _persist(
        self,
        user_id: str,
        root: ImageEntity,
        buffer: np.ndarray,
        operation_type: str,
        parameters: dict[str, Any],
    ) -> tuple[ImageEntity, EditHistoryEntity]:
        stored: StorageResult | None = None
        entity: ImageEntity | None = None
        try:
            stored = self.storage.upload_numpy(user_id=user_id, array=buffer, ext="png")
            entity = self.image_repo.create(
                user_id=user_id,
                path=stored.path,
                width=stored.width,
                height=stored.height,
                mime_type=stored.content_type,
                original_id=root.id,
                original_filename=root.original_filename,
                file_size=stored.size,
            )
            history = self.history_repo.create(
                user_id=user_id,
                image_id=entity.id,
                operation_type=operation_type,
                parameters=parameters,
                result_storage_path=entity.path,
                source_image_id=root.id,
                root_image_id=root.id,
            )
        except Exception as exc:
            self._compensate(stored, entity)
            logger.error("Persisting %s result for root %s failed: %s", operation_type, root.id, exc)
            if isinstance(exc, PersistenceFailure):
                raise
            raise PersistenceFailure(f"Could not persist processed image: {exc}") from exc
        return entity, history

    def _compensate(self, stored: StorageResult | None, entity: ImageEntity | None) -> None:
        if entity is not None:
            try:
                self.image_repo.delete(entity.id)
            except Exception:
                logger.exception("Rollback of image row %s failed", entity.id)
        if stored is not None:
            try:
                self.storage.delete(stored.path)
            except Exception:
                logger.exception("Rollback of stored bytes %s failed", stored.path)
