from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.application.use_cases.batch_process_image import BatchProcessImageUseCase, BatchResult
from src.domain.entities.operation import parse_operation


@dataclass
class ProcessImageUseCase:
    """
    Apply a single operation as a batch of length one.

    Single-step edits go through exactly the same root anchoring as batches,
    so repeatedly brightening an image derives each result from the original
    upload instead of from the previous result.
    """

    batch: BatchProcessImageUseCase

    def execute(
        self, user_id: str, image_id: str, operation: str, params: dict[str, Any]
    ) -> BatchResult:
        op = parse_operation(operation, params)
        return self.batch.execute(user_id, image_id, [op])
