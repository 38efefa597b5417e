from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class EditHistoryEntity:
    id: str
    user_id: str
    image_id: str  # The derived image this batch produced
    operation_type: str  # operation name, "batch_process" or "reset"
    parameters: dict[str, Any]
    created_at: datetime
    result_storage_path: str | None = None
    source_image_id: str | None = None  # The buffer the batch was folded over
    root_image_id: str | None = None
