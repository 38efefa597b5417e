from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass

from src.domain.services.derivation_resolver import DerivationResolver
from src.domain.services.processing_service import ProcessingService
from src.infrastructure.storage.supabase_storage import SupabaseStorage

Histogram = dict[str, list[int]]


class HistogramCache:
    """Bounded LRU of histograms keyed by image id.

    Image ids are never reused for different pixels, so entries never go stale.
    """

    def __init__(self, maxsize: int = 128) -> None:
        self.maxsize = maxsize
        self._data: OrderedDict[str, Histogram] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, image_id: str) -> Histogram | None:
        with self._lock:
            hist = self._data.get(image_id)
            if hist is not None:
                self._data.move_to_end(image_id)
            return hist

    def put(self, image_id: str, hist: Histogram) -> None:
        if self.maxsize <= 0:
            return
        with self._lock:
            self._data[image_id] = hist
            self._data.move_to_end(image_id)
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)

    def __len__(self) -> int:
        return len(self._data)


@dataclass
class ComputeHistogramUseCase:
    storage: SupabaseStorage
    resolver: DerivationResolver
    processing: ProcessingService
    cache: HistogramCache | None = None

    def execute(self, user_id: str, image_id: str) -> Histogram:
        """Per-channel intensity counts: {"gray": [...]} or {"red", "green", "blue"}."""
        entity = self.resolver.get_owned(user_id, image_id)
        if self.cache is not None:
            cached = self.cache.get(entity.id)
            if cached is not None:
                return cached
        arr = self.storage.download_to_numpy(entity.path)
        hist = {name: counts.tolist() for name, counts in self.processing.calculate_histogram(arr).items()}
        if self.cache is not None:
            self.cache.put(entity.id, hist)
        return hist
