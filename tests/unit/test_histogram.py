from unittest.mock import Mock

import numpy as np
import pytest
from conftest import FakeImageRepo, make_image

from src.application.use_cases.compute_histogram import ComputeHistogramUseCase, HistogramCache
from src.domain.errors import NotFound
from src.domain.services.derivation_resolver import DerivationResolver
from src.domain.services.processing_service import ProcessingService


def _use_case(storage, cache=None, *images):
    return ComputeHistogramUseCase(
        storage=storage,
        resolver=DerivationResolver(FakeImageRepo(*images)),
        processing=ProcessingService(),
        cache=cache,
    )


def test_rgb_histogram_counts_pixels():
    storage = Mock()
    storage.download_to_numpy.return_value = np.full((3, 5, 3), 10, dtype=np.uint8)
    hist = _use_case(storage, None, make_image("img_a")).execute("user_1", "img_a")

    assert set(hist) == {"red", "green", "blue"}
    assert all(len(v) == 256 and sum(v) == 15 for v in hist.values())
    assert hist["red"][10] == 15


def test_gray_histogram():
    storage = Mock()
    storage.download_to_numpy.return_value = np.zeros((2, 2), dtype=np.uint8)
    hist = _use_case(storage, None, make_image("img_a")).execute("user_1", "img_a")
    assert list(hist) == ["gray"]
    assert hist["gray"][0] == 4


def test_histogram_is_cached_per_image():
    storage = Mock()
    storage.download_to_numpy.return_value = np.zeros((2, 2, 3), dtype=np.uint8)
    uc = _use_case(storage, HistogramCache(maxsize=4), make_image("img_a"))

    first = uc.execute("user_1", "img_a")
    second = uc.execute("user_1", "img_a")

    assert first == second
    assert storage.download_to_numpy.call_count == 1


def test_cache_still_checks_ownership():
    storage = Mock()
    storage.download_to_numpy.return_value = np.zeros((2, 2, 3), dtype=np.uint8)
    cache = HistogramCache(maxsize=4)
    _use_case(storage, cache, make_image("img_a")).execute("user_1", "img_a")

    with pytest.raises(NotFound):
        _use_case(storage, cache, make_image("img_a")).execute("user_2", "img_a")


def test_cache_evicts_least_recently_used():
    cache = HistogramCache(maxsize=2)
    cache.put("a", {"gray": [1]})
    cache.put("b", {"gray": [2]})
    assert cache.get("a") == {"gray": [1]}
    cache.put("c", {"gray": [3]})

    assert len(cache) == 2
    assert cache.get("b") is None
    assert cache.get("a") is not None
    assert cache.get("c") is not None
