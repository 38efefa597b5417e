"""
Tests for image decoding and the local storage fallback.
"""
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from src.domain.errors import PersistenceFailure
from src.infrastructure.storage.supabase_storage import SupabaseStorage, decode_image


def _png(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def test_decode_16bit_grayscale_scales_to_8bit():
    data = _png(Image.fromarray(np.full((2, 3), 40000, dtype=np.uint16)))
    arr, mime = decode_image(data)
    assert mime == "image/png"
    assert arr.shape == (2, 3)
    assert arr.dtype == np.uint8
    assert (arr == 156).all()


def test_decode_rgb_is_unchanged():
    src = np.random.default_rng(3).integers(0, 256, size=(3, 4, 3), dtype=np.uint8)
    arr, _ = decode_image(_png(Image.fromarray(src)))
    assert np.array_equal(arr, src)


def test_download_undecodable_bytes_is_persistence_failure():
    storage = SupabaseStorage(None)
    path = storage.local_dir / "decode-user" / "bad.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"not an image")

    with pytest.raises(PersistenceFailure, match="could not be decoded"):
        storage.download_to_numpy("decode-user/bad.png")
