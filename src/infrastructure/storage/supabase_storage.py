from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image
from supabase import Client

from src.config import get_settings
from src.domain.errors import NotFound, PersistenceFailure

logger = logging.getLogger(__name__)

# Derived images are always written losslessly so re-encoding never adds degradation.
_FORMATS = {"png": ("PNG", "image/png"), "jpg": ("JPEG", "image/jpeg"), "jpeg": ("JPEG", "image/jpeg")}


@dataclass
class StorageResult:
    path: str
    width: int
    height: int
    content_type: str
    size: int


def decode_image(data: bytes) -> tuple[np.ndarray, str]:
    """Decode raw bytes into a uint8 buffer, (H, W) for grayscale and (H, W, 3) otherwise."""
    img = Image.open(BytesIO(data))
    mime = Image.MIME.get(img.format or "", "image/png")
    if img.mode.startswith("I"):
        # 16-bit grayscale: keep the high byte
        wide = np.asarray(img).astype(np.int64)
        if img.mode.startswith("I;16") or wide.max(initial=0) > 255:
            wide = wide >> 8
        return np.clip(wide, 0, 255).astype(np.uint8), mime
    img = img.convert("L") if img.mode in ("L", "1") else img.convert("RGB")
    return np.asarray(img, dtype=np.uint8).copy(), mime


def encode_image(array: np.ndarray, ext: str) -> tuple[bytes, str]:
    arr = np.asarray(array)
    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    # uint8 (H, W) becomes mode "L", uint8 (H, W, 3) becomes "RGB"
    img = Image.fromarray(np.ascontiguousarray(arr if arr.ndim == 2 else arr[..., :3]))
    fmt, content_type = _FORMATS.get(ext.lower(), _FORMATS["png"])
    buf = BytesIO()
    if fmt == "JPEG":
        img.save(buf, format=fmt, quality=95)
    else:
        img.save(buf, format=fmt)
    return buf.getvalue(), content_type


class SupabaseStorage:
    """Storage adapter for Supabase Storage with a local fake fallback."""

    def __init__(self, client: Client | None) -> None:
        settings = get_settings()
        self.client = client
        self.bucket = settings.storage_bucket
        self.disabled = settings.supabase_disabled
        self.local_dir = Path(settings.storage_local_dir)
        if self.disabled or self.client is None:
            self.local_dir.mkdir(parents=True, exist_ok=True)

    def _local(self) -> bool:
        return self.disabled or self.client is None

    def upload_numpy(self, user_id: str, array: np.ndarray, ext: str = "png") -> StorageResult:
        ext = ext.lower().lstrip(".")
        if ext not in _FORMATS:
            ext = "png"
        image_bytes, content_type = encode_image(array, ext)
        height, width = array.shape[:2]
        storage_path = f"{user_id}/{uuid.uuid4()}.{ext}"
        if self._local():
            full_path = self.local_dir / storage_path
            try:
                full_path.parent.mkdir(parents=True, exist_ok=True)
                full_path.write_bytes(image_bytes)
            except OSError as exc:
                raise PersistenceFailure(f"Storage upload failed: {exc}") from exc
        else:
            try:  # pragma: no cover - network
                self.client.storage.from_(self.bucket).upload(
                    path=storage_path,
                    file=image_bytes,
                    file_options={"content-type": content_type},
                )
            except Exception as exc:  # pragma: no cover
                raise PersistenceFailure(f"Storage upload failed: {exc}") from exc
        logger.debug("Stored %s (%dx%d, %d bytes)", storage_path, width, height, len(image_bytes))
        return StorageResult(
            path=storage_path,
            width=width,
            height=height,
            content_type=content_type,
            size=len(image_bytes),
        )

    def download_to_numpy(self, path: str) -> np.ndarray:
        data = self.download_bytes(path)
        try:
            arr, _ = decode_image(data)
        except (OSError, ValueError) as exc:
            logger.error("Stored image %s could not be decoded: %s", path, exc)
            raise PersistenceFailure(f"Stored image {path} could not be decoded: {exc}") from exc
        return arr

    def download_bytes(self, path: str) -> bytes:
        if self._local():
            full_path = self.local_dir / path
            try:
                return full_path.read_bytes()
            except FileNotFoundError as exc:
                raise NotFound(f"Image bytes not found: {path}") from exc
        try:  # pragma: no cover - network
            return self.client.storage.from_(self.bucket).download(path)
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"Storage download failed: {exc}") from exc

    def delete(self, path: str) -> None:
        if self._local():
            full_path = self.local_dir / path
            if full_path.exists():
                full_path.unlink()
            return
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).remove([path])
        except Exception as exc:  # pragma: no cover
            raise PersistenceFailure(f"Storage delete failed: {exc}") from exc

    def get_public_url(self, storage_path: str) -> str:
        if self._local():
            return f"/local-storage/{storage_path}"
        try:  # pragma: no cover - network
            return self.client.storage.from_(self.bucket).get_public_url(storage_path)
        except Exception:  # pragma: no cover
            return ""
