import io
import os
import sys
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import Mock

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("SUPABASE_STORAGE_LOCAL_DIR", tempfile.mkdtemp(prefix="chromakit-test-"))


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def auth_header(request) -> dict[str, str]:
    # any token is accepted in disabled mode; one fake user per test
    return {"Authorization": f"Bearer token-{request.node.name}"}


@pytest.fixture()
def png_bytes():
    def _make(w: int = 4, h: int = 4, color=(128, 64, 32)) -> bytes:
        arr = np.zeros((h, w, 3), dtype=np.uint8)
        arr[:, :] = color
        buf = io.BytesIO()
        Image.fromarray(arr).save(buf, format="PNG")
        return buf.getvalue()

    return _make


def make_image(img_id: str, user_id: str = "user_1", original_id: str | None = None, **kw):
    from src.domain.entities.image import ImageEntity

    return ImageEntity(
        id=img_id,
        user_id=user_id,
        path=kw.get("path", f"{user_id}/{img_id}.png"),
        width=kw.get("width", 4),
        height=kw.get("height", 4),
        mime_type="image/png",
        created_at=kw.get("created_at", datetime.now(UTC)),
        original_id=original_id,
        original_filename="test.png",
        file_size=100,
    )


class FakeImageRepo:
    """Dict-backed image lookup for resolver and use case tests."""

    def __init__(self, *images):
        self.images = {img.id: img for img in images}

    def get(self, image_id):
        return self.images.get(image_id)

    def add(self, img):
        self.images[img.id] = img
        return img


@pytest.fixture
def mock_dependencies():
    """Mock storage and repositories around a real ProcessingService."""
    from src.domain.entities.edit_history import EditHistoryEntity
    from src.domain.services.processing_service import ProcessingService
    from src.infrastructure.storage.supabase_storage import StorageResult

    storage = Mock()
    image_repo = Mock()
    history_repo = Mock()
    processing = ProcessingService()

    def upload(user_id, array, ext="png"):
        h, w = array.shape[:2]
        return StorageResult(
            path=f"{user_id}/processed.{ext}", width=w, height=h, content_type="image/png", size=10
        )

    storage.upload_numpy.side_effect = upload

    def create_image(**kwargs):
        return make_image(
            "img_new",
            kwargs["user_id"],
            kwargs.get("original_id"),
            path=kwargs["path"],
            width=kwargs["width"],
            height=kwargs["height"],
        )

    image_repo.create.side_effect = create_image

    def create_history(**kwargs):
        return EditHistoryEntity(id="hist_new", created_at=datetime.now(UTC), **kwargs)

    history_repo.create.side_effect = create_history

    return storage, image_repo, history_repo, processing
