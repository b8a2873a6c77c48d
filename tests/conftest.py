import io
import os
import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'imgvault' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("INDEX_DISABLED", "1")
os.environ.setdefault("HOSTS_DISABLED", "1")
os.environ.setdefault("HOSTS_LOCAL_DIR", tempfile.mkdtemp(prefix="imgvault-hosts-"))
os.environ.setdefault("VAULT_API_TOKEN", "test-token")


def block_pixels(seed: int, blocks: int = 8, block_size: int = 8) -> np.ndarray:
    """Grayscale pattern of random flat blocks, replicated to RGB."""
    rng = np.random.default_rng(seed)
    cells = rng.integers(0, 256, size=(blocks, blocks)).astype(np.uint8)
    gray = np.kron(cells, np.ones((block_size, block_size), dtype=np.uint8))
    return np.stack([gray, gray, gray], axis=-1)


def encode(pixels: np.ndarray, fmt: str = "PNG", **save_kwargs) -> bytes:
    img = Image.fromarray(pixels)
    buf = io.BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


@pytest.fixture()
def make_image():
    """Factory: encoded bytes of the block pattern for ``seed``."""

    def _make(seed: int = 1, fmt: str = "PNG", **save_kwargs) -> bytes:
        return encode(block_pixels(seed), fmt, **save_kwargs)

    return _make


@pytest.fixture(autouse=True)
def _clean_index():
    from imgvault.infrastructure.database.repositories.document_repository import reset_memory_store

    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture()
def settings(tmp_path):
    from imgvault.infrastructure.config import load_settings

    return load_settings({"INDEX_DISABLED": "1", "HOSTS_DISABLED": "1", "HOSTS_LOCAL_DIR": str(tmp_path)})


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from imgvault.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def auth_header() -> dict[str, str]:
    return {"Authorization": "Bearer test-token"}
