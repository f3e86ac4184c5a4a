from datetime import datetime
from io import BytesIO
from unittest.mock import MagicMock

import pytest
from PIL import Image

from secondbrain.roots import FixedStorageRoot
from secondbrain.service import ClipboardCaptureService
from secondbrain.storage import StorageManager

FIXED_NOW = datetime(2024, 5, 17, 9, 30, 15)
FIXED_STAMP = "2024-05-17_09-30-15"


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def make_image():
    """Factory fixture producing small encoded images."""

    def _make_image(fmt: str = "PNG", size: tuple[int, int] = (4, 3), mode: str = "RGB") -> bytes:
        buf = BytesIO()
        Image.new(mode, size, "red").save(buf, format=fmt)
        return buf.getvalue()

    return _make_image


@pytest.fixture
def data_folder(tmp_path):
    folder = tmp_path / "brain"
    folder.mkdir()
    return folder


@pytest.fixture
def clipboard():
    mock = MagicMock()
    mock.take.return_value = []
    return mock


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def service(data_folder, clipboard, notifier):
    return ClipboardCaptureService(
        FixedStorageRoot(data_folder),
        clipboard=clipboard,
        notifier=notifier,
        clock=lambda: FIXED_NOW,
    )
