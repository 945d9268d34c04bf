import asyncio
from io import BytesIO

import pytest
from PIL import Image

from handwriting_ocr.config import Config
from handwriting_ocr.models.scan_settings import ScanSettings
from handwriting_ocr.sources import ImageSource


def make_image_bytes(size=(64, 48), fmt="JPEG", color=(250, 250, 250), mode="RGB", **save_kwargs):
    img = Image.new(mode, size, color=color)
    buf = BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def make_source(label="page.jpg", size=(64, 48)):
    return ImageSource(make_image_bytes(size), "image/jpeg", label)


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes((100, 50), "JPEG")


@pytest.fixture
def png_bytes():
    return make_image_bytes((100, 50), "PNG", color=(10, 20, 30, 128), mode="RGBA")


@pytest.fixture
def bmp_bytes():
    return make_image_bytes((100, 50), "BMP")


@pytest.fixture
def settings():
    return ScanSettings(api_key="test-key", ocr_prompt="Transcribe the handwriting.")


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch, tmp_path):
    # Each test gets its own singleton and settings file
    for var in ("HWOCR_API_KEY", "HWOCR_MODEL_NAME", "HWOCR_API_BASE_URL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(Config, "_CONFIG_FILE_PATH", tmp_path / "handwriting-ocr.json")
    monkeypatch.setattr(Config, "_instance", None)
    yield


class FakeClient:
    """Records every request; replies from a script of texts and exceptions."""

    def __init__(self, replies=None, block=False):
        self.replies = list(replies or ["Hello world"])
        self.calls = []
        self.block = block
        self.started = asyncio.Event() if block else None

    async def extract_text_from_images(self, images, prompt):
        self.calls.append((list(images), prompt))
        if self.block:
            self.started.set()
            await asyncio.sleep(3600)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingTarget:
    def __init__(self):
        self.received = []

    def replace_selection(self, text):
        self.received.append(text)
