"""Revocable preview handles for queued pages."""

import logging
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image

log = logging.getLogger(__name__)

THUMBNAIL_SIZE = (320, 440)


class PreviewHandle:
    """
    Owns a thumbnail-sized rendering of a page's bytes.

    A handle whose bytes could not be decoded still exists (so release
    bookkeeping stays uniform) but is not renderable.
    """

    def __init__(self, image: Optional[Image.Image]):
        self._image = image
        self._released = False

    @property
    def renderable(self) -> bool:
        return self._image is not None and not self._released

    @property
    def released(self) -> bool:
        return self._released

    @property
    def image(self) -> Image.Image:
        if self._released:
            raise ValueError("Preview handle has been released")
        if self._image is None:
            raise ValueError("Preview is not renderable")
        return self._image

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def release(self) -> None:
        """Drop the rendered image. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        if self._image is not None:
            self._image.close()
            self._image = None


def create_preview(
    image_bytes: bytes, max_size: Tuple[int, int] = THUMBNAIL_SIZE
) -> PreviewHandle:
    """Build a preview handle. Never raises; undecodable bytes give a blank handle."""
    try:
        img = Image.open(BytesIO(image_bytes))
        img.thumbnail(max_size, Image.Resampling.LANCZOS)
        img.load()
    except Exception as e:
        log.debug(f"Preview not renderable: {e}")
        return PreviewHandle(None)
    return PreviewHandle(img)
