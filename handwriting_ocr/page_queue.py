"""Ordered queue of pages waiting to be sent for extraction."""

import logging
from typing import Iterator, List, Optional, Tuple

from handwriting_ocr.image_handler import normalize_image
from handwriting_ocr.models.page_models import PageItem, PageStatus
from handwriting_ocr.models.scan_settings import ScanSettings
from handwriting_ocr.preview import THUMBNAIL_SIZE, create_preview

log = logging.getLogger(__name__)


class PageQueue:
    """
    Owns the pages of one scan session and their preview handles.

    Order is insertion order and only changes through move() or remove().
    Every preview handle created here is released by remove() or clear().
    """

    def __init__(self, thumbnail_size: Tuple[int, int] = THUMBNAIL_SIZE) -> None:
        self._pages: List[PageItem] = []
        self.thumbnail_size = thumbnail_size

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[PageItem]:
        return iter(list(self._pages))

    def __getitem__(self, index: int) -> PageItem:
        return self._pages[index]

    @property
    def is_empty(self) -> bool:
        return not self._pages

    def add_from_source(
        self, image_bytes: bytes, mime_type: str, source_name: str
    ) -> PageItem:
        """Append a pending page. Normalization is deferred to ensure_previews()."""
        page = PageItem(
            image_bytes=image_bytes, mime_type=mime_type, source_name=source_name
        )
        self._pages.append(page)
        log.debug(
            f"Queued page {len(self._pages)} {page.id} from {source_name} ({mime_type}, {len(image_bytes)} bytes)"
        )
        return page

    async def normalize_page(
        self, page: PageItem, settings: Optional[ScanSettings] = None
    ) -> None:
        """Normalize a page's bytes in place, at most once."""
        if page.normalized:
            return
        settings = settings or ScanSettings()
        image_bytes, mime_type = await normalize_image(
            page.image_bytes,
            page.mime_type,
            max_dimension=settings.max_image_dimension,
            quality=settings.jpeg_quality,
            decode_timeout=settings.decode_timeout,
        )
        page.replace_image(image_bytes, mime_type)
        page.normalized = True

    async def ensure_previews(self, settings: Optional[ScanSettings] = None) -> None:
        """Normalize and create a preview for every page that lacks one."""
        for page in list(self._pages):
            if page.preview is not None:
                continue
            await self.normalize_page(page, settings)
            if page not in self._pages:
                # Removed while we were normalizing
                continue
            page.release_preview()
            page.preview = create_preview(page.image_bytes, self.thumbnail_size)

    def move(self, index_a: int, index_b: int) -> bool:
        """Swap two pages by position. Returns False (and does nothing) if out of range."""
        count = len(self._pages)
        if not (0 <= index_a < count and 0 <= index_b < count):
            return False
        if index_a == index_b:
            return False
        self._pages[index_a], self._pages[index_b] = (
            self._pages[index_b],
            self._pages[index_a],
        )
        log.debug(f"Swapped pages {index_a + 1} and {index_b + 1}")
        return True

    def remove(self, index: int) -> Optional[PageItem]:
        """Delete the page at index and release its preview. None if out of range."""
        if not 0 <= index < len(self._pages):
            return None
        page = self._pages.pop(index)
        page.release_preview()
        log.debug(f"Removed page {index + 1} ({page.source_name})")
        return page

    def snapshot_order(self) -> Tuple[PageItem, ...]:
        """Current pages in order, as an immutable sequence."""
        return tuple(self._pages)

    def mark_all(self, status: PageStatus, error_detail: Optional[str] = None) -> None:
        for page in self._pages:
            page.set_status(status, error_detail)

    def clear(self) -> None:
        """Drop every page and release every preview handle."""
        for page in self._pages:
            page.release_preview()
        self._pages.clear()
