"""Data models for queued pages."""

import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from handwriting_ocr.preview import PreviewHandle


class PageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


def new_page_id() -> str:
    """Time-based id with a random suffix, unique within a session."""
    return f"{time.time_ns():x}-{secrets.token_hex(4)}"


@dataclass(eq=False)
class PageItem:
    """A single page awaiting or having undergone extraction."""

    image_bytes: bytes
    mime_type: str
    source_name: str
    id: str = field(default_factory=new_page_id)
    status: PageStatus = PageStatus.PENDING
    error_detail: Optional[str] = None
    preview: Optional[PreviewHandle] = None
    normalized: bool = False

    def replace_image(self, image_bytes: bytes, mime_type: str) -> None:
        """Swap bytes and MIME type together so they never disagree."""
        self.image_bytes = image_bytes
        self.mime_type = mime_type

    def set_status(self, status: PageStatus, error_detail: Optional[str] = None) -> None:
        self.status = status
        self.error_detail = error_detail if status is PageStatus.ERROR else None

    def release_preview(self) -> None:
        if self.preview is not None:
            self.preview.release()
            self.preview = None
