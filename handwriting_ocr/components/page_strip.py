"""Scrollable strip of queued pages with reorder and remove controls."""

from typing import Callable, List, Optional, Sequence

import customtkinter as ctk

from handwriting_ocr.components.image_frame import ImageFrame
from handwriting_ocr.models.page_models import PageItem


class PageStrip(ctk.CTkScrollableFrame):
    """Shows the scan queue in page order."""

    def __init__(
        self,
        master,
        on_move: Optional[Callable[[int, int], None]] = None,
        on_remove: Optional[Callable[[int], None]] = None,
        thumbnail_size: tuple[int, int] = (120, 165),
        editable: bool = True,
        **kwargs,
    ):
        """
        Initialize the page strip.

        Args:
            master: Parent widget
            on_move: Callback to swap two pages: (index_a, index_b)
            on_remove: Callback to remove a page: (index)
            thumbnail_size: (width, height) tuple for thumbnail dimensions
            editable: Show reorder/remove controls on each page
            **kwargs: Additional arguments for CTkScrollableFrame
        """
        super().__init__(master, **kwargs)
        self.on_move = on_move
        self.on_remove = on_remove
        self.thumbnail_size = thumbnail_size
        self.editable = editable
        self.frames: List[ImageFrame] = []

    def set_pages(self, pages: Sequence[PageItem]) -> None:
        """Re-render for the given pages, reusing existing frames."""
        while len(self.frames) < len(pages):
            frame = ImageFrame(
                self,
                on_move_up=self._on_move_up,
                on_move_down=self._on_move_down,
                on_remove=self._on_remove,
                thumbnail_size=self.thumbnail_size,
                editable=self.editable,
            )
            self.frames.append(frame)

        while len(self.frames) > len(pages):
            frame = self.frames.pop()
            frame.unload()
            frame.destroy()

        for i, (frame, page) in enumerate(zip(self.frames, pages)):
            frame.load_page(page, i, len(pages))
            frame.pack(fill="x", padx=5, pady=3)

    def _on_move_up(self, frame: ImageFrame) -> None:
        if self.on_move and frame.index > 0:
            self.on_move(frame.index, frame.index - 1)

    def _on_move_down(self, frame: ImageFrame) -> None:
        if self.on_move:
            self.on_move(frame.index, frame.index + 1)

    def _on_remove(self, frame: ImageFrame) -> None:
        if self.on_remove:
            self.on_remove(frame.index)
