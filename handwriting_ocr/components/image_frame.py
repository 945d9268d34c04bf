"""Single page card in the scan queue: thumbnail, label and reorder controls."""

from typing import Callable, Optional

import customtkinter as ctk

from handwriting_ocr.models.page_models import PageItem, PageStatus

STATUS_COLORS = {
    PageStatus.PENDING: "gray60",
    PageStatus.PROCESSING: "#3b82f6",
    PageStatus.DONE: "#22c55e",
    PageStatus.ERROR: "#ef4444",
}


class ImageFrame(ctk.CTkFrame):
    """A single page thumbnail in the page strip."""

    def __init__(
        self,
        master,
        on_move_up: Optional[Callable[["ImageFrame"], None]] = None,
        on_move_down: Optional[Callable[["ImageFrame"], None]] = None,
        on_remove: Optional[Callable[["ImageFrame"], None]] = None,
        thumbnail_size: tuple[int, int] = (120, 165),
        editable: bool = True,
        **kwargs,
    ):
        """
        Initialize a page frame.

        Args:
            master: Parent widget (PageStrip)
            on_move_up: Callback when the page is moved one position earlier
            on_move_down: Callback when the page is moved one position later
            on_remove: Callback when the page is removed from the queue
            thumbnail_size: (width, height) bounding box for the thumbnail
            editable: Show reorder/remove buttons
            **kwargs: Additional arguments for CTkFrame
        """
        super().__init__(master, **kwargs)
        self.on_move_up = on_move_up
        self.on_move_down = on_move_down
        self.on_remove = on_remove
        self.thumbnail_width, self.thumbnail_height = thumbnail_size
        self.editable = editable
        self.page: Optional[PageItem] = None
        self.index = 0
        self.photo_image: Optional[ctk.CTkImage] = None

        self._setup_ui()

    def _setup_ui(self) -> None:
        """Setup the user interface."""
        self.image_label = ctk.CTkLabel(
            self,
            text="Loading...",
            width=self.thumbnail_width,
            height=self.thumbnail_height,
        )
        self.image_label.grid(row=0, column=0, rowspan=3, padx=5, pady=5)

        self.metadata_label = ctk.CTkLabel(
            self, text="", font=ctk.CTkFont(size=12, weight="bold"), anchor="w"
        )
        self.metadata_label.grid(row=0, column=1, sticky="w", padx=5, pady=(5, 0))

        self.status_label = ctk.CTkLabel(
            self, text="", font=ctk.CTkFont(size=11), anchor="w"
        )
        self.status_label.grid(row=1, column=1, sticky="w", padx=5)

        self.button_frame = ctk.CTkFrame(self, fg_color="transparent")
        self.button_frame.grid(row=2, column=1, sticky="w", padx=5, pady=(0, 5))

        if self.editable:
            self.up_button = ctk.CTkButton(
                self.button_frame, text="↑", width=30, command=self._move_up
            )
            self.up_button.pack(side="left", padx=2)
            self.down_button = ctk.CTkButton(
                self.button_frame, text="↓", width=30, command=self._move_down
            )
            self.down_button.pack(side="left", padx=2)
            self.remove_button = ctk.CTkButton(
                self.button_frame,
                text="Remove",
                width=70,
                fg_color="gray30",
                command=self._remove,
            )
            self.remove_button.pack(side="left", padx=(8, 2))

    def load_page(self, page: PageItem, index: int, total: int) -> None:
        """Show a page and enable the controls that make sense at its position."""
        self.page = page
        self.index = index
        self.metadata_label.configure(text=f"Page {index + 1}  ·  {page.source_name}")

        status_text = page.status.value
        if page.status is PageStatus.ERROR and page.error_detail:
            status_text = f"error: {page.error_detail}"
        self.status_label.configure(
            text=status_text, text_color=STATUS_COLORS[page.status]
        )

        self.photo_image = None
        if page.preview is not None and page.preview.renderable:
            thumb = page.preview.image.copy()
            thumb.thumbnail((self.thumbnail_width, self.thumbnail_height))
            self.photo_image = ctk.CTkImage(
                light_image=thumb, dark_image=thumb, size=(thumb.width, thumb.height)
            )
            self.image_label.configure(image=self.photo_image, text="")
        elif page.preview is not None:
            # Not decodable here (e.g. HEIC without a converter); still sent as-is
            self.image_label.configure(image="", text="No preview")
        else:
            self.image_label.configure(image="", text="Loading...")

        if self.editable:
            self.up_button.configure(state="normal" if index > 0 else "disabled")
            self.down_button.configure(
                state="normal" if index < total - 1 else "disabled"
            )

    def unload(self) -> None:
        """Drop the displayed image to free memory."""
        self.image_label.configure(image="", text="")
        self.photo_image = None
        self.page = None

    def _move_up(self) -> None:
        if self.on_move_up:
            self.on_move_up(self)

    def _move_down(self) -> None:
        if self.on_move_down:
            self.on_move_down(self)

    def _remove(self) -> None:
        if self.on_remove:
            self.on_remove(self)
