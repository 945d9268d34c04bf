"""Modal scan dialog that renders one ScanSession phase at a time."""

import logging
from pathlib import Path
from tkinter import filedialog
from typing import Callable, List, Optional, Sequence

import customtkinter as ctk
from async_tkinter_loop import async_handler

from handwriting_ocr.components.page_strip import PageStrip
from handwriting_ocr.config import Config
from handwriting_ocr.dialogs.library_picker import LibraryPicker
from handwriting_ocr.dialogs.placement import center_on_parent
from handwriting_ocr.models.callbacks import SessionCallbacks
from handwriting_ocr.models.page_models import PageItem
from handwriting_ocr.models.session_state import Action, Phase
from handwriting_ocr.session import InsertionTarget, ScanSession
from handwriting_ocr.sources import MIME_MAP, ImageSource, read_image_file

log = logging.getLogger(__name__)

FILE_TYPES = [
    ("Images", " ".join(f"*.{ext}" for ext in MIME_MAP)),
    ("All files", "*.*"),
]

PHASE_TITLES = {
    Phase.SELECT: "Scan handwriting",
    Phase.QUEUE: "Arrange pages",
    Phase.PROCESSING: "Extracting text",
    Phase.PREVIEW: "Review text",
    Phase.ERROR: "Scan failed",
}


class ScanDialog(ctk.CTkToplevel):
    """Shows the scan workflow and forwards user actions to the session."""

    def __init__(
        self,
        master,
        target: InsertionTarget,
        config: Optional[Config] = None,
        on_inserted: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the scan dialog.

        Args:
            master: Parent widget
            target: Receives the final text on insert
            config: Config instance (uses singleton if None)
            on_inserted: Callback with the inserted text
        """
        super().__init__(master)
        self.config = config or Config()
        self._destroyed = False
        self.strip: Optional[PageStrip] = None
        self.result_box: Optional[ctk.CTkTextbox] = None

        callbacks = SessionCallbacks(
            on_phase_change=self._on_phase_change,
            on_pages_changed=self._on_pages_changed,
            on_error=self._on_error,
            on_inserted=on_inserted or (lambda text: None),
            on_closed=self._on_closed,
        )
        self.session = ScanSession(
            target, settings_provider=self.config.snapshot, callbacks=callbacks
        )

        self.title(PHASE_TITLES[Phase.SELECT])
        self.geometry("620x640")
        self.protocol("WM_DELETE_WINDOW", self._close)

        self.transient(master)
        self.grab_set()

        self.content = ctk.CTkFrame(self, fg_color="transparent")
        self.content.pack(fill="both", expand=True, padx=12, pady=12)

        self._render(self.session.phase)
        center_on_parent(self)

    async def start_with_image(self, source: ImageSource) -> None:
        """Run a single-image scan (clipboard) without showing the queue."""
        await self.session.start_with_image(source)

    def _on_phase_change(self, phase: Phase) -> None:
        if not self._destroyed:
            self._render(phase)

    def _on_pages_changed(self, pages: Sequence[PageItem]) -> None:
        if self._destroyed:
            return
        if self.strip is not None and self.strip.winfo_exists():
            self.strip.set_pages(pages)

    def _on_error(self, message: str) -> None:
        log.warning(f"Scan failed: {message}")

    def _on_closed(self) -> None:
        if not self._destroyed:
            self._destroyed = True
            self.destroy()

    def _clear(self) -> None:
        for child in self.content.winfo_children():
            child.destroy()
        self.strip = None
        self.result_box = None

    def _render(self, phase: Phase) -> None:
        self._clear()
        self.title(PHASE_TITLES[phase])
        {
            Phase.SELECT: self._render_select,
            Phase.QUEUE: self._render_queue,
            Phase.PROCESSING: self._render_processing,
            Phase.PREVIEW: self._render_preview,
            Phase.ERROR: self._render_error,
        }[phase]()

    def _button_bar(self) -> ctk.CTkFrame:
        bar = ctk.CTkFrame(self.content, fg_color="transparent")
        bar.pack(side="bottom", fill="x", pady=(10, 0))
        ctk.CTkButton(bar, text="Close", fg_color="gray30", command=self._close).pack(
            side="left", padx=5
        )
        return bar

    def _render_select(self) -> None:
        ctk.CTkLabel(
            self.content,
            text="Add photos of handwritten pages",
            font=ctk.CTkFont(size=18, weight="bold"),
        ).pack(pady=(40, 20))

        ctk.CTkButton(
            self.content, text="Choose files...", command=async_handler(self._choose_files)
        ).pack(pady=5)
        ctk.CTkButton(
            self.content, text="Choose from library...", command=self._open_library
        ).pack(pady=5)

        self.notice_label = ctk.CTkLabel(self.content, text="", text_color="gray60")
        self.notice_label.pack(pady=10)
        self._button_bar()

    def _render_queue(self) -> None:
        bar = self._button_bar()
        ctk.CTkButton(
            bar, text="Extract text", command=async_handler(self._confirm)
        ).pack(side="right", padx=5)
        ctk.CTkButton(
            bar, text="Add more...", command=async_handler(self._choose_files)
        ).pack(side="right", padx=5)
        ctk.CTkButton(bar, text="Library...", command=self._open_library).pack(
            side="right", padx=5
        )

        self.strip = PageStrip(
            self.content,
            on_move=self._move_page,
            on_remove=self._remove_page,
            thumbnail_size=(120, 165),
        )
        self.strip.pack(fill="both", expand=True)
        self.strip.set_pages(self.session.pages.snapshot_order())

    def _render_processing(self) -> None:
        self._button_bar()
        count = len(self.session.pages)
        noun = "page" if count == 1 else "pages"
        model = self.session.last_settings.model_name if self.session.last_settings else ""
        ctk.CTkLabel(
            self.content,
            text=f"Sending {count} {noun} to {model}...",
            font=ctk.CTkFont(size=16),
        ).pack(pady=(20, 10))

        progress = ctk.CTkProgressBar(self.content, mode="indeterminate")
        progress.pack(fill="x", padx=40, pady=10)
        progress.start()

        self.strip = PageStrip(self.content, editable=False, thumbnail_size=(90, 124))
        self.strip.pack(fill="both", expand=True)
        self.strip.set_pages(self.session.pages.snapshot_order())

    def _render_preview(self) -> None:
        bar = self._button_bar()
        ctk.CTkButton(bar, text="Insert", command=self._insert).pack(side="right", padx=5)
        if Action.RE_EXTRACT in self.session.available_actions():
            ctk.CTkButton(
                bar, text="Re-extract", command=async_handler(self._re_extract)
            ).pack(side="right", padx=5)

        ctk.CTkLabel(
            self.content, text="Edit the text before inserting it", anchor="w"
        ).pack(fill="x")
        self.result_box = ctk.CTkTextbox(self.content, wrap="word")
        self.result_box.insert("1.0", self.session.result_text)
        self.result_box.pack(fill="both", expand=True, pady=(5, 0))
        self.result_box.bind("<KeyRelease>", self._on_result_edited)
        self.result_box.focus_set()

    def _render_error(self) -> None:
        bar = self._button_bar()
        ctk.CTkButton(bar, text="Retry", command=async_handler(self._retry)).pack(
            side="right", padx=5
        )
        if Action.BACK in self.session.available_actions():
            ctk.CTkButton(bar, text="Back", command=self._back).pack(
                side="right", padx=5
            )

        ctk.CTkLabel(
            self.content,
            text=self.session.error_message or "Extraction failed.",
            text_color="#ef4444",
            wraplength=540,
            justify="left",
        ).pack(fill="x", pady=(10, 10))

        self.strip = PageStrip(self.content, editable=False, thumbnail_size=(90, 124))
        self.strip.pack(fill="both", expand=True)
        self.strip.set_pages(self.session.pages.snapshot_order())

    async def _choose_files(self) -> None:
        file_paths = filedialog.askopenfilenames(
            parent=self, title="Select images", filetypes=FILE_TYPES
        )
        if file_paths:
            await self._add_paths([Path(p) for p in file_paths])

    def _open_library(self) -> None:
        LibraryPicker(
            self,
            root=Path(self.config.LIBRARY_DIR).expanduser(),
            on_choose=async_handler(self._add_paths),
        )

    async def _add_paths(self, paths: List[Path]) -> None:
        sources = []
        for path in paths:
            try:
                sources.append(read_image_file(path))
            except OSError as e:
                log.error(f"Could not read {path}: {e}")
        if not sources:
            if self.session.phase is Phase.SELECT:
                self.notice_label.configure(text="None of the selected files could be read.")
            return
        await self.session.add_sources(sources)

    def _move_page(self, index_a: int, index_b: int) -> None:
        self.session.move_page(index_a, index_b)

    def _remove_page(self, index: int) -> None:
        self.session.remove_page(index)

    async def _confirm(self) -> None:
        await self.session.confirm()

    async def _retry(self) -> None:
        await self.session.retry()

    async def _re_extract(self) -> None:
        await self.session.re_extract()

    def _back(self) -> None:
        self.session.back()

    def _on_result_edited(self, event=None) -> None:
        if self.result_box is not None:
            self.session.set_result_text(self.result_box.get("1.0", "end-1c"))

    def _insert(self) -> None:
        self._on_result_edited()
        self.session.insert()

    def _close(self) -> None:
        if self.session.closed:
            self._on_closed()
        else:
            self.session.close()
