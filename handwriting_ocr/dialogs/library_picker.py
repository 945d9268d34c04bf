"""Searchable picker over the images stored in the library folder."""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

import customtkinter as ctk
from async_tkinter_loop import async_handler

from handwriting_ocr.dialogs.placement import center_on_parent
from handwriting_ocr.sources import filter_library_images, list_library_images

log = logging.getLogger(__name__)

# Rows rendered at once; the search narrows the rest
MAX_VISIBLE_ROWS = 200


class LibraryPicker(ctk.CTkToplevel):
    """Lets the user tick one or more library images to add to the scan."""

    def __init__(
        self,
        master,
        root: Path,
        on_choose: Optional[Callable[[List[Path]], None]] = None,
    ):
        super().__init__(master)
        self.root = Path(root)
        self.on_choose = on_choose
        self.all_paths: List[Path] = []
        self.loaded = False
        self.selected: Dict[Path, ctk.BooleanVar] = {}

        self.title("Choose from library")
        self.geometry("520x560")
        self.protocol("WM_DELETE_WINDOW", self._close)

        self.transient(master)
        self.grab_set()

        self._setup_ui()
        self._refresh()
        center_on_parent(self)
        async_handler(self._load)()

    def _setup_ui(self) -> None:
        self.search_var = ctk.StringVar()
        self.search_entry = ctk.CTkEntry(
            self,
            textvariable=self.search_var,
            placeholder_text=f"Search {self.root}",
        )
        self.search_entry.pack(fill="x", padx=10, pady=(10, 5))
        self.search_var.trace_add("write", lambda *args: self._refresh())

        self.list_frame = ctk.CTkScrollableFrame(self)
        self.list_frame.pack(fill="both", expand=True, padx=10, pady=5)

        self.count_label = ctk.CTkLabel(self, text="", anchor="w")
        self.count_label.pack(fill="x", padx=10)

        button_frame = ctk.CTkFrame(self)
        button_frame.pack(fill="x", padx=10, pady=10)

        ctk.CTkButton(button_frame, text="Cancel", command=self._close).pack(
            side="left", padx=5
        )
        self.add_button = ctk.CTkButton(
            button_frame, text="Add selected", command=self._choose
        )
        self.add_button.pack(side="right", padx=5)

    async def _load(self) -> None:
        """Walk the library folder off the Tk thread."""
        try:
            paths = await asyncio.to_thread(list_library_images, self.root)
        except OSError as e:
            log.error(f"Could not list {self.root}: {e}")
            paths = []

        if not self.winfo_exists():
            return
        self.all_paths = paths
        self.loaded = True
        self._refresh()

    def _refresh(self) -> None:
        """Rebuild the list for the current search text."""
        for child in self.list_frame.winfo_children():
            child.destroy()

        if not self.loaded:
            self.count_label.configure(text=f"Looking for images in {self.root}...")
            return

        matches = filter_library_images(self.all_paths, self.search_var.get(), self.root)
        for path in matches[:MAX_VISIBLE_ROWS]:
            var = self.selected.setdefault(path, ctk.BooleanVar(value=False))
            ctk.CTkCheckBox(
                self.list_frame,
                text=path.relative_to(self.root).as_posix(),
                variable=var,
            ).pack(fill="x", padx=5, pady=2)

        if not self.all_paths:
            self.count_label.configure(text=f"No images found in {self.root}")
        else:
            self.count_label.configure(
                text=f"{len(matches)} of {len(self.all_paths)} images"
            )

    def _close(self) -> None:
        self.destroy()
        # Hand the modal grab back to the scan dialog
        if self.master.winfo_exists():
            self.master.grab_set()

    def _choose(self) -> None:
        # Keep library order, not click order
        chosen = [p for p in self.all_paths if p in self.selected and self.selected[p].get()]
        log.debug(f"Picked {len(chosen)} library images")
        self._close()
        if chosen and self.on_choose:
            self.on_choose(chosen)
