"""Desktop app: a plain note editor with a handwriting scan command."""

import logging
import os

import customtkinter as ctk
from async_tkinter_loop import async_handler, async_mainloop

from handwriting_ocr.config import Config
from handwriting_ocr.dialogs.scan_dialog import ScanDialog
from handwriting_ocr.dialogs.settings_dialog import SettingsDialog
from handwriting_ocr.sources import read_clipboard_image

log = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging() -> None:
    log_level = (
        logging.DEBUG
        if os.environ.get("HWOCR_DEBUG", "").lower() == "true"
        else logging.INFO
    )
    log_file = os.environ.get("HWOCR_LOG_FILE")
    if log_file:
        logging.basicConfig(
            level=log_level,
            filename=log_file,
            filemode="w",
            format=LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        logging.basicConfig(
            level=log_level,
            format=LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    # httpx logs every request URL, which carries the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)


class NoteEditor(ctk.CTkTextbox):
    """The host document. Scanned text replaces the selection at the cursor."""

    def replace_selection(self, text: str) -> None:
        if self.tag_ranges("sel"):
            self.delete("sel.first", "sel.last")
        self.insert("insert", text)
        self.see("insert")
        self.focus_set()


class HandwritingOCRApp:
    def __init__(self):
        self.config = Config()
        ctk.set_appearance_mode(self.config.GUI_THEME)

        self.root = ctk.CTk()
        self.root.title("Handwriting OCR")
        self.root.geometry(
            f"{self.config.GUI_WINDOW_WIDTH}x{self.config.GUI_WINDOW_HEIGHT}"
        )

        self.setup_ui()

    def setup_ui(self):
        self.main_frame = ctk.CTkFrame(self.root)
        self.main_frame.pack(fill="both", expand=True, padx=20, pady=20)

        self.control_frame = ctk.CTkFrame(self.main_frame)
        self.control_frame.pack(fill="x", pady=(0, 10))

        self.scan_button = ctk.CTkButton(
            self.control_frame, text="Scan handwriting", command=self._open_scan
        )
        self.scan_button.pack(side="left", padx=10, pady=10)

        self.clipboard_button = ctk.CTkButton(
            self.control_frame,
            text="Scan from clipboard",
            command=async_handler(self._scan_clipboard),
        )
        self.clipboard_button.pack(side="left", padx=(0, 10), pady=10)

        self.settings_button = ctk.CTkButton(
            self.control_frame, text="Settings", command=self._open_settings
        )
        self.settings_button.pack(side="right", padx=10, pady=10)

        self.editor = NoteEditor(self.main_frame, wrap="word")
        self.editor.pack(fill="both", expand=True)

        self.status_label = ctk.CTkLabel(self.main_frame, text="", anchor="w")
        self.status_label.pack(fill="x", pady=(5, 0))

    def _notify(self, message: str) -> None:
        self.status_label.configure(text=message)

    def _open_scan(self) -> ScanDialog:
        self._notify("")
        return ScanDialog(
            self.root,
            target=self.editor,
            config=self.config,
            on_inserted=self._on_inserted,
        )

    def _on_inserted(self, text: str) -> None:
        self._notify(f"Inserted {len(text)} characters from scan.")

    async def _scan_clipboard(self):
        try:
            source = read_clipboard_image()
        except OSError as e:
            log.error(f"Clipboard read failed: {e}")
            self._notify(f"Failed to read clipboard: {e}")
            return

        if source is None:
            self._notify("No image found in clipboard. Copy an image first.")
            return

        dialog = self._open_scan()
        await dialog.start_with_image(source)

    def _open_settings(self):
        SettingsDialog(self.root, config=self.config)


def main():
    configure_logging()
    Config().load()
    app = HandwritingOCRApp()
    async_mainloop(app.root)


if __name__ == "__main__":
    main()
