import logging
from typing import Optional

import customtkinter as ctk

from handwriting_ocr.components.settings_panel import SettingsPanel
from handwriting_ocr.config import Config
from handwriting_ocr.dialogs.placement import center_on_parent

log = logging.getLogger(__name__)


class SettingsDialog(ctk.CTkToplevel):
    """Modal editor for the persisted settings. Save writes the JSON file."""

    def __init__(self, master, config: Optional[Config] = None):
        super().__init__(master)
        self.config = config or Config()

        self.title("Handwriting OCR settings")
        self.geometry("700x540")
        self.resizable(False, False)
        self.transient(master)
        self.grab_set()

        self.panel = SettingsPanel(self, config=self.config)
        self.panel.pack(fill="both", expand=True, padx=10, pady=10)

        buttons = ctk.CTkFrame(self, fg_color="transparent")
        buttons.pack(fill="x", padx=10, pady=(0, 10))
        ctk.CTkButton(buttons, text="Cancel", fg_color="gray30", command=self.destroy).pack(
            side="left", padx=5
        )
        ctk.CTkButton(buttons, text="Save", command=self._save).pack(side="right", padx=5)

        center_on_parent(self)

    def _save(self) -> None:
        self.panel.apply()
        try:
            self.config.save()
        except OSError as e:
            log.error(f"Could not write {self.config.config_file_path()}: {e}")
        self.destroy()
