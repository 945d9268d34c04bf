"""Settings form built from the Config singleton's user-facing fields."""

from typing import Any, Dict, Optional

import customtkinter as ctk

from handwriting_ocr.config import GEMINI_MODELS, Config

# Display order
SETTINGS_FIELDS = (
    "API_KEY",
    "MODEL_NAME",
    "OCR_PROMPT",
    "PAGE_SEPARATOR",
    "SHOW_PAGE_NUMBERS",
    "LIBRARY_DIR",
)

SECRET_FIELDS = frozenset({"API_KEY"})
MULTILINE_FIELDS = frozenset({"OCR_PROMPT"})

FIELD_LABELS = {
    "API_KEY": "Gemini API key",
    "MODEL_NAME": "Model",
    "OCR_PROMPT": "Prompt",
    "PAGE_SEPARATOR": "Page separator",
    "SHOW_PAGE_NUMBERS": "Number pages",
    "LIBRARY_DIR": "Image library folder",
}


class SettingsPanel(ctk.CTkFrame):
    """Edits are held in `pending` until apply() writes them to the config."""

    def __init__(
        self,
        master,
        config: Optional[Config] = None,
        **kwargs,
    ):
        """
        Initialize the settings panel.

        Args:
            master: Parent widget
            config: Config to edit (uses singleton if None)
            **kwargs: Additional arguments for CTkFrame
        """
        super().__init__(master, width=560, **kwargs)
        self.config = config or Config()
        self.pending: Dict[str, Any] = {}
        self.inputs: Dict[str, Any] = {}
        self.variables: Dict[str, Any] = {}

        self.rows = ctk.CTkScrollableFrame(self, width=560, height=400)
        self.rows.pack(fill="both", expand=True, padx=10, pady=10)
        for field in SETTINGS_FIELDS:
            self._add_row(field, getattr(self.config, field))

    def _add_row(self, field: str, value: Any) -> None:
        row = ctk.CTkFrame(self.rows, fg_color="transparent")
        row.pack(fill="x", padx=5, pady=4)
        row.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(
            row, text=FIELD_LABELS.get(field, field), width=150, anchor="w"
        ).grid(row=0, column=0, sticky="nw", padx=(0, 10))

        if field == "MODEL_NAME":
            widget = self._model_menu(row, field, value)
        elif isinstance(value, bool):
            widget = self._checkbox(row, field, value)
        elif field in MULTILINE_FIELDS:
            widget = self._textbox(row, field, value)
        else:
            widget = self._entry(row, field, str(value))

        widget.grid(row=0, column=1, sticky="ew")
        self.inputs[field] = widget

    def _model_menu(self, row: ctk.CTkFrame, field: str, model: str) -> ctk.CTkOptionMenu:
        """Dropdown of known models; a custom model id from the config is kept as its own entry."""
        labels = dict(GEMINI_MODELS)
        labels.setdefault(model, model)
        model_for_label = {label: model_id for model_id, label in labels.items()}

        var = ctk.StringVar(value=labels[model])
        self.variables[field] = var
        return ctk.CTkOptionMenu(
            row,
            values=list(model_for_label),
            variable=var,
            command=lambda label: self._record_edit(field, model_for_label[label]),
        )

    def _checkbox(self, row: ctk.CTkFrame, field: str, checked: bool) -> ctk.CTkCheckBox:
        var = ctk.BooleanVar(value=checked)
        self.variables[field] = var
        return ctk.CTkCheckBox(
            row, text="", variable=var, command=lambda: self._record_edit(field, var.get())
        )

    def _entry(self, row: ctk.CTkFrame, field: str, text: str) -> ctk.CTkEntry:
        var = ctk.StringVar(value=text)
        self.variables[field] = var
        var.trace_add("write", lambda *args: self._record_edit(field, var.get()))
        return ctk.CTkEntry(row, textvariable=var, show="*" if field in SECRET_FIELDS else "")

    def _textbox(self, row: ctk.CTkFrame, field: str, text: str) -> ctk.CTkTextbox:
        box = ctk.CTkTextbox(row, height=140, wrap="word")
        box.insert("1.0", text)
        box.bind(
            "<KeyRelease>",
            lambda event: self._record_edit(field, box.get("1.0", "end-1c")),
        )
        return box

    def _record_edit(self, field: str, value: Any) -> None:
        self.pending[field] = value

    def apply(self) -> None:
        """Write pending edits to the config (does not save to disk)."""
        for field, value in self.pending.items():
            setattr(self.config, field, value)
        self.pending.clear()
