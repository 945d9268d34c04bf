"""Configuration singleton for the handwriting OCR app."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from handwriting_ocr.models.scan_settings import ScanSettings

log = logging.getLogger(__name__)


GEMINI_MODELS: Dict[str, str] = {
    "gemini-2.5-flash": "Gemini 2.5 Flash (recommended)",
    "gemini-2.5-flash-lite": "Gemini 2.5 Flash Lite (fastest)",
    "gemini-2.5-pro": "Gemini 2.5 Pro (best quality)",
}

DEFAULT_OCR_PROMPT = (
    "You are an expert at reading handwritten text. "
    "Transcribe the handwritten content in this image into clean, readable markdown text. "
    "Join words that continue on the next line into flowing sentences - do NOT insert "
    "line breaks just because the handwriting reaches the edge of the page. "
    "Only start a new paragraph when the writer clearly intended one (e.g. a blank line, "
    "large gap, or new topic). "
    "Format lists as markdown lists. "
    "If a word is illegible, write [illegible]. "
    "If the writing contains non-English text (such as Thai), transcribe it faithfully. "
    "Output only the transcribed text."
)


class Config:
    """App-wide settings. One instance per process; scans read it through snapshot()."""

    _instance: Optional["Config"] = None
    _CONFIG_FILE_PATH = (
        Path.home() / ".config" / "handwriting-ocr" / "handwriting-ocr.json"
    )

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Defaults, overridden by HWOCR_* environment variables and then by load()."""
        # Gemini endpoint and credentials
        self._api_base_url = os.environ.get(
            "HWOCR_API_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/")
        self._model_name = os.environ.get("HWOCR_MODEL_NAME", "gemini-2.5-flash")
        # A missing key is reported when a scan starts, not here
        self._api_key = os.environ.get("HWOCR_API_KEY", "")

        # Request Configuration
        self.TEMPERATURE = 0.1
        self.MAX_OUTPUT_TOKENS = 8192
        self.REQUEST_TIMEOUT_SECONDS = 120.0

        # Image Normalization Configuration
        self.MAX_IMAGE_DIMENSION = 4096
        self.JPEG_QUALITY = 85
        self.DECODE_TIMEOUT_SECONDS = 5.0

        # Multi-page Output Configuration
        self.PAGE_SEPARATOR = "---"
        self.SHOW_PAGE_NUMBERS = True

        # Library picker root
        self.LIBRARY_DIR = str(Path.home())

        # GUI settings
        self.GUI_WINDOW_WIDTH: int = 900
        self.GUI_WINDOW_HEIGHT: int = 700
        self.GUI_THEME: str = "dark"

        # Prompt
        self.OCR_PROMPT = DEFAULT_OCR_PROMPT

    @classmethod
    def config_file_path(cls) -> Path:
        return cls._CONFIG_FILE_PATH

    def save(self) -> None:
        """Write every public setting, plus the credential fields, to the settings file."""
        self._CONFIG_FILE_PATH.parent.mkdir(parents=True, exist_ok=True)

        data = {}
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            data[key] = value
        data["API_KEY"] = self._api_key
        data["MODEL_NAME"] = self._model_name
        data["API_BASE_URL"] = self._api_base_url

        with open(self._CONFIG_FILE_PATH, "w") as f:
            json.dump(data, f, indent=2)
        log.info(f"Settings saved to {self._CONFIG_FILE_PATH}")

    def load(self) -> None:
        """Apply known keys from the settings file. A missing or corrupt file is ignored."""
        if not self._CONFIG_FILE_PATH.exists():
            return

        try:
            with open(self._CONFIG_FILE_PATH, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning(f"Ignoring unreadable settings file: {e}")
            return

        for key, value in data.items():
            if hasattr(self, key) and not key.startswith("_"):
                setattr(self, key, value)

    def snapshot(self) -> ScanSettings:
        """Return an immutable copy of the current settings."""
        return ScanSettings(
            api_key=self._api_key or "",
            model_name=self._model_name,
            api_base_url=self._api_base_url,
            ocr_prompt=self.OCR_PROMPT,
            page_separator=self.PAGE_SEPARATOR,
            show_page_numbers=bool(self.SHOW_PAGE_NUMBERS),
            temperature=self.TEMPERATURE,
            max_output_tokens=self.MAX_OUTPUT_TOKENS,
            request_timeout=self.REQUEST_TIMEOUT_SECONDS,
            max_image_dimension=self.MAX_IMAGE_DIMENSION,
            jpeg_quality=self.JPEG_QUALITY,
            decode_timeout=self.DECODE_TIMEOUT_SECONDS,
        )

    @property
    def API_BASE_URL(self) -> str:
        return self._api_base_url

    @API_BASE_URL.setter
    def API_BASE_URL(self, value: str) -> None:
        self._api_base_url = value.rstrip("/")

    @property
    def MODEL_NAME(self) -> str:
        return self._model_name

    @MODEL_NAME.setter
    def MODEL_NAME(self, value: str) -> None:
        self._model_name = value

    @property
    def API_KEY(self) -> str:
        return self._api_key

    @API_KEY.setter
    def API_KEY(self, value: str) -> None:
        """Set the API key. An empty key is allowed and caught at scan time."""
        self._api_key = (value or "").strip()
