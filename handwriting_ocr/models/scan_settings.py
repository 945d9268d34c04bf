"""Immutable settings snapshot consumed by a single extraction attempt."""

from pydantic import BaseModel, ConfigDict


class ScanSettings(BaseModel):
    """Read-only copy of the persisted settings, taken when a batch is built."""

    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    model_name: str = "gemini-2.5-flash"
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    ocr_prompt: str = ""
    page_separator: str = "---"
    show_page_numbers: bool = True
    temperature: float = 0.1
    max_output_tokens: int = 8192
    request_timeout: float = 120.0
    max_image_dimension: int = 4096
    jpeg_quality: int = 85
    decode_timeout: float = 5.0

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())
