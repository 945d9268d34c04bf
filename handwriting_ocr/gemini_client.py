"""Async client for the Gemini generateContent endpoint."""

import logging
from typing import List, Optional, Sequence

import httpx

from handwriting_ocr.errors import (
    ConfigurationError,
    EmptyResultError,
    NetworkError,
    RateLimitedError,
    RemoteRejectedError,
    UnauthorizedError,
)
from handwriting_ocr.models.api_schemas import (
    GenerateContentRequest,
    GenerateContentResponse,
    GenerationConfig,
    InlineData,
    InlineDataPart,
    RequestContent,
    TextPart,
)
from handwriting_ocr.models.scan_settings import ScanSettings
from handwriting_ocr.processing import ImagePart

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

MISSING_KEY_MESSAGE = (
    "No API key configured. Please add your key in the settings, then try again."
)


class GeminiClient:
    """
    Sends page images to Gemini in a single request and returns the transcription.

    Performs no retries: every call is one metered request.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = 0.1,
        max_output_tokens: int = 8192,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: ScanSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GeminiClient":
        return cls(
            api_key=settings.api_key,
            model=settings.model_name,
            base_url=settings.api_base_url,
            temperature=settings.temperature,
            max_output_tokens=settings.max_output_tokens,
            timeout=settings.request_timeout,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_request(
        self, images: Sequence[ImagePart], prompt: str
    ) -> GenerateContentRequest:
        parts: List = [TextPart(text=prompt)]
        for img in images:
            parts.append(
                InlineDataPart(
                    inline_data=InlineData(mime_type=img.mime_type, data=img.base64)
                )
            )
        return GenerateContentRequest(
            contents=[RequestContent(parts=parts)],
            generation_config=GenerationConfig(
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
            ),
        )

    async def extract_text(self, image_base64: str, mime_type: str, prompt: str) -> str:
        return await self.extract_text_from_images(
            [ImagePart(base64=image_base64, mime_type=mime_type)], prompt
        )

    async def extract_text_from_images(
        self, images: Sequence[ImagePart], prompt: str
    ) -> str:
        """
        Send all images in one request so the model sees every page together.

        Raises ConfigurationError before any network call if no API key is set,
        and a ServiceError subclass for every failed call.
        """
        if not self.api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

        body = self.build_request(images, prompt).model_dump(
            by_alias=True, exclude_none=True
        )
        log.info(f"POST {self.endpoint} with {len(images)} image(s)")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.endpoint, params={"key": self.api_key}, json=body
                )
        except httpx.HTTPError as e:
            reason = str(e) or type(e).__name__
            log.error(f"Gemini request failed without a response: {reason}")
            raise NetworkError(f"Gemini API request failed: {reason}") from e

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> str:
        status = response.status_code

        if status == 429:
            raise RateLimitedError(
                "Rate limited by Gemini API. Please wait a moment and try again.",
                status,
            )
        if status in (401, 403):
            raise UnauthorizedError(
                "Gemini API key is invalid or does not have access. Check your key in settings.",
                status,
            )

        payload = self._parse(response)

        if status >= 400:
            if payload is not None and payload.error and payload.error.message:
                raise RemoteRejectedError(
                    f"Gemini API error: {payload.error.message}", status
                )
            raise NetworkError(f"Gemini API request failed: HTTP {status}", status)

        if payload is None:
            raise NetworkError("Gemini API returned an unreadable response.", status)

        if payload.error:
            raise RemoteRejectedError(
                f"Gemini API error: {payload.error.message or 'Unknown error'}",
                payload.error.code,
            )

        text = payload.first_text()
        if not text or not text.strip():
            raise EmptyResultError(
                "Gemini returned an empty response. The image may be unreadable."
            )

        return text.strip()

    @staticmethod
    def _parse(response: httpx.Response) -> Optional[GenerateContentResponse]:
        try:
            return GenerateContentResponse.model_validate(response.json())
        except ValueError as e:
            log.debug(f"Could not parse Gemini response body: {e}")
            return None
