"""Scan session: the select → queue → processing → preview/error state machine."""

import asyncio
import logging
from typing import Callable, FrozenSet, Iterable, List, Optional, Protocol, Sequence

from handwriting_ocr.config import Config
from handwriting_ocr.errors import OcrError, SessionStateError
from handwriting_ocr.gemini_client import MISSING_KEY_MESSAGE, GeminiClient
from handwriting_ocr.models.callbacks import SessionCallbacks
from handwriting_ocr.models.page_models import PageItem, PageStatus
from handwriting_ocr.models.scan_settings import ScanSettings
from handwriting_ocr.models.session_state import Action, Phase
from handwriting_ocr.page_queue import PageQueue
from handwriting_ocr.processing import ImagePart, build_batch
from handwriting_ocr.sources import ImageSource

log = logging.getLogger(__name__)


class InsertionTarget(Protocol):
    """The host document position that receives the final text."""

    def replace_selection(self, text: str) -> None: ...


class ExtractionClient(Protocol):
    async def extract_text_from_images(
        self, images: Sequence[ImagePart], prompt: str
    ) -> str: ...


class ScanSession:
    """
    Owns the pages, preview handles and result text of one scan operation.

    All transitions happen on the event loop thread, one user action at a
    time. While processing, the only accepted action is close().
    """

    def __init__(
        self,
        target: InsertionTarget,
        settings_provider: Optional[Callable[[], ScanSettings]] = None,
        client_factory: Optional[Callable[[ScanSettings], ExtractionClient]] = None,
        callbacks: Optional[SessionCallbacks] = None,
        queue: Optional[PageQueue] = None,
    ) -> None:
        self.target = target
        self._settings_provider = settings_provider or (lambda: Config().snapshot())
        self._client_factory = client_factory or GeminiClient.from_settings
        self.callbacks = callbacks or SessionCallbacks()
        self.pages = queue if queue is not None else PageQueue()

        self.phase: Phase = Phase.SELECT
        self.single_mode = False
        self.result_text = ""
        self.error_message: Optional[str] = None
        self.closed = False
        self.processing_task: Optional[asyncio.Task] = None
        self.last_settings: Optional[ScanSettings] = None
        self._attempt = 0

    def available_actions(self) -> FrozenSet[Action]:
        """User actions that are legal right now."""
        if self.closed:
            return frozenset()

        if self.phase is Phase.SELECT:
            actions = {Action.ADD}
        elif self.phase is Phase.QUEUE:
            actions = {Action.ADD, Action.MOVE, Action.REMOVE, Action.CONFIRM}
        elif self.phase is Phase.PROCESSING:
            actions = set()
        elif self.phase is Phase.PREVIEW:
            actions = {Action.EDIT, Action.INSERT}
            if self.single_mode:
                actions.add(Action.RE_EXTRACT)
        else:
            actions = {Action.RETRY}
            if self.single_mode:
                actions.add(Action.BACK)

        actions.add(Action.CLOSE)
        return frozenset(actions)

    def is_processing(self) -> bool:
        return self.phase is Phase.PROCESSING

    def _require(self, action: Action) -> None:
        if action not in self.available_actions():
            state = "closed" if self.closed else self.phase.value
            raise SessionStateError(f"Cannot {action.value} while {state}")

    def _set_phase(self, phase: Phase) -> None:
        if phase is self.phase:
            return
        log.info(f"Scan session: {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.callbacks.on_phase_change(phase)

    def _pages_changed(self) -> None:
        self.callbacks.on_pages_changed(self.pages.snapshot_order())

    async def add_sources(self, sources: Iterable[ImageSource]) -> List[PageItem]:
        """Queue images for a batch scan. Previews are built before returning."""
        self._require(Action.ADD)

        added = [
            self.pages.add_from_source(s.image_bytes, s.mime_type, s.label)
            for s in sources
        ]
        if not added:
            return added

        self.single_mode = False
        self._set_phase(Phase.QUEUE)
        self._pages_changed()

        await self.pages.ensure_previews(self._settings_provider())
        if not self.closed:
            self._pages_changed()
        return added

    async def start_with_image(self, source: ImageSource) -> None:
        """Skip the queue and process one pre-loaded image (e.g. from the clipboard)."""
        self._require(Action.ADD)
        if not self.pages.is_empty:
            raise SessionStateError("A single-image scan needs an empty queue")

        self.pages.add_from_source(source.image_bytes, source.mime_type, source.label)
        self.single_mode = True
        self._pages_changed()
        await self._process()

    def move_page(self, index_a: int, index_b: int) -> bool:
        self._require(Action.MOVE)
        moved = self.pages.move(index_a, index_b)
        if moved:
            self._pages_changed()
        return moved

    def remove_page(self, index: int) -> Optional[PageItem]:
        """Remove a queued page. Emptying the queue returns to select."""
        self._require(Action.REMOVE)
        removed = self.pages.remove(index)
        if removed is None:
            return None

        if self.pages.is_empty:
            self._set_phase(Phase.SELECT)
        self._pages_changed()
        return removed

    async def confirm(self) -> None:
        """Send every queued page as one batch."""
        self._require(Action.CONFIRM)
        if self.pages.is_empty:
            raise SessionStateError("Nothing to scan")
        await self._process()

    async def retry(self) -> None:
        """Resend the same pages, in the same order."""
        self._require(Action.RETRY)
        await self._process()

    async def re_extract(self) -> None:
        self._require(Action.RE_EXTRACT)
        await self._process()

    def back(self) -> None:
        """Drop the failed single image and return to select."""
        self._require(Action.BACK)
        self.pages.clear()
        self.single_mode = False
        self.result_text = ""
        self.error_message = None
        self._set_phase(Phase.SELECT)
        self._pages_changed()

    def set_result_text(self, text: str) -> None:
        """User edits replace the extracted text; pages are not touched."""
        self._require(Action.EDIT)
        self.result_text = text

    def insert(self) -> str:
        """Hand the (possibly edited) text to the host and end the session."""
        self._require(Action.INSERT)
        text = self.result_text
        self.target.replace_selection(text)
        log.info(f"Inserted {len(text)} chars into the note")
        self.callbacks.on_inserted(text)
        self.close()
        return text

    def close(self) -> None:
        """End the session. Cancels an in-flight request and releases every preview."""
        if self.closed:
            return
        self.closed = True

        if self.processing_task is not None and not self.processing_task.done():
            log.info("Scan session closed mid-request, cancelling extraction")
            self.processing_task.cancel()

        self.pages.clear()
        self.result_text = ""
        self.callbacks.on_closed()

    def _fail(self, message: str) -> None:
        self.pages.mark_all(PageStatus.ERROR, message)
        self.result_text = ""
        self.error_message = message
        self._set_phase(Phase.ERROR)
        self._pages_changed()
        self.callbacks.on_error(message)

    async def _extract(self, settings: ScanSettings) -> str:
        await self.pages.ensure_previews(settings)
        parts, prompt = await build_batch(self.pages, settings)
        client = self._client_factory(settings)
        return await client.extract_text_from_images(parts, prompt)

    async def _process(self) -> None:
        if self.phase is Phase.PROCESSING:
            raise SessionStateError("Extraction already in progress")

        # Settings are read fresh on every attempt
        settings = self._settings_provider()
        self.last_settings = settings
        self.result_text = ""
        self.error_message = None
        self.pages.mark_all(PageStatus.PENDING)

        if not settings.has_api_key:
            log.warning("No API key configured, not contacting the service")
            self._fail(MISSING_KEY_MESSAGE)
            return

        self._attempt += 1
        attempt = self._attempt
        self.pages.mark_all(PageStatus.PROCESSING)
        self._set_phase(Phase.PROCESSING)
        self._pages_changed()

        self.processing_task = asyncio.ensure_future(self._extract(settings))
        try:
            text = await self.processing_task
        except asyncio.CancelledError:
            if self.closed:
                log.info("Ignoring cancelled extraction of a closed session")
                return
            self._fail("Extraction was cancelled.")
            raise
        except OcrError as e:
            if self._is_stale(attempt):
                return
            log.error(f"Extraction failed: {e.message}")
            self._fail(e.message)
            return
        except Exception as e:
            if self._is_stale(attempt):
                return
            log.exception("Unexpected error during extraction")
            self._fail(f"Unexpected error: {e}")
            return
        finally:
            self.processing_task = None

        if self._is_stale(attempt):
            log.info("Ignoring extraction result for a closed session")
            return

        self.pages.mark_all(PageStatus.DONE)
        self.result_text = text
        self._set_phase(Phase.PREVIEW)
        self._pages_changed()

    def _is_stale(self, attempt: int) -> bool:
        return self.closed or attempt != self._attempt
