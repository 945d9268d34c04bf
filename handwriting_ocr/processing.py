import base64
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from handwriting_ocr.models.page_models import PageItem
from handwriting_ocr.models.scan_settings import ScanSettings
from handwriting_ocr.page_queue import PageQueue

log = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "---"


@dataclass(frozen=True)
class ImagePart:
    """One inline image of an extraction request."""

    base64: str
    mime_type: str


@dataclass(frozen=True)
class BatchOptions:
    """Multi-page formatting options."""

    separator: str = DEFAULT_SEPARATOR
    show_page_numbers: bool = True

    @classmethod
    def from_settings(cls, settings: ScanSettings) -> "BatchOptions":
        return cls(
            separator=settings.page_separator,
            show_page_numbers=settings.show_page_numbers,
        )


def page_marker(separator: str, show_page_numbers: bool, page_label: str = "N") -> str:
    """The separator line the model should write before a page."""
    if not separator.strip():
        separator = DEFAULT_SEPARATOR
    if show_page_numbers:
        return f"{separator} Page {page_label} {separator}"
    return separator


def build_page_instructions(page_count: int, options: BatchOptions) -> str:
    marker = page_marker(options.separator, options.show_page_numbers)
    lines = [
        f"You are given {page_count} images. They are consecutive pages of one "
        "document, provided in reading order: the first image is the first page.",
        "Transcribe every page in full. Do not skip, summarize or merge pages.",
    ]
    if options.show_page_numbers:
        example = page_marker(options.separator, True, "2")
        lines.append(
            f'Between pages, write a separator line of the form "{marker}", '
            "where N is the page number counting from 1 in the order given "
            f'(for example "{example}" before the second page\'s content).'
        )
    else:
        lines.append(
            f'Between pages, write a separator line containing only "{marker}".'
        )
    if options.show_page_numbers:
        first = page_marker(options.separator, True, "1")
        lines.append(
            f'Do not write "{first}" or any other separator before the first '
            "page's content; start directly with the first page's text."
        )
    else:
        lines.append(
            "Do not put a separator before the first page's content; "
            "start directly with the first page's text."
        )
    return "\n".join(lines)


def build_prompt(base_prompt: str, page_count: int, options: BatchOptions) -> str:
    """Single pages get the base prompt unchanged; batches get page instructions appended."""
    if page_count <= 1:
        return base_prompt
    return base_prompt + "\n\n" + build_page_instructions(page_count, options)


def build_image_content(pages: Sequence[PageItem]) -> List[ImagePart]:
    image_content = []
    for index, page in enumerate(pages, start=1):
        base64_image = base64.b64encode(page.image_bytes).decode("utf-8")
        log.debug(
            f"Encoded page {index} ({page.mime_type}) to base64: {len(base64_image)} chars"
        )
        image_content.append(ImagePart(base64=base64_image, mime_type=page.mime_type))
    return image_content


def build(
    pages: Sequence[PageItem], base_prompt: str, options: BatchOptions
) -> Tuple[List[ImagePart], str]:
    """Assemble (parts, final_prompt) for the given pages, in order, without filtering."""
    return build_image_content(pages), build_prompt(base_prompt, len(pages), options)


async def build_batch(
    queue: PageQueue, settings: ScanSettings
) -> Tuple[List[ImagePart], str]:
    """Normalize any page not yet normalized, then build the request from the queue."""
    pages = queue.snapshot_order()
    for page in pages:
        await queue.normalize_page(page, settings)
    parts, prompt = build(pages, settings.ocr_prompt, BatchOptions.from_settings(settings))
    log.info(f"Built batch of {len(parts)} page(s), prompt {len(prompt)} chars")
    return parts, prompt
