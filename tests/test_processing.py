import asyncio
import base64

from handwriting_ocr.models.scan_settings import ScanSettings
from handwriting_ocr.page_queue import PageQueue
from handwriting_ocr.processing import (
    BatchOptions,
    build,
    build_batch,
    build_prompt,
    page_marker,
)

BASE_PROMPT = "Transcribe the handwriting."


def _queue(count):
    queue = PageQueue()
    for i in range(1, count + 1):
        queue.add_from_source(f"page-{i}".encode(), "image/png", f"p{i}.png")
    return queue


def test_parts_follow_page_order():
    queue = _queue(3)
    parts, _ = build(queue.snapshot_order(), BASE_PROMPT, BatchOptions())
    assert [base64.b64decode(p.base64) for p in parts] == [b"page-1", b"page-2", b"page-3"]
    assert all(p.mime_type == "image/png" for p in parts)


def test_single_page_uses_base_prompt_unchanged():
    queue = _queue(1)
    _, prompt = build(queue.snapshot_order(), BASE_PROMPT, BatchOptions())
    assert prompt == BASE_PROMPT


def test_multi_page_prompt_describes_numbered_separators():
    prompt = build_prompt(BASE_PROMPT, 3, BatchOptions(separator="---", show_page_numbers=True))
    assert prompt.startswith(BASE_PROMPT)
    assert "3 images" in prompt
    assert "--- Page N ---" in prompt
    assert "--- Page 2 ---" in prompt
    assert 'Do not write "--- Page 1 ---" or any other separator before the first page' in prompt


def test_multi_page_prompt_without_numbers_uses_bare_separator():
    prompt = build_prompt(BASE_PROMPT, 2, BatchOptions(separator="***", show_page_numbers=False))
    assert '"***"' in prompt
    assert "Page N" not in prompt
    assert "Do not put a separator before the first page" in prompt


def test_blank_separator_falls_back_to_default():
    assert page_marker("  ", True, "3") == "--- Page 3 ---"
    assert page_marker("==", False) == "=="


def test_separator_is_kept_exactly_as_configured():
    assert page_marker(" *** ", False) == " *** "
    prompt = build_prompt(BASE_PROMPT, 2, BatchOptions(separator=" *** ", show_page_numbers=False))
    assert '" *** "' in prompt
    numbered = build_prompt(BASE_PROMPT, 2, BatchOptions(separator="<< ", show_page_numbers=True))
    assert "<<  Page N << " in numbered


def test_reordered_queue_builds_in_new_order():
    queue = _queue(3)
    queue.move(1, 2)
    parts, _ = build(queue.snapshot_order(), BASE_PROMPT, BatchOptions())
    assert [base64.b64decode(p.base64) for p in parts] == [b"page-1", b"page-3", b"page-2"]


def test_build_batch_normalizes_and_uses_settings(bmp_bytes):
    queue = PageQueue()
    queue.add_from_source(bmp_bytes, "image/bmp", "scan.bmp")
    queue.add_from_source(bmp_bytes, "image/bmp", "scan2.bmp")
    settings = ScanSettings(ocr_prompt=BASE_PROMPT, page_separator="###", show_page_numbers=True)

    parts, prompt = asyncio.run(build_batch(queue, settings))

    assert [p.mime_type for p in parts] == ["image/jpeg", "image/jpeg"]
    assert all(p.normalized for p in queue)
    assert "### Page N ###" in prompt
