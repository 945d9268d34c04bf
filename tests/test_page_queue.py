import asyncio

from handwriting_ocr.models.page_models import PageStatus
from handwriting_ocr.page_queue import PageQueue
from conftest import make_image_bytes


def _queue(*names):
    queue = PageQueue()
    for name in names:
        queue.add_from_source(make_image_bytes(), "image/jpeg", name)
    return queue


def _names(queue):
    return [p.source_name for p in queue]


def test_pages_keep_insertion_order():
    queue = _queue("a.jpg", "b.jpg", "c.jpg")
    assert len(queue) == 3
    assert _names(queue) == ["a.jpg", "b.jpg", "c.jpg"]
    assert all(p.status is PageStatus.PENDING for p in queue)
    assert len({p.id for p in queue}) == 3


def test_move_swaps_two_positions():
    queue = _queue("a.jpg", "b.jpg", "c.jpg")
    assert queue.move(1, 2) is True
    assert _names(queue) == ["a.jpg", "c.jpg", "b.jpg"]
    assert queue.move(2, 0) is True
    assert _names(queue) == ["b.jpg", "c.jpg", "a.jpg"]


def test_move_to_same_position_or_out_of_range_is_a_no_op():
    queue = _queue("a.jpg", "b.jpg")
    assert queue.move(1, 1) is False
    assert queue.move(0, 2) is False
    assert queue.move(-1, 0) is False
    assert _names(queue) == ["a.jpg", "b.jpg"]


def test_remove_releases_the_preview():
    queue = _queue("a.jpg", "b.jpg")
    asyncio.run(queue.ensure_previews())
    handle = queue[0].preview
    assert handle.renderable

    removed = queue.remove(0)
    assert removed.source_name == "a.jpg"
    assert removed.preview is None
    assert handle.released
    assert _names(queue) == ["b.jpg"]


def test_remove_out_of_range_returns_none():
    queue = _queue("a.jpg")
    assert queue.remove(3) is None
    assert len(queue) == 1


def test_ensure_previews_creates_each_handle_once():
    queue = _queue("a.jpg", "b.jpg")
    asyncio.run(queue.ensure_previews())
    first = [p.preview for p in queue]
    assert all(h is not None and h.renderable for h in first)
    assert all(p.normalized for p in queue)

    asyncio.run(queue.ensure_previews())
    assert [p.preview for p in queue] == first


def test_undecodable_page_gets_a_blank_preview():
    queue = PageQueue()
    page = queue.add_from_source(b"garbage", "image/png", "broken.png")
    asyncio.run(queue.ensure_previews())
    assert page.preview is not None
    assert not page.preview.renderable
    assert page.image_bytes == b"garbage"


def test_mark_all_sets_error_detail_only_on_error():
    queue = _queue("a.jpg", "b.jpg")
    queue.mark_all(PageStatus.ERROR, "Rate limited")
    assert [p.error_detail for p in queue] == ["Rate limited", "Rate limited"]
    queue.mark_all(PageStatus.PROCESSING, "ignored")
    assert all(p.status is PageStatus.PROCESSING for p in queue)
    assert all(p.error_detail is None for p in queue)


def test_clear_releases_every_preview():
    queue = _queue("a.jpg", "b.jpg")
    asyncio.run(queue.ensure_previews())
    handles = [p.preview for p in queue]
    queue.clear()
    assert queue.is_empty
    assert all(h.released for h in handles)
