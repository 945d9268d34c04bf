"""Callback definitions for scan session progress reporting."""

from dataclasses import dataclass
from typing import Callable, Sequence

from .page_models import PageItem
from .session_state import Phase


def _noop(*args) -> None:
    return None


@dataclass
class SessionCallbacks:
    """Callbacks that a scan session calls so its surface can re-render"""

    on_phase_change: Callable[[Phase], None] = _noop
    on_pages_changed: Callable[[Sequence[PageItem]], None] = _noop
    on_error: Callable[[str], None] = _noop
    on_inserted: Callable[[str], None] = _noop
    on_closed: Callable[[], None] = _noop
