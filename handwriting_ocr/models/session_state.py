"""Phases of a scan session and the user actions they allow."""

from enum import Enum


class Phase(str, Enum):
    SELECT = "select"
    QUEUE = "queue"
    PROCESSING = "processing"
    PREVIEW = "preview"
    ERROR = "error"


class Action(str, Enum):
    ADD = "add"
    MOVE = "move"
    REMOVE = "remove"
    CONFIRM = "confirm"
    RETRY = "retry"
    BACK = "back"
    EDIT = "edit"
    INSERT = "insert"
    RE_EXTRACT = "re_extract"
    CLOSE = "close"
