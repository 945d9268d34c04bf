"""Turn photographs of handwritten pages into editable note text."""

__version__ = "0.3.0"
