"""votectl — validator vote inspection CLI."""

__version__ = "0.3.0"
