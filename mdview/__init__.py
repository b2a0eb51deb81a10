"""mdview: markdown directory browser with live preview and in-page search."""

__version__ = "0.1.0"
