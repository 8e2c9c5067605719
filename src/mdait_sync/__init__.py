"""Unit-level synchronization of Markdown source documents and their translations."""

__version__ = "0.1.0"
