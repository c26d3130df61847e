"""Translation and chat dispatch engine for novel translation."""

__version__ = "0.1.0"
