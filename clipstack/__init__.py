"""ClipStack clipboard history core."""

__version__ = "0.1.0"
