"""memora - mirror a local directory tree to the memora file service."""

__version__ = "0.1.0"
