"""schemefeed: government scheme feed with a resilient refresh cache."""

__version__ = "0.1.0"
