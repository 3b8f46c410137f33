"""Readers and extractors for RST-format CPK and SMP game archives."""

__version__ = "0.1.0"
__all__ = ["__version__"]