"""docscribe: adaptive quality/cost transcription of scanned documents."""

from docscribe.version import __version__

__all__ = ["__version__"]
