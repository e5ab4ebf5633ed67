"""Local HTTP API exposing the backup engine to the app's UI layer."""
from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
