from __future__ import annotations

from .file import FilePolicySource, atomic_write
from .reloader import HotReloader

__all__ = ["atomic_write", "FilePolicySource", "HotReloader"]
