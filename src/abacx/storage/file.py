from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from typing import Any, Dict, Optional, Tuple

from ..core.ports import PolicySource
from ..store.policy_loader import parse_policy_text

logger = logging.getLogger("abacx.storage")


def atomic_write(path: str, data: str, *, encoding: str = "utf-8") -> None:
    """Replace *path* with *data* via a temp file and ``os.replace``."""
    directory = os.path.dirname(path) or "."
    fd, tmp = tempfile.mkstemp(prefix=".abacx.tmp.", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(data)
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)


class FilePolicySource(PolicySource):
    """Rule document stored in a local JSON or YAML file.

    ``etag()`` is the SHA-256 of the file content, optionally suffixed with
    the modification time (``include_mtime_in_etag=True``) so that touching
    the file also counts as a change. The digest is only recomputed when the
    file's size or mtime moved; ``None`` means the file does not exist.
    """

    def __init__(
        self,
        path: str,
        *,
        validate_schema: bool = False,
        include_mtime_in_etag: bool = False,
        chunk_size: int = 256 * 1024,
    ) -> None:
        self.path = path
        self.validate_schema = validate_schema
        self.include_mtime_in_etag = include_mtime_in_etag
        self._chunk_size = int(chunk_size)
        self._digest_for: Optional[Tuple[int, int]] = None
        self._digest: Optional[str] = None

    def _signature(self) -> Optional[Tuple[int, int]]:
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return None
        return (st.st_size, st.st_mtime_ns)

    def _hash_file(self) -> str:
        h = hashlib.sha256()
        with open(self.path, "rb") as f:
            while True:
                chunk = f.read(self._chunk_size)
                if not chunk:
                    break
                h.update(chunk)
        return h.hexdigest()

    def etag(self) -> Optional[str]:
        sig = self._signature()
        if sig is None:
            self._digest_for = None
            self._digest = None
            return None
        if sig != self._digest_for or self._digest is None:
            self._digest = self._hash_file()
            self._digest_for = sig
        if self.include_mtime_in_etag:
            return f"{self._digest}:{sig[1]}"
        return self._digest

    def load(self) -> Dict[str, Any]:
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        document = parse_policy_text(text, filename=self.path)
        if self.validate_schema:
            from ..dsl.validate import validate_rules

            try:
                validate_rules(document)
            except Exception:
                logger.exception("ABACX: rule document %s failed validation", self.path)
                raise
        return document


__all__ = ["atomic_write", "FilePolicySource"]
