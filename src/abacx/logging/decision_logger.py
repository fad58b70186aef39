from __future__ import annotations

import json
import logging
import random
from typing import Any, Dict, Iterable, Optional

# Keys that may carry instance data; stripped before an event is emitted.
_PAYLOAD_KEYS = ("resource", "attrs", "row", "principal")


class DecisionLogger:
    """Emits sampled authorization decision events to a standard logger.

    An event is a flat mapping such as::

        {"action": "update", "subject": "document", "allowed": False,
         "reason": "denied", "rule": 0}

    Resource and principal attributes are removed before formatting, together
    with any extra keys listed in ``drop_keys``.
    """

    def __init__(
        self,
        *,
        sample_rate: float = 1.0,
        level: int = logging.INFO,
        as_json: bool = False,
        logger_name: str = "abacx.audit",
        drop_keys: Iterable[str] = (),
    ) -> None:
        self.sample_rate = max(0.0, min(1.0, float(sample_rate)))
        self.level = level
        self.as_json = as_json
        self.drop_keys = tuple(_PAYLOAD_KEYS) + tuple(drop_keys)
        self.logger = logging.getLogger(logger_name)

    def _sampled(self) -> bool:
        if self.sample_rate >= 1.0:
            return True
        if self.sample_rate <= 0.0:
            return False
        return random.random() < self.sample_rate

    def _scrub(self, event: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in event.items() if k not in self.drop_keys}

    def format(self, event: Dict[str, Any]) -> str:
        safe = self._scrub(event)
        if self.as_json:
            return json.dumps(safe, sort_keys=True, default=str)
        parts = " ".join(f"{k}={safe[k]}" for k in sorted(safe))
        return f"decision {parts}"

    def log(self, event: Dict[str, Any]) -> Optional[str]:
        """Log *event* if it is sampled; return the emitted message (or None)."""
        if not self._sampled():
            return None
        msg = self.format(event)
        self.logger.log(self.level, msg)
        return msg


__all__ = ["DecisionLogger"]
