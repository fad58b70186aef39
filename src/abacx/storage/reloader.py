from __future__ import annotations

import json
import logging
import random
import threading
import time
from typing import Optional

from ..core.errors import AbacxError
from ..core.ports import PolicySource, PolicyTarget

logger = logging.getLogger("abacx.storage")


class HotReloader:
    """Keeps a policy target in sync with a ``PolicySource``.

    Each check compares ``source.etag()`` with the last applied one and only
    loads the document when it changed (or when the source cannot tell).
    ``target.set_policy`` is called with the loaded document; on failure the
    previous policy stays in place and further checks are suppressed for an
    exponentially growing, jittered window.

    Usage::

        policy = RecordPolicy()
        reloader = HotReloader(policy, FilePolicySource("rules.yaml"), poll_interval=5)
        reloader.check_and_reload()   # initial load
        reloader.start()              # background polling
        ...
        reloader.stop()
    """

    def __init__(
        self,
        target: PolicyTarget,
        source: PolicySource,
        *,
        poll_interval: float = 5.0,
        backoff_min: float = 2.0,
        backoff_max: float = 30.0,
        jitter_ratio: float = 0.15,
        initial_load: bool = False,
        thread_daemon: bool = True,
    ) -> None:
        self.target = target
        self.source = source
        self.poll_interval = float(poll_interval)
        self.backoff_min = float(backoff_min)
        self.backoff_max = float(backoff_max)
        self.jitter_ratio = float(jitter_ratio)
        self.thread_daemon = thread_daemon

        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._last_etag: Optional[str] = None
        self._last_reload_at: Optional[float] = None
        self._last_error: Optional[Exception] = None
        self._backoff = self.backoff_min
        self._suppress_until = 0.0

        if not initial_load:
            # the target is assumed to already hold the current document
            try:
                self._last_etag = self.source.etag()
            except Exception:
                logger.warning("ABACX: could not read initial etag from %s", self._source_name())

    # -- reload ---------------------------------------------------------------

    def check_and_reload(self, *, force: bool = False) -> bool:
        """Apply the source document if it changed; return True when applied."""
        now = time.time()
        with self._lock:
            if not force and now < self._suppress_until:
                return False
            try:
                etag = self.source.etag()
                if not force and etag is not None and etag == self._last_etag:
                    return False
                document = self.source.load()
                self.target.set_policy(document)
            except FileNotFoundError as e:
                self._failed(now, e, logging.WARNING, "ABACX: rule document not found: %s")
                return False
            except (json.JSONDecodeError, ValueError, AbacxError) as e:
                self._failed(now, e, logging.ERROR, "ABACX: invalid rule document in %s")
                return False
            except Exception as e:
                self._failed(now, e, logging.ERROR, "ABACX: rule reload from %s failed")
                return False

            self._last_etag = etag
            self._last_reload_at = now
            self._last_error = None
            self._backoff = self.backoff_min
            self._suppress_until = 0.0
        logger.info("ABACX: rules reloaded from %s", self._source_name())
        return True

    def _failed(self, now: float, err: Exception, level: int, msg: str) -> None:
        self._last_error = err
        logger.log(level, msg, self._source_name(), exc_info=level >= logging.ERROR)
        self._backoff = min(self.backoff_max, max(self.backoff_min, self._backoff * 2.0))
        jitter = self._backoff * self.jitter_ratio * random.uniform(-1.0, 1.0)
        self._suppress_until = now + max(0.2, self._backoff + jitter)

    def _source_name(self) -> str:
        path = getattr(self.source, "path", None)
        return path if isinstance(path, str) else type(self.source).__name__

    # -- background polling -----------------------------------------------------

    def start(self, interval: Optional[float] = None) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run,
                args=(float(interval if interval is not None else self.poll_interval),),
                name="abacx-reloader",
                daemon=self.thread_daemon,
            )
            self._thread.start()

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stop.set()
        thread.join(timeout=timeout)
        with self._lock:
            if not thread.is_alive():
                self._thread = None

    def _run(self, interval: float) -> None:
        while not self._stop.is_set():
            try:
                self.check_and_reload()
            except Exception:  # pragma: no cover
                logger.exception("ABACX: reloader loop error")
            delay = interval + interval * self.jitter_ratio * random.uniform(-1.0, 1.0)
            with self._lock:
                remaining = self._suppress_until - time.time()
            if remaining > 0:
                delay = min(delay, remaining)
            self._stop.wait(timeout=max(0.01, delay))

    # -- diagnostics ------------------------------------------------------------

    @property
    def last_etag(self) -> Optional[str]:
        with self._lock:
            return self._last_etag

    @property
    def last_reload_at(self) -> Optional[float]:
        with self._lock:
            return self._last_reload_at

    @property
    def last_error(self) -> Optional[Exception]:
        with self._lock:
            return self._last_error

    @property
    def suppressed_until(self) -> float:
        with self._lock:
            return self._suppress_until


__all__ = ["HotReloader"]
