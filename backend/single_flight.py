"""Collapses concurrent identical calls into one execution."""

import logging
from threading import Event, Lock
from typing import Any, Callable, Dict, Optional


logger = logging.getLogger(__name__)


class _Call:
    def __init__(self) -> None:
        self.done = Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.waiters = 0


class SingleFlight:
    """Run ``fn`` once per key while a call for that key is in flight.

    Callers that arrive while the leader is still running block until it
    finishes and receive the same result, or the same exception. The key is
    forgotten as soon as the leader returns, so nothing is cached afterwards.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._calls: Dict[str, _Call] = {}

    def in_flight(self) -> int:
        with self._lock:
            return len(self._calls)

    def _waiting(self, key: str) -> int:
        with self._lock:
            call = self._calls.get(key)
            return call.waiters if call is not None else 0

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        with self._lock:
            call = self._calls.get(key)
            if call is not None:
                call.waiters += 1
                leader = False
            else:
                call = _Call()
                self._calls[key] = call
                leader = True

        if not leader:
            logger.info("Joining in-flight generation %s", key[:12])
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()
        return call.result
