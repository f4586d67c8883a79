"""Send requests through the transport proxy.

Each dispatcher runs at most one call at a time and moves through
``IDLE -> SENDING -> SUCCESS | FAILED | CANCELLED``. The outcome of a call
is produced exactly once; after cancellation anything the transport
reports later is dropped.
"""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

from slingshot.config import TransportConfig
from slingshot.resolver import VariableResolver
from slingshot.store.models import Collection, Request, RequestFields
from .cancel import CancelToken
from .classify import Cancelled, Failed, Success, cancelled, classify_exception, classify_response, failed
from .transport import RequestsTransport, Transport
from .wire import build_call, validate_url

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


_FINAL_STATES = {
    Success: DispatchState.SUCCESS,
    Failed: DispatchState.FAILED,
    Cancelled: DispatchState.CANCELLED,
}


class RequestDispatcher:
    def __init__(
        self,
        config: TransportConfig | None = None,
        transport: Transport | None = None,
        on_outcome: Callable[[Success | Failed | Cancelled], None] | None = None,
    ):
        self.config = config or TransportConfig()
        self.transport = transport or RequestsTransport(self.config)
        self.on_outcome = on_outcome
        self.state = DispatchState.IDLE
        self._lock = threading.Lock()
        self._token: CancelToken | None = None

    def send(
        self,
        fields: RequestFields,
        timeout: int | None = None,
        follow_redirects: bool | None = None,
    ) -> Success | Failed | Cancelled:
        """Send already-resolved request fields and block until the outcome."""
        started = time.perf_counter()
        token = CancelToken()
        with self._lock:
            if self._token is not None and self.state == DispatchState.SENDING:
                logger.warning("Send while a call is in flight; cancelling the previous call")
                self._token.cancel()
            self._token = token
            self.state = DispatchState.SENDING

        error = validate_url(fields.url)
        if error:
            return self._finish(token, failed("url_validation_error", "Invalid URL", error, _elapsed(started)))

        call = build_call(
            fields,
            timeout=timeout or self.config.timeout,
            follow_redirects=self.config.follow_redirects if follow_redirects is None else follow_redirects,
        )

        settled = threading.Event()
        result: dict = {}

        def _run():
            try:
                result["response"] = self.transport.send(call, token)
            except Exception as e:
                result["error"] = e
            finally:
                settled.set()

        token.on_cancel(settled.set)
        threading.Thread(target=_run, name="slingshot-dispatch", daemon=True).start()
        settled.wait()

        elapsed = _elapsed(started)
        if token.cancelled:
            outcome = cancelled(elapsed)
        elif "error" in result:
            logger.debug("Transport call failed: %r", result["error"])
            outcome = classify_exception(result["error"], elapsed)
        else:
            outcome = classify_response(result["response"], elapsed)
        return self._finish(token, outcome)

    def send_request(
        self, request: Request, collection: Collection | None, resolver: VariableResolver
    ) -> Success | Failed | Cancelled:
        """Resolve a request's current (drafted) fields and send them.

        The collection's timeout and redirect settings apply to the call.
        """
        fields = resolver.resolve(collection, request.effective_fields())
        if collection is None:
            return self.send(fields)
        return self.send(fields, timeout=collection.timeout, follow_redirects=collection.follow_redirects)

    def cancel(self) -> bool:
        """Cancel the in-flight call. Returns False when nothing is in flight."""
        with self._lock:
            if self._token is None or self.state != DispatchState.SENDING:
                return False
            token = self._token
        token.cancel()
        return True

    def _finish(self, token: CancelToken, outcome):
        with self._lock:
            if self._token is token:
                self.state = _FINAL_STATES[type(outcome)]
                self._token = None
        logger.info("Dispatch finished: %s", outcome.kind)
        if self.on_outcome is not None:
            self.on_outcome(outcome)
        return outcome


def _elapsed(started: float) -> float:
    return (time.perf_counter() - started) * 1000
