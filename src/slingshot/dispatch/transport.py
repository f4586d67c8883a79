"""HTTP transport to the proxy, built on requests."""

import logging
import os
from contextlib import ExitStack
from typing import Protocol

import requests

from slingshot.config import TransportConfig
from .cancel import CancelToken
from .wire import FormProxyRequest, ProxyRequest, ProxyResponse

logger = logging.getLogger(__name__)


class ProxyHTTPError(Exception):
    """The proxy answered with a non-2xx status instead of a ProxyResponse."""


class Transport(Protocol):
    def send(self, call: ProxyRequest | FormProxyRequest, token: CancelToken) -> ProxyResponse: ...


class RequestsTransport:
    """Posts wire requests to the proxy endpoints.

    Cancelling the token closes the session, which aborts the pending
    call on a best-effort basis; the dispatcher discards whatever arrives
    afterwards.
    """

    def __init__(self, config: TransportConfig):
        self.config = config

    def send(self, call: ProxyRequest | FormProxyRequest, token: CancelToken) -> ProxyResponse:
        session = requests.Session()
        token.on_cancel(session.close)
        wait = call.timeout + self.config.connect_grace
        try:
            if isinstance(call, FormProxyRequest):
                response = self._post_form(session, call, wait)
            else:
                logger.debug("POST %s %s %s", self.config.request_endpoint, call.method, call.url)
                response = session.post(self.config.request_endpoint, json=call.to_wire(), timeout=wait)

            if not response.ok:
                raise ProxyHTTPError(f"Proxy request failed: {response.status_code} {response.reason}")
            return ProxyResponse.model_validate(response.json())
        finally:
            session.close()

    def _post_form(self, session: requests.Session, call: FormProxyRequest, wait: float) -> requests.Response:
        logger.debug("POST %s %s %s (%s)", self.config.form_endpoint, call.method, call.url, call.content_type)
        with ExitStack() as stack:
            if call.content_type == "multipart/form-data":
                # Text fields go through ``files`` too so requests always encodes multipart.
                parts = [(key, (None, value)) for key, value in call.fields]
                for key, path in call.files:
                    handle = stack.enter_context(open(path, "rb"))
                    parts.append((key, (os.path.basename(path), handle)))
                return session.post(
                    self.config.form_endpoint, params=call.query_params(), files=parts or None, timeout=wait
                )
            return session.post(
                self.config.form_endpoint, params=call.query_params(), data=call.fields, timeout=wait
            )
