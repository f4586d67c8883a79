"""Transport proxy settings.

Built once by the composing application and passed to the dispatcher.
"""

import os

from pydantic import BaseModel, Field

DEFAULT_PROXY_URL = "http://localhost:8080"


class TransportConfig(BaseModel):
    proxy_url: str = DEFAULT_PROXY_URL
    timeout: int = Field(default=30, ge=1, le=300)
    follow_redirects: bool = True
    # Extra seconds to wait on the proxy itself beyond the forwarded timeout.
    connect_grace: float = 5.0

    @property
    def request_endpoint(self) -> str:
        return f"{self.proxy_url.rstrip('/')}/proxy/request"

    @property
    def form_endpoint(self) -> str:
        return f"{self.proxy_url.rstrip('/')}/proxy/form"


def load_transport_config() -> TransportConfig:
    """Read settings from SLINGSHOT_* environment variables."""
    return TransportConfig(
        proxy_url=os.getenv("SLINGSHOT_PROXY_URL", DEFAULT_PROXY_URL),
        timeout=int(os.getenv("SLINGSHOT_TIMEOUT", "30")),
        follow_redirects=os.getenv("SLINGSHOT_FOLLOW_REDIRECTS", "true").lower() not in ("0", "false", "no"),
    )
