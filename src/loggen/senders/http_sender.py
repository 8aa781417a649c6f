"""
HTTP transport for generated batches.

Batches are POSTed as-is to the ingestion endpoint. Credentials travel as
X-API-Key / X-API-Secret headers. One requests.Session is shared by all
concurrent deliveries; its connection pool is sized for that.
"""

import logging

import requests
from requests.adapters import HTTPAdapter

from ..config import Config
from ..defaults import DEFAULT_TIMEOUT_SECONDS
from .base import Sender, SendError

logger = logging.getLogger(__name__)

_MAX_ERROR_BODY = 200


class HTTPSender(Sender):
    """POST each batch to a fixed URL."""

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        content_type: str = "application/json",
        session: requests.Session | None = None,
        pool_size: int = 20,
    ):
        self.url = url
        self.timeout = timeout
        self.headers: dict[str, str] = {"Content-Type": content_type}
        self.headers.update(headers or {})
        self.session = session or requests.Session()
        if session is None:
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    @classmethod
    def for_generator(cls, config: Config, generator, url: str | None = None) -> "HTTPSender":
        """Sender posting to the generator's ingestion path under the configured URL."""
        base = (url or config.url).rstrip("/")
        path = getattr(generator, "path", "")
        return cls(
            f"{base}{path}",
            headers=config.auth_headers(),
            timeout=config.timeout,
            content_type=getattr(generator, "content_type", "application/json"),
        )

    def with_headers(self, headers: dict[str, str]) -> "HTTPSender":
        """Add headers to every request; returns self for chaining."""
        self.headers.update(headers)
        return self

    def send(self, batch: bytes) -> None:
        try:
            response = self.session.post(
                self.url,
                data=batch,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SendError(f"POST {self.url} failed: {e}") from e
        if not response.ok:
            body = (response.text or "").strip()[:_MAX_ERROR_BODY]
            raise SendError(
                f"POST {self.url} returned {response.status_code}: {body}",
                status_code=response.status_code,
            )
        logger.debug("POST %s -> %d", self.url, response.status_code)

    def close(self) -> None:
        self.session.close()
