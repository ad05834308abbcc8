"""HTTP retrieval of the scraped page."""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from services.errors import FetchError
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Encoding": "gzip, deflate",
}


class Fetcher:
    """Performs a single GET per call and returns the decoded body.

    ``timeout`` bounds each connect, read, write and pool phase through
    ``httpx.Timeout`` and also the whole request, which is checked as the
    body streams in. Retrying is left to the caller.
    """

    def __init__(
        self,
        timeout: float,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        headers = {
            **DEFAULT_HEADERS,
            "User-Agent": user_agent or get_settings().user_agent,
        }
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def retrieve(self, url: str) -> str:
        deadline = time.monotonic() + self.timeout
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if time.monotonic() > deadline:
                        raise FetchError(
                            f"Response from {url} took longer than {self.timeout}s",
                            url=url,
                        )
                if time.monotonic() > deadline:
                    raise FetchError(f"Response from {url} took longer than {self.timeout}s", url=url)
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise FetchError(
                f"HTTP {status_code} fetching {url}", url=url, status_code=status_code
            ) from exc
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out after {self.timeout}s fetching {url}", url=url) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request to {url} failed: {exc}", url=url) from exc
        except RuntimeError as exc:
            # httpx raises RuntimeError once the client has been closed.
            raise FetchError(f"Client closed while fetching {url}", url=url) from exc

        logger.debug(
            "Fetched page",
            extra={"url": url, "status_code": response.status_code},
        )
        return body.decode(response.encoding or "utf-8", errors="replace")
