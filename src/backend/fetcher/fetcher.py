"""
Remote media fetcher.

Retrieves the raw bytes behind a URL and sniffs their file type. Failures are
raised as FetchError without retrying.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http.client import HTTPException
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .sniff import infer_extension


DEFAULT_TIMEOUT_S = 30.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class FetchError(RuntimeError):
    """
    Raised when a URL cannot be fetched.

    Attributes:
        url: The URL that failed.
        status_code: HTTP status, when the server answered at all.
    """

    def __init__(self, message: str, *, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass(frozen=True)
class FetchedAsset:
    """Bytes fetched for one link plus the extension sniffed from them."""
    data: bytes
    extension: str

    @property
    def size(self) -> int:
        return len(self.data)


class MediaFetcher:
    """
    Fetches media bytes over HTTP(S).

    Usage:
        fetcher = MediaFetcher()
        asset = fetcher.fetch("https://example.com/diagram")
        print(asset.extension)  # e.g. "png"

    fetch() blocks; async callers run it with asyncio.to_thread().
    """

    def __init__(
        self,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._timeout_s = timeout_s
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
        }
        self._log = logging.getLogger(__name__)

    def fetch(self, url: str) -> FetchedAsset:
        """
        Download `url` and infer its extension from the content.

        Args:
            url: An absolute http(s) URL.

        Returns:
            FetchedAsset with the bytes and the sniffed extension.

        Raises:
            FetchError: On network failure, timeout, non-2xx status, or an
                empty body.
        """
        self._log.debug("Fetching %s", url)
        try:
            req = Request(url, headers=self._headers)
            with urlopen(req, timeout=self._timeout_s) as resp:
                status = int(getattr(resp, "status", 200) or 200)
                if not 200 <= status < 300:
                    raise FetchError(f"HTTP {status} for {url}", url=url, status_code=status)
                data = resp.read()
        except HTTPError as exc:
            status = int(getattr(exc, "code", 0) or 0)
            raise FetchError(f"HTTP {status} for {url}", url=url, status_code=status or None) from exc
        except URLError as exc:
            raise FetchError(f"Cannot reach {url}: {exc.reason}", url=url) from exc
        except (TimeoutError, OSError, HTTPException, ValueError) as exc:
            # ValueError: urllib rejects malformed URLs this way
            # HTTPException: truncated or malformed responses (IncompleteRead)
            raise FetchError(f"Failed to fetch {url}: {exc}", url=url) from exc

        if not data:
            raise FetchError(f"Empty response body for {url}", url=url)

        asset = FetchedAsset(data=data, extension=infer_extension(data))
        self._log.debug("Fetched %s: %d bytes, .%s", url, asset.size, asset.extension)
        return asset
