"""
gutendex_client.py: outbound calls to the Gutendex book catalog.

Two calls are exposed: a free-text search and a metadata fetch by book
id. Both return the raw response body. Transport errors, timeouts and
non-2xx responses are reported as a failed Result; nothing is retried
or cached.
"""
import logging
import re
from typing import Optional

import httpx

from .config import (
    BOOK_ID_PATTERN,
    GUTENDEX_BASE_URL,
    GUTENDEX_CONNECT_TIMEOUT,
    GUTENDEX_READ_TIMEOUT,
    GUTENDEX_SEARCH_PARAM,
    GUTENDEX_SERVICE_NAME,
)
from .errors import ErrorKind, Result, book_not_found_message

logger = logging.getLogger(__name__)

_BOOK_ID_RE = re.compile(BOOK_ID_PATTERN)

# Basic headers so Gutendex treats us as a regular JSON client
DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "book-review-service/1.0",
}


class GutendexClient:
    def __init__(
        self,
        base_url: str = GUTENDEX_BASE_URL,
        connect_timeout: float = GUTENDEX_CONNECT_TIMEOUT,
        read_timeout: float = GUTENDEX_READ_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        # Gutendex redirects /books/84 to /books/84/
        self._client = httpx.Client(
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
            transport=transport,
        )
        logger.info(f"GutendexClient initialized with base URL: {self.base_url}")

    def close(self):
        self._client.close()

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def search(self, query: Optional[str]) -> Result[str]:
        if query is None or not query.strip():
            logger.warning("Attempted to search books with null or empty query")
            return Result.fail(ErrorKind.INVALID_ARGUMENT, "Search query cannot be null or empty")

        logger.info(f"Searching books with query: {query}")
        return self._get(self.base_url, "search", params={GUTENDEX_SEARCH_PARAM: query})

    def fetch_metadata(self, book_id: Optional[str]) -> Result[str]:
        if book_id is None or not book_id.strip():
            logger.warning("Attempted to fetch book metadata with null or empty ID")
            return Result.fail(ErrorKind.INVALID_ARGUMENT, "Book ID cannot be null or empty")
        if not _BOOK_ID_RE.fullmatch(book_id):
            logger.warning(f"Invalid book ID format: {book_id}")
            return Result.fail(ErrorKind.INVALID_ARGUMENT, "Book ID must contain only digits")

        logger.info(f"Fetching metadata for book ID: {book_id}")
        return self._get(
            f"{self.base_url}/{book_id}",
            f"book/{book_id}",
            not_found_message=book_not_found_message(book_id),
        )

    def _get(
        self,
        url: str,
        endpoint: str,
        params: Optional[dict] = None,
        not_found_message: Optional[str] = None,
    ) -> Result[str]:
        try:
            resp = self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling {GUTENDEX_SERVICE_NAME} API at {endpoint}: {e}")
            return self._external_failure(endpoint, "Connection timeout or network error")
        except httpx.HTTPError as e:
            logger.error(f"Connection error calling {GUTENDEX_SERVICE_NAME} API at {endpoint}: {e}")
            return self._external_failure(endpoint, "Connection timeout or network error")

        if resp.status_code == 404 and not_found_message is not None:
            logger.warning(f"{GUTENDEX_SERVICE_NAME} returned 404 for {endpoint}")
            return Result.fail(ErrorKind.NOT_FOUND, not_found_message)

        if not resp.is_success:
            logger.error(f"HTTP error calling {GUTENDEX_SERVICE_NAME} API at {endpoint}: {resp.status_code}")
            return self._external_failure(endpoint, f"HTTP {resp.status_code}")

        body = resp.text
        if not body or not body.strip():
            logger.error(f"Received empty response body from {GUTENDEX_SERVICE_NAME} at {endpoint}")
            return self._external_failure(endpoint, "Received empty response body")

        logger.debug(f"{GUTENDEX_SERVICE_NAME} call to {endpoint} succeeded")
        return Result.ok(body)

    @staticmethod
    def _external_failure(endpoint: str, detail: str) -> Result[str]:
        return Result.fail(
            ErrorKind.EXTERNAL_SERVICE,
            f"Error calling {GUTENDEX_SERVICE_NAME} API at {endpoint}: {detail}",
        )
