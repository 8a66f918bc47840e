"""
Base class for the upstream source adapters.

Every adapter owns an aiohttp session (or borrows a shared one), turns a
FetchWindow into that source's request shape and turns the response into
Event records. Any network, HTTP status or payload problem surfaces as a
SourceError tagged with the adapter's source id.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import InputValidationError, SourceError
from ..models import Event, FetchWindow, SourceId

logger = logging.getLogger(__name__)


class SourceAdapter:
    """One upstream API family, seen through the common Event shape."""

    source_id: SourceId = SourceId.STATIC
    label: str = "Events"

    def __init__(self, label: Optional[str] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = 30.0):
        if label:
            self.label = label
        self.session = session
        self._owns_session = session is None
        self.timeout = timeout

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()

    async def connect(self):
        """Initialize HTTP session."""
        if self.session:
            return
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        self._owns_session = True
        logger.debug(f"{self.label} session initialized")

    async def disconnect(self):
        """Close HTTP session if this adapter opened it."""
        if self.session and self._owns_session:
            await self.session.close()
            logger.debug(f"{self.label} session closed")
        if self._owns_session:
            self.session = None

    def validate(self, window: FetchWindow) -> None:
        """Reject malformed queries before any I/O. Raises InputValidationError."""

    async def fetch(self, window: FetchWindow) -> List[Event]:
        """
        Fetch this source's events for a window.

        Args:
            window: Date range and optional observer

        Returns:
            Events in the adapter's own order (possibly empty)

        Raises:
            SourceError: on any network, HTTP, credential or payload error
            InputValidationError: if the window is unusable for this source
        """
        self.validate(window)
        with self._source_errors():
            events = await self._fetch(window)
        logger.info(f"Fetched {len(events)} {self.label} events")
        return events

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        raise NotImplementedError

    @contextmanager
    def _source_errors(self):
        """Map transport and payload failures inside the block to SourceError."""
        try:
            yield
        except (SourceError, InputValidationError):
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error fetching {self.label}: {str(e)}")
            raise SourceError(self.source_id, f"network error: {e}", self.label) from e
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Malformed payload from {self.label}: {str(e)}")
            raise SourceError(self.source_id, f"malformed payload: {e}", self.label) from e

    def _error(self, cause: str) -> SourceError:
        return SourceError(self.source_id, cause, self.label)

    async def _request_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                            method: str = "GET", headers: Optional[Dict[str, str]] = None,
                            body: Optional[Any] = None) -> Any:
        """
        Issue a single request and decode its JSON body.

        Query parameters are not logged since several sources carry their
        credential there.
        """
        if not self.session:
            await self.connect()

        logger.debug(f"{method} {url}")
        async with self.session.request(method, url, params=params, headers=headers, json=body) as response:
            if not 200 <= response.status < 300:
                error_text = await response.text()
                logger.error(f"{self.label} API error: {response.status}, {error_text[:200]}")
                raise self._error(f"HTTP {response.status}: {error_text[:200]}")
            return await response.json(content_type=None)
