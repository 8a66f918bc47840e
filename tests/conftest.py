import asyncio
import json
from datetime import datetime, timezone
from typing import Callable, List, Optional

from cosmofy.data.base import SourceAdapter
from cosmofy.errors import SourceError
from cosmofy.models import Event, EventCategory, FetchWindow, SourceId


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_event(title: str, occurs_at: datetime, source_id: SourceId = SourceId.STATIC,
               category: EventCategory = EventCategory.OTHER) -> Event:
    return Event(occurs_at=occurs_at, title=title, category=category, detail="", source_id=source_id)


class FakeResponse:
    """Stands in for aiohttp's response context manager."""

    def __init__(self, payload=None, status: int = 200, text: Optional[str] = None):
        self.payload = payload
        self.status = status
        self._text = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def json(self, content_type=None):
        return self.payload

    async def text(self):
        return self._text if self._text is not None else json.dumps(self.payload)


class FakeSession:
    """
    Records requests and answers them from a handler.

    The handler gets (method, url, params, body) and returns a FakeResponse,
    a bare payload (wrapped with status 200) or an exception to raise.
    """

    def __init__(self, handler: Callable):
        self.handler = handler
        self.calls: List[dict] = []
        self.closed = False

    def request(self, method, url, params=None, headers=None, json=None):
        self.calls.append({'method': method, 'url': url, 'params': params, 'headers': headers, 'json': json})
        answer = self.handler(method, url, params, json)
        if isinstance(answer, Exception):
            raise answer
        if not isinstance(answer, FakeResponse):
            answer = FakeResponse(answer)
        return answer

    async def close(self):
        self.closed = True


class StubAdapter(SourceAdapter):
    """Adapter with canned events or a canned failure; can be held open by a gate."""

    def __init__(self, label: str, events=(), error: Optional[str] = None,
                 gate: Optional[asyncio.Event] = None, delay: float = 0.0,
                 source_id: SourceId = SourceId.STATIC):
        super().__init__(label=label)
        self.source_id = source_id
        self.events = list(events)
        self.error = error
        self.gate = gate
        self.delay = delay
        self.calls = 0
        self.finished_at = None

    async def _fetch(self, window: FetchWindow) -> List[Event]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        self.finished_at = asyncio.get_running_loop().time()
        if self.error:
            raise SourceError(self.source_id, self.error, self.label)
        return [event for event in self.events if window.contains(event.occurs_at)]
