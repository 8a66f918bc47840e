import asyncio
from datetime import date

import pytest

from cosmofy.data.event_aggregator import EventAggregator
from cosmofy.errors import InputValidationError
from cosmofy.models import FetchWindow
from cosmofy.views.state import EventView

from conftest import StubAdapter, make_event, utc

DAY_ONE = FetchWindow.single_day(date(2024, 12, 13))
DAY_TWO = FetchWindow.single_day(date(2024, 12, 14))


class RejectingAdapter(StubAdapter):
    def validate(self, window):
        raise InputValidationError("bad window")


def _view(*adapters):
    return EventView("test", EventAggregator(adapters))


def test_refresh_commits_and_resets_cursors():
    adapter = StubAdapter("A", [make_event(f"e{i}", utc(2024, 12, 13, i)) for i in range(3)])
    view = _view(adapter)

    async def run():
        await view.refresh(DAY_ONE)
        view.state.next()
        view.state.next()
        assert view.state.current().title == "e2"
        await view.refresh(DAY_ONE)

    asyncio.run(run())
    assert view.state.cursors.cursor("all").index == 0
    assert view.state.current().title == "e0"
    assert view.state.committed_cycle == 2


def test_stale_cycle_is_dropped():
    """A slow older cycle finishing after a newer one never overwrites it."""
    old_event = make_event("old", utc(2024, 12, 13, 9))
    new_event = make_event("new", utc(2024, 12, 14, 9))

    async def run():
        release = asyncio.Event()
        adapter = StubAdapter("A", [old_event, new_event], gate=release)
        view = _view(adapter)

        first = asyncio.create_task(view.refresh(DAY_ONE))
        while adapter.calls == 0:
            await asyncio.sleep(0)
        adapter.gate = None
        second = await view.refresh(DAY_TWO)
        release.set()
        first_applied = await first
        return view, first_applied, second

    view, first_applied, second_applied = asyncio.run(run())
    assert second_applied is True
    assert first_applied is False
    assert [event.title for event in view.state.timeline.events] == ["new"]
    assert view.state.window == DAY_TWO
    assert view.state.loading is False


def test_invalid_window_leaves_state_untouched():
    adapter = RejectingAdapter("A", [make_event("x", utc(2024, 12, 13, 1))])
    view = _view(adapter)

    with pytest.raises(InputValidationError):
        asyncio.run(view.refresh(DAY_ONE))
    assert view.state.latest_cycle == 0
    assert adapter.calls == 0


def test_failed_group_reports_its_error():
    view = _view(StubAdapter("Good", [make_event("x", utc(2024, 12, 13, 1))]),
                 StubAdapter("Bad", error="HTTP 500: oops"))
    asyncio.run(view.refresh(DAY_ONE))

    state = view.state.to_dict()
    assert state['banner'] == "Failed to load Bad: HTTP 500: oops"
    assert state['groups']['Bad']['error']['message'] == "HTTP 500: oops"
    assert state['groups']['Bad']['position'] == "No events"
    assert state['groups']['Good']['current']['title'] == "x"


def test_unknown_group_is_rejected():
    view = _view(StubAdapter("A"))
    with pytest.raises(InputValidationError):
        view.state.next("nope")
