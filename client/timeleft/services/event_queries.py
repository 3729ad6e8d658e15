"""
Pure projections over event lists.

Consumers sort and filter client-side; nothing here touches repository
state, so results can be recomputed on every render.
"""

from datetime import date, datetime, timezone
from typing import Iterable, Literal, Optional

from timeleft.schemas.event import Event

Timeframe = Literal["all", "upcoming", "past"]

HOT_EVENT_THRESHOLD = 0.7


def participation_rate(event: Event) -> float:
    if event.max_participants <= 0:
        return 0.0
    return len(event.participants) / event.max_participants


def is_hot(event: Event) -> bool:
    """An event is "hot" once 70% of its seats are taken."""
    return participation_rate(event) >= HOT_EVENT_THRESHOLD


def sort_by_event_date(events: Iterable[Event], descending: bool = False) -> list[Event]:
    return sorted(events, key=lambda event: event.event_date, reverse=descending)


def filter_events(
    events: Iterable[Event],
    search: Optional[str] = None,
    timeframe: Timeframe = "all",
    location: Optional[str] = None,
    on_date: Optional[date] = None,
    hot_only: bool = False,
    now: Optional[datetime] = None,
) -> list[Event]:
    """
    Filter events the way the listing page does, sorted soonest first.

    `search` matches title or description and `location` matches a
    substring, both case-insensitively. `on_date` compares calendar days.
    """
    now = now or datetime.now(timezone.utc)
    search = search.lower() if search else None
    location = location.lower() if location else None

    selected = []
    for event in events:
        if search and search not in event.title.lower() and search not in event.description.lower():
            continue
        if timeframe == "upcoming" and event.event_date < now:
            continue
        if timeframe == "past" and event.event_date >= now:
            continue
        if location and location not in event.location.lower():
            continue
        if on_date and event.event_date.date() != on_date:
            continue
        if hot_only and not is_hot(event):
            continue
        selected.append(event)

    return sort_by_event_date(selected)
