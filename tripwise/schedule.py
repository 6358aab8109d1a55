"""
Schedule calculation utilities for TripWise.

This module turns a visiting order into a linear timetable: arrival and
departure for each stop, given the travel-time matrix and the visit
durations. All arithmetic is done on integer minutes since midnight;
``HH:MM`` strings only appear at the edges.

Times are not wrapped at midnight. A trip that runs past 24:00 yields
values such as ``25:30`` so that the day splitter can see the overflow.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:
    from tripwise.models import VisitLocation


@dataclass(frozen=True)
class ScheduledStop:
    index: int  # row of this location in the travel matrix
    location: "VisitLocation"
    travel_time_minutes: int
    arrival: int
    departure: int

    @property
    def arrival_time(self) -> str:
        return format_time(self.arrival)

    @property
    def departure_time(self) -> str:
        return format_time(self.departure)


def parse_time(t: str) -> int:
    """Parse a HH:MM formatted time string into minutes since midnight.

    Raises:
        ValueError: if ``t`` is not a valid 24-hour HH:MM time.
    """
    try:
        parsed = datetime.strptime(t.strip(), "%H:%M")
    except (AttributeError, ValueError):
        raise ValueError(f"Time must be in HH:MM format: {t!r}") from None
    return parsed.hour * 60 + parsed.minute


def format_time(minutes: int) -> str:
    """Format minutes since midnight as HH:MM without wrapping past 24:00."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def build_schedule(
    route: Sequence[int],
    locations: Sequence["VisitLocation"],
    travel_minutes: Sequence[Sequence[int]],
    start_minutes: int,
) -> List[ScheduledStop]:
    """Generate a linear schedule for a visiting order.

    Args:
        route: Visiting order as indices into ``locations``.
        locations: Resolved locations, aligned with the matrix rows.
        travel_minutes: Matrix of travel times in whole minutes.
        start_minutes: Arrival time at the first stop, in minutes since midnight.

    Returns:
        One ``ScheduledStop`` per route entry. The first stop has no
        travel time; every later stop arrives at the previous departure
        plus the travel time between the two.
    """
    schedule: List[ScheduledStop] = []
    current_time = start_minutes
    for position, loc_index in enumerate(route):
        travel = 0
        if position > 0:
            travel = travel_minutes[route[position - 1]][loc_index]
            current_time += travel
        location = locations[loc_index]
        departure = current_time + location.visit_duration_minutes
        schedule.append(
            ScheduledStop(
                index=loc_index,
                location=location,
                travel_time_minutes=travel,
                arrival=current_time,
                departure=departure,
            )
        )
        current_time = departure
    return schedule
