"""
Day splitting for TripWise.

A linear schedule is cut into day-sized chunks bounded by the daily
window (``end_time - start_time``). Each stop needs its travel time plus
its visit duration. A stop that would push the current day past the
window closes that day and opens the next one; a stop that alone
overflows an empty day is still admitted and the day is reported as
infeasible, so no location is ever dropped here.

Every day restarts its clock at ``start_time``. The first stop of a
later day keeps the travel time it had in the linear schedule, i.e. the
trip from where the previous day ended.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional, Sequence

from tripwise.models import DayPlan, RouteSegment, TripConstraints
from tripwise.schedule import ScheduledStop, format_time

logger = logging.getLogger(__name__)


def split_into_days(
    schedule: Sequence[ScheduledStop],
    constraints: TripConstraints,
    distances_km: Sequence[Sequence[float]],
    trip_date: Optional[date] = None,
) -> List[DayPlan]:
    """Partition a linear schedule into day plans.

    Args:
        schedule: Output of ``build_schedule``.
        constraints: Trip constraints supplying the daily window and limits.
        distances_km: Distance matrix aligned with the schedule's ``index`` values.
        trip_date: Calendar date of day 1, if known.

    Returns:
        Day plans in order, numbered from 1.
    """
    window = constraints.window_minutes
    day_plans: List[DayPlan] = []
    current: List[ScheduledStop] = []
    day_time = 0

    for stop in schedule:
        needed = stop.travel_time_minutes + stop.location.visit_duration_minutes
        if day_time + needed > window and current:
            day_plans.append(
                build_day_plan(len(day_plans) + 1, current, constraints, distances_km, trip_date)
            )
            logger.debug("Day %d closed before %s", len(day_plans), stop.location.name)
            current = []
            day_time = 0
        current.append(stop)
        day_time += needed

    if current:
        day_plans.append(
            build_day_plan(len(day_plans) + 1, current, constraints, distances_km, trip_date)
        )
    return day_plans


def build_day_plan(
    day: int,
    stops: Sequence[ScheduledStop],
    constraints: TripConstraints,
    distances_km: Sequence[Sequence[float]],
    trip_date: Optional[date] = None,
) -> DayPlan:
    window = constraints.window_minutes
    clock = constraints.start_minutes
    day_schedule: List[ScheduledStop] = []
    segments: List[RouteSegment] = []
    distance = 0.0

    for stop in stops:
        arrival = clock + stop.travel_time_minutes
        departure = arrival + stop.location.visit_duration_minutes
        rebased = ScheduledStop(
            index=stop.index,
            location=stop.location,
            travel_time_minutes=stop.travel_time_minutes,
            arrival=arrival,
            departure=departure,
        )
        if day_schedule:
            previous = day_schedule[-1]
            leg_km = distances_km[previous.index][stop.index]
            segments.append(
                RouteSegment(
                    from_location=previous.location,
                    to_location=stop.location,
                    distance_km=leg_km,
                    travel_time_minutes=stop.travel_time_minutes,
                    departure_time=previous.departure_time,
                    arrival_time=rebased.arrival_time,
                )
            )
            distance += leg_km
        day_schedule.append(rebased)
        clock = departure

    day_time = clock - constraints.start_minutes
    visit_time = sum(stop.location.visit_duration_minutes for stop in stops)
    travel_time = day_time - visit_time
    feasible = day_time <= window

    issues: List[str] = []
    suggestions: List[str] = []
    if not feasible:
        issues.append(f"Day exceeds time limit by {day_time - window} minutes")
        suggestions.append("Consider reducing visit durations or splitting into more days")
    limit_km = constraints.max_total_distance_km
    if limit_km is not None and distance > limit_km:
        issues.append(f"Day exceeds distance limit by {distance - limit_km:.1f} km")
    limit_min = constraints.max_travel_time_minutes
    if limit_min is not None and travel_time > limit_min:
        issues.append(f"Day exceeds travel time limit by {travel_time - limit_min} minutes")

    return DayPlan(
        day=day,
        date=(trip_date + timedelta(days=day - 1)).isoformat() if trip_date else None,
        locations=[stop.location for stop in stops],
        route_segments=segments,
        schedule=day_schedule,
        total_distance_km=round(distance, 1),
        total_travel_time_minutes=travel_time,
        total_visit_time_minutes=visit_time,
        start_time=format_time(constraints.start_minutes),
        end_time=format_time(clock),
        feasible=feasible,
        issues=issues,
        suggestions=suggestions,
    )
