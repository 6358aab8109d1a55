"""
Trip planning entry point for TripWise.

``TripPlanner.plan_trip`` runs the whole pipeline:

    resolve locations -> travel matrix -> visiting order
    -> linear schedule -> day plans -> trip plan

Collaborators (geocoder, distance provider) and the route optimizer are
injected at construction; a planner holds no per-request state, so one
instance can serve any number of calls.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from tripwise.days import split_into_days
from tripwise.exceptions import InvalidLocationError
from tripwise.geocode import Geocoder, LocationResolver
from tripwise.models import DayPlan, TripConstraints, TripPlan, Vehicle, VisitLocation, validate_trip_date
from tripwise.optimisation import PriorityNearestNeighbor, RouteOptimizer
from tripwise.routing import DistanceProvider, build_travel_matrix
from tripwise.schedule import build_schedule

logger = logging.getLogger(__name__)

LONG_TRAVEL_MINUTES_PER_DAY = 180


def aggregate_trip_plan(
    day_plans: Sequence[DayPlan],
    locations: Sequence[VisitLocation],
    constraints: TripConstraints,
) -> TripPlan:
    """Merge day plans into the final trip plan.

    Notes and suggestions are descriptive only; they never change the
    feasibility flags.
    """
    scheduled = {loc.name for plan in day_plans for loc in plan.locations}
    unvisited = [loc for loc in locations if loc.name not in scheduled]

    total_distance = sum(plan.total_distance_km for plan in day_plans)
    total_minutes = sum(
        plan.total_travel_time_minutes + plan.total_visit_time_minutes for plan in day_plans
    )
    feasible_in_single_day = len(day_plans) == 1 and day_plans[0].feasible

    notes: List[str] = []
    alternatives: List[str] = []
    if len(day_plans) > 1:
        notes.append(f"Trip requires {len(day_plans)} days to complete comfortably")
    if unvisited:
        notes.append(f"{len(unvisited)} locations could not be scheduled")
        alternatives.append("Consider extending trip duration or reducing visit times")
    if constraints.has_break:
        notes.append("Breaks are not included in the schedule; plan them into the free time")
    if day_plans:
        avg_travel = sum(plan.total_travel_time_minutes for plan in day_plans) / len(day_plans)
        if avg_travel > LONG_TRAVEL_MINUTES_PER_DAY:
            alternatives.append("Consider grouping locations by geographic proximity")

    return TripPlan(
        feasible_in_single_day=feasible_in_single_day,
        recommended_days=len(day_plans),
        day_plans=list(day_plans),
        total_distance_km=round(total_distance, 1),
        total_time_hours=round(total_minutes / 60.0, 1),
        unvisited_locations=unvisited,
        optimization_notes=notes,
        alternative_suggestions=alternatives,
    )


class TripPlanner:
    """Plan multi-stop trips.

    Args:
        geocoder: Collaborator resolving addresses and place references.
        distance_provider: Collaborator returning travel matrices. When
            missing or failing, travel times are estimated.
        optimizer: Route ordering heuristic, ``PriorityNearestNeighbor``
            by default.
        max_workers: Bound on concurrent location lookups.
    """

    def __init__(
        self,
        geocoder: Optional[Geocoder] = None,
        distance_provider: Optional[DistanceProvider] = None,
        optimizer: Optional[RouteOptimizer] = None,
        max_workers: Optional[int] = None,
    ):
        self.resolver = LocationResolver(geocoder, max_workers=max_workers)
        self.distance_provider = distance_provider
        self.optimizer = optimizer or PriorityNearestNeighbor()

    def plan_trip(
        self,
        locations: Sequence[VisitLocation],
        vehicle: Vehicle,
        constraints: TripConstraints,
        date: Optional[str] = None,
        skip_unresolved: bool = False,
    ) -> TripPlan:
        """Produce a day-by-day itinerary for ``locations``.

        Args:
            locations: Places to visit; names must be unique.
            vehicle: Vehicle profile.
            constraints: Daily window and limits.
            date: Optional ISO date of the first day.
            skip_unresolved: Report unresolvable locations in
                ``unvisited_locations`` instead of raising.

        Raises:
            InvalidLocationError: empty input or duplicate names.
            InvalidConstraintsError: malformed ``date``.
            UnresolvableLocationError: a location has no coordinates and
                ``skip_unresolved`` is false.
        """
        if not locations:
            raise InvalidLocationError("At least one location is required")
        seen = set()
        for loc in locations:
            if loc.name in seen:
                raise InvalidLocationError(f"Duplicate location name: {loc.name}")
            seen.add(loc.name)
        trip_date = validate_trip_date(date)

        resolved, unresolved = self.resolver.resolve_all(locations, strict=not skip_unresolved)
        for loc in unresolved:
            logger.warning("Skipping unresolved location %s", loc.name)

        day_plans: List[DayPlan] = []
        if resolved:
            matrix = build_travel_matrix(
                [loc.coordinates for loc in resolved], vehicle, self.distance_provider
            )
            route = self.optimizer.optimise(resolved, matrix.minutes)
            schedule = build_schedule(route, resolved, matrix.minutes, constraints.start_minutes)
            day_plans = split_into_days(schedule, constraints, matrix.distances_km, trip_date)

        plan = aggregate_trip_plan(day_plans, locations, constraints)
        logger.info(
            "Planned %d locations over %d day(s), single-day feasible: %s",
            len(resolved),
            plan.recommended_days,
            plan.feasible_in_single_day,
        )
        return plan
