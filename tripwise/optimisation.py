"""
Route optimisation heuristics for TripWise.

This module orders visit locations into an approximate shortest tour
with a bias towards high-priority stops. It provides:

    - ``priority_nearest_neighbor``: seed with the highest-priority
      location, then repeatedly visit the unvisited location with the
      smallest priority-discounted travel time.
    - ``two_opt``: a 2‑opt pass over an open route that keeps the
      first stop in place.

Both are wrapped in optimizer classes sharing the ``RouteOptimizer``
interface so the planner can be given a different heuristic without
touching scheduling or day splitting. The default is the greedy
nearest neighbour: deterministic and O(n²), but not optimal.

Routes are lists of indices into the location list, which is also the
row order of the travel-time matrix.
"""

from __future__ import annotations

import logging
from typing import List, Protocol, Sequence

from tripwise.models import VisitLocation

logger = logging.getLogger(__name__)

PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}

# Multiplier on travel time when choosing the next stop; smaller is more attractive.
PRIORITY_BONUS = {"high": 0.8, "medium": 0.9, "low": 1.0}


class RouteOptimizer(Protocol):
    def optimise(
        self, locations: Sequence[VisitLocation], travel_minutes: Sequence[Sequence[float]]
    ) -> List[int]:
        ...


def priority_order(locations: Sequence[VisitLocation]) -> List[int]:
    """Indices sorted by descending priority, ties kept in input order."""
    return sorted(range(len(locations)), key=lambda i: -PRIORITY_RANK[locations[i].priority])


def priority_nearest_neighbor(
    locations: Sequence[VisitLocation], travel_minutes: Sequence[Sequence[float]]
) -> List[int]:
    """Construct a route using the priority-weighted nearest neighbor heuristic.

    Args:
        locations: Locations to order.
        travel_minutes: Square matrix of travel times aligned with ``locations``.

    Returns:
        A list of indices visiting every location exactly once.
    """
    candidates = priority_order(locations)
    if not candidates:
        return []
    current = candidates.pop(0)
    route = [current]
    while candidates:
        # min() keeps the first of equal scores, so ties follow priority order
        pick = min(
            range(len(candidates)),
            key=lambda k: travel_minutes[current][candidates[k]]
            * PRIORITY_BONUS[locations[candidates[k]].priority],
        )
        current = candidates.pop(pick)
        logger.debug("Next stop: %s", locations[current].name)
        route.append(current)
    return route


def route_length(route: Sequence[int], travel_minutes: Sequence[Sequence[float]]) -> float:
    return sum(travel_minutes[route[i]][route[i + 1]] for i in range(len(route) - 1))


def two_opt(route: List[int], travel_minutes: Sequence[Sequence[float]]) -> List[int]:
    """Perform 2‑opt optimisation on an open route.

    Segments are reversed while that shortens the total travel time.
    The first stop never moves.

    Args:
        route: Initial route as a list of indices.
        travel_minutes: Square matrix of travel times.

    Returns:
        A route no longer than the initial one.
    """
    best = list(route)
    best_length = route_length(best, travel_minutes)
    n = len(best)
    improved = True
    while improved:
        improved = False
        for i in range(1, n - 1):
            for j in range(i + 2, n + 1):
                new_route = best[:i] + best[i:j][::-1] + best[j:]
                new_length = route_length(new_route, travel_minutes)
                if new_length < best_length:
                    best = new_route
                    best_length = new_length
                    improved = True
                    break
            if improved:
                break
    return best


class PriorityNearestNeighbor:
    """Default optimizer: greedy, priority-biased nearest neighbour."""

    def optimise(
        self, locations: Sequence[VisitLocation], travel_minutes: Sequence[Sequence[float]]
    ) -> List[int]:
        return priority_nearest_neighbor(locations, travel_minutes)


class TwoOptOptimizer:
    """Priority nearest neighbour followed by a 2‑opt pass.

    Shorter tours, but the priority bias only survives in the choice
    of the first stop.
    """

    def optimise(
        self, locations: Sequence[VisitLocation], travel_minutes: Sequence[Sequence[float]]
    ) -> List[int]:
        return two_opt(priority_nearest_neighbor(locations, travel_minutes), travel_minutes)
