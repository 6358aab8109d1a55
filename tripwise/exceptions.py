"""
Exceptions raised by the TripWise planner.

Every error derives from ``PlanningError`` so callers can catch the
whole family at once. ``DistanceProviderError`` never reaches callers
of ``TripPlanner.plan_trip``: it is recovered inside the routing module
by falling back to the haversine estimator.
"""

from __future__ import annotations


class PlanningError(Exception):
    """Base class for all planner errors."""


class InvalidLocationError(PlanningError):
    """A visit location is malformed (bad duration, priority, coordinates or name)."""


class InvalidConstraintsError(PlanningError):
    """Trip constraints or the vehicle profile cannot be planned against."""


class UnresolvableLocationError(PlanningError):
    """No coordinates could be obtained for a location."""

    def __init__(self, name: str):
        super().__init__(f"Could not resolve coordinates for location: {name}")
        self.name = name


class DistanceProviderError(PlanningError):
    """The distance matrix collaborator failed or returned unusable data."""
