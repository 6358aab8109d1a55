"""
TripWise package initialization.

This package plans multi-stop trips: it orders a set of locations,
builds a timetable for them and splits it into day plans that fit a
daily time window. Components include geocoding, routing, optimisation,
schedule calculation and day splitting.

Modules:
    models       – Input and output records with validation.
    geocode      – Location resolution via a geocoder collaborator (Nominatim by default).
    routing      – Travel time/distance matrices via OSRM with a haversine fallback.
    optimisation – Priority nearest neighbour and 2‑opt heuristics.
    schedule     – Time helpers and the linear schedule builder.
    days         – Splitting a schedule into day plans.
    planner      – ``TripPlanner`` entry point and trip plan aggregation.
    app          – Streamlit front-end.

Travel times are estimates. When the routing service is unavailable they
come from straight-line distances and average speeds only.
"""

from tripwise.exceptions import (
    DistanceProviderError,
    InvalidConstraintsError,
    InvalidLocationError,
    PlanningError,
    UnresolvableLocationError,
)
from tripwise.models import DayPlan, RouteSegment, TripConstraints, TripPlan, Vehicle, VisitLocation
from tripwise.planner import TripPlanner

__all__ = [
    "DayPlan",
    "DistanceProviderError",
    "InvalidConstraintsError",
    "InvalidLocationError",
    "PlanningError",
    "RouteSegment",
    "TripConstraints",
    "TripPlan",
    "TripPlanner",
    "UnresolvableLocationError",
    "Vehicle",
    "VisitLocation",
]
