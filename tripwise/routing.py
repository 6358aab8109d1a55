"""
Routing utilities for TripWise.

This module builds the pairwise travel-time and distance matrices the
planner works from. Matrices come from a distance provider collaborator
(by default the OSRM table service); if the provider is missing, fails,
or returns something unusable, a haversine estimate with a mode-specific
average speed is used instead so that planning can continue.

The default OSRM host is the public demo server, which only has the car
profile. Bike and walking trips therefore use the haversine estimate
unless ``OSRMDistanceProvider`` is given a server and profile mapping
that serve those modes. OSRM has no public transport profile, so transit
trips are always estimated when OSRM is the provider.

Example usage:

    coords = [(12.931, 77.616), (12.935, 77.620)]
    matrix = build_travel_matrix(coords, Vehicle(mode="car"), OSRMDistanceProvider())
    matrix.minutes[0][1]

Providers report durations in seconds and distances in meters. The
planner works in whole minutes (rounded up) and kilometers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import requests

from tripwise.config import settings
from tripwise.exceptions import DistanceProviderError
from tripwise.models import Vehicle

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# Vehicle mode -> travel-mode code understood by distance providers.
TRAVEL_MODES = {
    "car": "driving",
    "bike": "cycling",
    "walking": "walking",
    "public_transport": "transit",
}

# km/h, used when the vehicle has no average speed of its own.
DEFAULT_SPEEDS_KMH = {
    "car": 40.0,
    "bike": 15.0,
    "walking": 5.0,
    "public_transport": 25.0,
}

UNREACHABLE_MINUTES = 999999


@dataclass
class DistanceMatrix:
    """Raw provider answer: K×K durations in seconds and distances in meters."""

    durations_seconds: List[List[Optional[float]]]
    distances_meters: List[List[Optional[float]]]


@dataclass
class TravelMatrix:
    """Matrices in planner units, plus whether they were estimated."""

    minutes: List[List[int]]
    distances_km: List[List[float]]
    estimated: bool = False


class DistanceProvider(Protocol):
    def distance_matrix(self, coords: Sequence[Tuple[float, float]], mode: str) -> DistanceMatrix:
        ...


def haversine_distance(coord1: Tuple[float, float], coord2: Tuple[float, float]) -> float:
    """Compute the great‑circle distance between two coordinates in kilometers."""
    lat1, lon1 = coord1
    lat2, lon2 = coord2
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def travel_speed(vehicle: Vehicle) -> float:
    """Average speed in km/h for estimation: the vehicle's own, else the mode default."""
    return vehicle.average_speed_kmh or DEFAULT_SPEEDS_KMH[vehicle.mode]


def compute_haversine_matrix(coords: Sequence[Tuple[float, float]], speed_kmh: float) -> TravelMatrix:
    """Estimate travel matrices from straight-line distances.

    Args:
        coords: List of (lat, lon) tuples.
        speed_kmh: Assumed constant travel speed in km/h.

    Returns:
        A ``TravelMatrix`` with travel times rounded up to whole minutes.
    """
    n = len(coords)
    dist_matrix = [[0.0] * n for _ in range(n)]
    time_matrix = [[0] * n for _ in range(n)]
    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            dist = haversine_distance(coords[i], coords[j])
            dist_matrix[i][j] = dist
            time_matrix[i][j] = math.ceil(dist / speed_kmh * 60.0)
    return TravelMatrix(minutes=time_matrix, distances_km=dist_matrix, estimated=True)


class OSRMDistanceProvider:
    """Distance provider backed by the OSRM ``table`` service.

    ``profiles`` maps travel-mode codes to OSRM profile names. The public
    demo server only routes cars, so by default only ``driving`` is
    served; other modes raise ``DistanceProviderError`` and the caller
    falls back to the haversine estimate. Pass a wider mapping when
    ``base_url`` points at a server built with more profiles, e.g.
    ``{"driving": "driving", "cycling": "bike", "walking": "foot"}``.
    """

    PROFILES = {"driving": "driving"}

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        profiles: Optional[Dict[str, str]] = None,
    ):
        self.base_url = (base_url or settings.osrm_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._session = session or requests.Session()
        self.profiles = dict(profiles if profiles is not None else self.PROFILES)

    def distance_matrix(self, coords: Sequence[Tuple[float, float]], mode: str) -> DistanceMatrix:
        profile = self.profiles.get(mode)
        if profile is None:
            raise DistanceProviderError(f"OSRM has no profile for travel mode {mode!r}")
        if not coords:
            return DistanceMatrix(durations_seconds=[], distances_meters=[])
        # OSRM expects lon,lat order and semicolon separated list
        locs = ";".join(f"{lon},{lat}" for lat, lon in coords)
        url = f"{self.base_url}/table/v1/{profile}/{locs}"
        try:
            resp = self._session.get(
                url, params={"annotations": "distance,duration"}, timeout=self.timeout
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise DistanceProviderError(f"OSRM table request failed: {exc}") from exc
        if data.get("code") != "Ok" or "durations" not in data:
            raise DistanceProviderError(f"OSRM table returned {data.get('code')!r}")
        n = len(coords)
        distances = data.get("distances") or [[None] * n for _ in range(n)]
        return DistanceMatrix(durations_seconds=data["durations"], distances_meters=distances)


def _convert_provider_matrix(result: DistanceMatrix, coords: Sequence[Tuple[float, float]]) -> TravelMatrix:
    n = len(coords)
    durations = result.durations_seconds
    distances = result.distances_meters
    if len(durations) != n or any(len(row) != n for row in durations):
        raise DistanceProviderError("Duration matrix does not match the number of coordinates")
    if len(distances) != n or any(len(row) != n for row in distances):
        raise DistanceProviderError("Distance matrix does not match the number of coordinates")

    minutes = [[0] * n for _ in range(n)]
    km = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            seconds = durations[i][j]
            minutes[i][j] = UNREACHABLE_MINUTES if seconds is None else math.ceil(seconds / 60.0)
            meters = distances[i][j]
            km[i][j] = haversine_distance(coords[i], coords[j]) if meters is None else meters / 1000.0
    return TravelMatrix(minutes=minutes, distances_km=km, estimated=False)


def build_travel_matrix(
    coords: Sequence[Tuple[float, float]],
    vehicle: Vehicle,
    provider: Optional[DistanceProvider] = None,
) -> TravelMatrix:
    """Compute travel-time and distance matrices for a set of coordinates.

    The provider is asked first, using the travel-mode code for the
    vehicle. Any failure falls back to the haversine estimate at the
    vehicle's average speed. This function never raises for provider
    problems.

    Args:
        coords: List of (lat, lon) coordinate tuples.
        vehicle: Vehicle profile selecting the travel mode and fallback speed.
        provider: Optional distance provider collaborator.

    Returns:
        A ``TravelMatrix`` in minutes and kilometers.
    """
    if provider is not None:
        mode = TRAVEL_MODES[vehicle.mode]
        try:
            return _convert_provider_matrix(provider.distance_matrix(coords, mode), coords)
        except Exception as exc:  # any provider failure degrades to the estimate
            logger.warning("Distance provider failed (%s); estimating travel times", exc)
    return compute_haversine_matrix(coords, travel_speed(vehicle))
