"""
Geocoding utilities for TripWise.

This module turns visit locations into coordinates. ``LocationResolver``
applies a fixed resolution order to each location:

    1. coordinates already present on the location;
    2. the first result of geocoding its address;
    3. the coordinates of its place reference.

Lookups go through a geocoder collaborator. The default one,
``NominatimGeocoder``, wraps OpenStreetMap's Nominatim service via geopy
for addresses and calls the Nominatim ``lookup`` endpoint for place
references (OSM ids such as ``N240109189`` or ``W50637691``).

Example usage:

    resolver = LocationResolver(NominatimGeocoder())
    lat, lon = resolver.resolve(VisitLocation(name="Tower", address="Tokyo Tower",
                                              visit_duration_minutes=30))
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import List, Optional, Protocol, Sequence, Tuple

import requests
from geopy.exc import GeocoderTimedOut
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from tripwise.config import settings
from tripwise.exceptions import UnresolvableLocationError
from tripwise.models import Coordinates, VisitLocation

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, address: str) -> List[Coordinates]:
        ...

    def place_details(self, place_id: str) -> Optional[Coordinates]:
        ...


class NominatimGeocoder:
    """Geocoder collaborator backed by Nominatim.

    The public Nominatim server accepts at most one request per second and
    no parallel requests. Queries are therefore serialised through a lock
    and spaced by geopy's ``RateLimiter``, and ``concurrent_lookups`` tells
    ``LocationResolver`` to resolve one location at a time.

    Address results are kept in a bounded LRU cache (``cache_size``
    entries) to avoid repeated queries for the same text. A timed out
    query is retried once with a longer timeout; other service errors
    propagate to the caller.
    """

    concurrent_lookups = False

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        min_delay_seconds: Optional[float] = None,
        cache_size: Optional[int] = None,
    ):
        # Provide a custom user agent to comply with Nominatim's usage policy.
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.base_url = (base_url or settings.nominatim_url).rstrip("/")
        if min_delay_seconds is None:
            min_delay_seconds = settings.nominatim_min_delay_seconds
        self._geocoder = Nominatim(user_agent=self.user_agent)
        # retries and error handling stay in geocode()
        self._geocode = RateLimiter(
            self._geocoder.geocode,
            min_delay_seconds=min_delay_seconds,
            max_retries=0,
            swallow_exceptions=False,
        )
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._cached_query = lru_cache(maxsize=cache_size or settings.geocode_cache_size)(self._query)

    def _query(self, address: str) -> Tuple[Coordinates, ...]:
        with self._lock:
            try:
                results = self._geocode(address, exactly_one=False, timeout=self.timeout)
            except GeocoderTimedOut:
                # retry once
                results = self._geocode(address, exactly_one=False, timeout=self.timeout * 2)
        return tuple((r.latitude, r.longitude) for r in results or [])

    def geocode(self, address: str) -> List[Coordinates]:
        return list(self._cached_query(address))

    def cache_info(self):
        return self._cached_query.cache_info()

    def place_details(self, place_id: str) -> Optional[Coordinates]:
        with self._lock:
            resp = self._session.get(
                f"{self.base_url}/lookup",
                params={"osm_ids": place_id, "format": "json"},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        resp.raise_for_status()
        places = resp.json()
        if not places:
            return None
        return float(places[0]["lat"]), float(places[0]["lon"])


class LocationResolver:
    """Resolve visit locations to coordinates through a geocoder collaborator.

    Args:
        geocoder: Collaborator used for addresses and place references.
            Without one, only locations that already carry coordinates
            can be resolved.
        max_workers: Bound on concurrent lookups in ``resolve_all``. Geocoders
            whose ``concurrent_lookups`` attribute is false are always
            queried one location at a time.
    """

    def __init__(self, geocoder: Optional[Geocoder] = None, max_workers: Optional[int] = None):
        self.geocoder = geocoder
        self.max_workers = max_workers or settings.resolver_max_workers

    def _lookup(self, location: VisitLocation) -> Optional[Coordinates]:
        if location.coordinates is not None:
            return location.coordinates
        if self.geocoder is None:
            return None
        if location.address:
            try:
                results = self.geocoder.geocode(location.address)
                if results:
                    return tuple(results[0])
            except Exception as exc:
                logger.warning("Failed to geocode address %r: %s", location.address, exc)
        if location.place_id:
            try:
                coords = self.geocoder.place_details(location.place_id)
                if coords:
                    return tuple(coords)
            except Exception as exc:
                logger.warning("Failed to get place details for %r: %s", location.place_id, exc)
        return None

    def resolve(self, location: VisitLocation) -> Coordinates:
        """Return (lat, lng) for ``location`` or raise ``UnresolvableLocationError``."""
        coords = self._lookup(location)
        if coords is None:
            raise UnresolvableLocationError(location.name)
        return coords

    def _lookup_all(self, locations: Sequence[VisitLocation]) -> List[Optional[Coordinates]]:
        pending = sum(1 for loc in locations if loc.coordinates is None)
        if pending <= 1 or self.geocoder is None or not getattr(self.geocoder, "concurrent_lookups", True):
            return [self._lookup(loc) for loc in locations]
        # map() hands results back in input order regardless of completion order
        with ThreadPoolExecutor(max_workers=min(self.max_workers, pending)) as executor:
            return list(executor.map(self._lookup, locations))

    def resolve_all(
        self, locations: Sequence[VisitLocation], strict: bool = True
    ) -> Tuple[List[VisitLocation], List[VisitLocation]]:
        """Resolve every location, keeping input order.

        Returns:
            ``(resolved, unresolved)`` where resolved locations carry
            their coordinates. With ``strict`` the first unresolved
            location, in input order, raises ``UnresolvableLocationError``.
        """
        resolved: List[VisitLocation] = []
        unresolved: List[VisitLocation] = []
        for location, coords in zip(locations, self._lookup_all(locations)):
            if coords is None:
                if strict:
                    raise UnresolvableLocationError(location.name)
                unresolved.append(location)
            else:
                resolved.append(location.with_coordinates(coords))
        return resolved, unresolved

    def diagnose(self, locations: Sequence[VisitLocation]) -> List[str]:
        """Names of all locations that cannot be resolved."""
        _, unresolved = self.resolve_all(locations, strict=False)
        return [loc.name for loc in unresolved]
