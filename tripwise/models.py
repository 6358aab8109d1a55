"""
Data model for TripWise trip planning.

Inputs (``VisitLocation``, ``Vehicle``, ``TripConstraints``) validate
themselves on construction so that the planning stages can assume
well-formed data. Outputs (``RouteSegment``, ``DayPlan``, ``TripPlan``)
are plain records assembled by the day splitter and the planner.

Times are carried as ``HH:MM`` strings at the edges and converted to
minutes since midnight by :mod:`tripwise.schedule` for arithmetic.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date as _date
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from tripwise.exceptions import InvalidConstraintsError, InvalidLocationError
from tripwise.schedule import ScheduledStop, parse_time

Coordinates = Tuple[float, float]

PRIORITIES = ("high", "medium", "low")
VEHICLE_MODES = ("car", "bike", "walking", "public_transport")


def parse_coordinates(value: Union[str, Sequence[float]]) -> Coordinates:
    """Normalise a ``"lat,lng"`` string or a ``(lat, lng)`` pair to floats."""
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = list(value)
    if len(parts) != 2:
        raise InvalidLocationError(f"Coordinates must be a lat,lng pair: {value!r}")
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except (TypeError, ValueError):
        raise InvalidLocationError(f"Coordinates must be numeric: {value!r}") from None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        raise InvalidLocationError(f"Coordinates out of range: {value!r}")
    return lat, lng


@dataclass(frozen=True)
class VisitLocation:
    """A place to visit, identified by a name unique within one request.

    At least one of ``coordinates``, ``address`` or ``place_id`` is
    needed for the location to be resolvable; this is checked during
    planning rather than here.
    """

    name: str
    visit_duration_minutes: int
    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    place_id: Optional[str] = None
    preferred_time: Optional[str] = None
    priority: str = "medium"
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidLocationError("Location name must not be empty")
        duration = self.visit_duration_minutes
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise InvalidLocationError(
                f"Visit duration for {self.name} must be a positive number of minutes"
            )
        if self.priority is None:
            object.__setattr__(self, "priority", "medium")
        if self.priority not in PRIORITIES:
            raise InvalidLocationError(f"Unknown priority for {self.name}: {self.priority!r}")
        if self.coordinates is not None:
            object.__setattr__(self, "coordinates", parse_coordinates(self.coordinates))
        if self.preferred_time is not None:
            try:
                parse_time(self.preferred_time)
            except ValueError:
                raise InvalidLocationError(
                    f"Preferred time for {self.name} must be HH:MM: {self.preferred_time!r}"
                ) from None

    def with_coordinates(self, coordinates: Coordinates) -> "VisitLocation":
        """Return a copy of this location carrying resolved coordinates."""
        return replace(self, coordinates=coordinates)


@dataclass(frozen=True)
class Vehicle:
    mode: str = "car"
    average_speed_kmh: Optional[float] = None
    fuel_efficiency: Optional[float] = None
    capacity: Optional[int] = None

    def __post_init__(self) -> None:
        if self.mode not in VEHICLE_MODES:
            raise InvalidConstraintsError(f"Unknown vehicle mode: {self.mode!r}")
        if self.average_speed_kmh is not None and self.average_speed_kmh <= 0:
            raise InvalidConstraintsError("Average speed must be positive")


@dataclass(frozen=True)
class TripConstraints:
    """Daily time window and optional per-day limits.

    ``break_duration_minutes`` and ``break_after_hours`` are accepted but
    not applied to the schedule.
    """

    start_time: str
    end_time: str
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    max_travel_time_minutes: Optional[int] = None
    max_total_distance_km: Optional[float] = None
    break_duration_minutes: Optional[int] = None
    break_after_hours: Optional[float] = None

    def __post_init__(self) -> None:
        try:
            start = parse_time(self.start_time)
            end = parse_time(self.end_time)
        except ValueError as exc:
            raise InvalidConstraintsError(str(exc)) from None
        if end <= start:
            raise InvalidConstraintsError(
                f"End time {self.end_time} must be later than start time {self.start_time}"
            )
        for label in (
            "max_travel_time_minutes",
            "max_total_distance_km",
            "break_duration_minutes",
            "break_after_hours",
        ):
            value = getattr(self, label)
            if value is not None and value < 0:
                raise InvalidConstraintsError(f"{label} must not be negative")

    @property
    def start_minutes(self) -> int:
        return parse_time(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time(self.end_time)

    @property
    def window_minutes(self) -> int:
        """Length of the daily window in minutes."""
        return self.end_minutes - self.start_minutes

    @property
    def has_break(self) -> bool:
        return bool(self.break_duration_minutes) or bool(self.break_after_hours)


def validate_trip_date(value: Optional[str]) -> Optional[_date]:
    """Parse an optional ISO ``YYYY-MM-DD`` trip start date."""
    if value is None:
        return None
    try:
        return _date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidConstraintsError(f"Trip date must be YYYY-MM-DD: {value!r}") from None


@dataclass(frozen=True)
class RouteSegment:
    from_location: VisitLocation
    to_location: VisitLocation
    distance_km: float
    travel_time_minutes: int
    departure_time: str
    arrival_time: str


@dataclass
class DayPlan:
    day: int
    locations: List[VisitLocation]
    route_segments: List[RouteSegment]
    schedule: List[ScheduledStop]
    total_distance_km: float
    total_travel_time_minutes: int
    total_visit_time_minutes: int
    start_time: str
    end_time: str
    feasible: bool
    date: Optional[str] = None
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class TripPlan:
    feasible_in_single_day: bool
    recommended_days: int
    day_plans: List[DayPlan]
    total_distance_km: float
    total_time_hours: float
    unvisited_locations: List[VisitLocation] = field(default_factory=list)
    optimization_notes: List[str] = field(default_factory=list)
    alternative_suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
