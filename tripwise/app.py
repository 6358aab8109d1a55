"""
Streamlit application for TripWise trip planning.

This script defines the user interface and hands the inputs to
``TripPlanner``: it collects the locations to visit, the vehicle and the
daily time window, then shows the resulting day plans, notes and a
plain-text itinerary. All planning happens in the ``tripwise`` package;
this module only converts form values and renders results.

To run this app locally, install the package and execute:

    streamlit run tripwise/app.py

Collaborators default to Nominatim for geocoding and the public OSRM
server for travel times; see ``tripwise.config`` for the environment
variables that change them.
"""

from __future__ import annotations

import datetime
from typing import List

import streamlit as st

from tripwise.config import settings
from tripwise.exceptions import PlanningError
from tripwise.geocode import NominatimGeocoder
from tripwise.logs import configure_logging
from tripwise.models import PRIORITIES, VEHICLE_MODES, TripConstraints, TripPlan, Vehicle, VisitLocation
from tripwise.planner import TripPlanner
from tripwise.routing import OSRMDistanceProvider

MODE_LABELS = {
    "car": "Car",
    "bike": "Bike",
    "walking": "Walking",
    "public_transport": "Public transport",
}


@st.cache_resource
def get_planner() -> TripPlanner:
    return TripPlanner(geocoder=NominatimGeocoder(), distance_provider=OSRMDistanceProvider())


def format_trip_text(plan: TripPlan) -> str:
    """Format a trip plan as itinerary text for display or copying."""
    lines = ["Your itinerary:"]
    for day in plan.day_plans:
        header = f"\nDay {day.day}"
        if day.date:
            header += f" ({day.date})"
        if not day.feasible:
            header += " - over time"
        lines.append(header)
        for i, stop in enumerate(day.schedule, start=1):
            lines.append(
                f"{i}. {stop.location.name}: arrive {stop.arrival_time}, depart {stop.departure_time}"
            )
        for issue in day.issues:
            lines.append(f"   ! {issue}")
    if plan.unvisited_locations:
        names = ", ".join(loc.name for loc in plan.unvisited_locations)
        lines.append(f"\nNot scheduled: {names}")
    lines.append(f"\nTotal distance: {plan.total_distance_km} km")
    lines.append(f"Total time: {plan.total_time_hours} h")
    return "\n".join(lines)


def day_table(day) -> List[dict]:
    rows = []
    for i, stop in enumerate(day.schedule, start=1):
        rows.append(
            {
                "Order": i,
                "Name": stop.location.name,
                "Priority": stop.location.priority,
                "Travel (min)": stop.travel_time_minutes,
                "Arrival": stop.arrival_time,
                "Departure": stop.departure_time,
            }
        )
    return rows


def main():
    configure_logging(settings.log_level)
    st.set_page_config(page_title="TripWise", layout="wide")
    st.title("TripWise trip planner")

    with st.form("trip_form"):
        st.subheader("Trip parameters")
        n_places = st.number_input("Number of locations", min_value=1, max_value=25, value=3, step=1)
        col_start, col_end, col_date = st.columns(3)
        with col_start:
            start_time = st.text_input("Day start (HH:MM)", value="09:00")
        with col_end:
            end_time = st.text_input("Day end (HH:MM)", value="17:00")
        with col_date:
            trip_date = st.date_input("First day", value=datetime.date.today())
        mode = st.radio(
            "Vehicle",
            VEHICLE_MODES,
            format_func=lambda m: MODE_LABELS[m],
            horizontal=True,
        )
        speed = st.number_input(
            "Average speed (km/h, 0 = default for the vehicle)", min_value=0.0, value=0.0
        )
        max_distance = st.number_input(
            "Max distance per day (km, 0 = no limit)", min_value=0.0, value=0.0
        )

        raw_locations = []
        for i in range(int(n_places)):
            with st.expander(f"Location {i+1}", expanded=int(n_places) <= 3):
                col_name, col_addr = st.columns([1, 3])
                with col_name:
                    name = st.text_input("Name", key=f"name_{i}")
                with col_addr:
                    addr = st.text_input(
                        "Address or lat,lng", key=f"addr_{i}", help="Coordinates are used as given."
                    )
                col_stay, col_prio = st.columns(2)
                with col_stay:
                    stay = st.number_input(
                        "Visit duration (min)", min_value=1, max_value=720, value=30, key=f"stay_{i}"
                    )
                with col_prio:
                    priority = st.selectbox(
                        "Priority", PRIORITIES, index=PRIORITIES.index("medium"), key=f"prio_{i}"
                    )
                raw_locations.append((name.strip(), addr.strip(), int(stay), priority))
        skip_unresolved = st.checkbox("Skip locations that cannot be found", value=False)
        generate = st.form_submit_button("Plan trip")

    if not generate:
        return

    try:
        locations = [
            _to_location(name or f"Location {i+1}", addr, stay, priority)
            for i, (name, addr, stay, priority) in enumerate(raw_locations)
        ]
        vehicle = Vehicle(mode=mode, average_speed_kmh=speed or None)
        constraints = TripConstraints(
            start_time=start_time,
            end_time=end_time,
            max_total_distance_km=max_distance or None,
        )
        with st.spinner("Planning trip…"):
            plan = get_planner().plan_trip(
                locations,
                vehicle,
                constraints,
                date=trip_date.isoformat() if trip_date else None,
                skip_unresolved=skip_unresolved,
            )
    except PlanningError as exc:
        st.error(str(exc))
        st.stop()

    if plan.feasible_in_single_day:
        st.success("All locations fit in a single day.")
    else:
        st.warning(f"Recommended days: {plan.recommended_days}")
    for note in plan.optimization_notes:
        st.info(note)
    for suggestion in plan.alternative_suggestions:
        st.info(suggestion)

    for day in plan.day_plans:
        title = f"Day {day.day}" + (f" ({day.date})" if day.date else "")
        st.markdown(f"#### {title}: {day.start_time}–{day.end_time}")
        st.table(day_table(day))
        for issue in day.issues:
            st.error(issue)
        for suggestion in day.suggestions:
            st.caption(suggestion)

    st.text_area("Itinerary", format_trip_text(plan), height=240)


def _to_location(name: str, address: str, stay: int, priority: str) -> VisitLocation:
    # "12.97,77.59" style input is taken as coordinates, anything else as an address
    parts = address.split(",")
    if len(parts) == 2:
        try:
            coords = (float(parts[0]), float(parts[1]))
        except ValueError:
            pass
        else:
            return VisitLocation(
                name=name, coordinates=coords, visit_duration_minutes=stay, priority=priority
            )
    return VisitLocation(
        name=name, address=address or name, visit_duration_minutes=stay, priority=priority
    )


if __name__ == "__main__":
    main()
