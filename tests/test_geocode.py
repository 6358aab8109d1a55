import threading
import time
import unittest
from unittest import mock

from geopy.exc import GeocoderTimedOut

from tripwise.config import settings
from tripwise.exceptions import UnresolvableLocationError
from tripwise.geocode import LocationResolver, NominatimGeocoder
from tripwise.models import VisitLocation

from fakes import FakeGeocoder


class TestLocationResolver(unittest.TestCase):
    def test_coordinates_take_precedence(self):
        geocoder = FakeGeocoder(addresses={"Somewhere": [(1.0, 2.0)]})
        resolver = LocationResolver(geocoder)
        loc = VisitLocation(
            name="A", coordinates="35.0,139.0", address="Somewhere", visit_duration_minutes=10
        )
        self.assertEqual(resolver.resolve(loc), (35.0, 139.0))
        self.assertEqual(geocoder.calls, [])

    def test_address_uses_first_result(self):
        geocoder = FakeGeocoder(addresses={"Main St": [(1.0, 2.0), (3.0, 4.0)]})
        loc = VisitLocation(name="A", address="Main St", place_id="N1", visit_duration_minutes=10)
        self.assertEqual(LocationResolver(geocoder).resolve(loc), (1.0, 2.0))
        self.assertEqual(geocoder.calls, [("geocode", "Main St")])

    def test_place_reference_after_failed_geocode(self):
        geocoder = FakeGeocoder(places={"N1": (5.0, 6.0)}, fail_addresses=["Main St"])
        loc = VisitLocation(name="A", address="Main St", place_id="N1", visit_duration_minutes=10)
        with self.assertLogs("tripwise.geocode", level="WARNING"):
            coords = LocationResolver(geocoder).resolve(loc)
        self.assertEqual(coords, (5.0, 6.0))

    def test_place_reference_after_empty_geocode(self):
        geocoder = FakeGeocoder(places={"N1": (5.0, 6.0)})
        loc = VisitLocation(name="A", address="Main St", place_id="N1", visit_duration_minutes=10)
        self.assertEqual(LocationResolver(geocoder).resolve(loc), (5.0, 6.0))
        self.assertEqual(geocoder.calls, [("geocode", "Main St"), ("place_details", "N1")])

    def test_unresolvable(self):
        loc = VisitLocation(name="Ghost", address="Nowhere", place_id="X9", visit_duration_minutes=10)
        with self.assertRaises(UnresolvableLocationError) as ctx:
            LocationResolver(FakeGeocoder()).resolve(loc)
        self.assertEqual(ctx.exception.name, "Ghost")

    def test_without_geocoder_only_coordinates_resolve(self):
        resolver = LocationResolver()
        self.assertEqual(
            resolver.resolve(VisitLocation(name="A", coordinates=(1, 2), visit_duration_minutes=5)),
            (1.0, 2.0),
        )
        with self.assertRaises(UnresolvableLocationError):
            resolver.resolve(VisitLocation(name="B", address="Main St", visit_duration_minutes=5))

    def test_resolve_all_keeps_input_order(self):
        # earlier addresses answer later, so completion order is reversed
        addresses = {f"addr {i}": [(float(i), float(i))] for i in range(4)}
        delays = {f"addr {i}": 0.05 * (4 - i) for i in range(4)}
        geocoder = FakeGeocoder(addresses=addresses, delays=delays)
        locations = [
            VisitLocation(name=f"L{i}", address=f"addr {i}", visit_duration_minutes=10) for i in range(4)
        ]
        resolved, unresolved = LocationResolver(geocoder, max_workers=4).resolve_all(locations)
        self.assertEqual([loc.name for loc in resolved], ["L0", "L1", "L2", "L3"])
        self.assertEqual([loc.coordinates for loc in resolved], [(float(i), float(i)) for i in range(4)])
        self.assertEqual(unresolved, [])
        # inputs are not modified
        self.assertIsNone(locations[0].coordinates)

    def test_resolve_all_strict_raises_first_failure(self):
        locations = [
            VisitLocation(name="ok", coordinates=(1, 1), visit_duration_minutes=10),
            VisitLocation(name="bad1", address="x", visit_duration_minutes=10),
            VisitLocation(name="bad2", address="y", visit_duration_minutes=10),
        ]
        with self.assertRaises(UnresolvableLocationError) as ctx:
            LocationResolver(FakeGeocoder()).resolve_all(locations)
        self.assertEqual(ctx.exception.name, "bad1")

    def test_diagnose_reports_every_failure(self):
        geocoder = FakeGeocoder(addresses={"good": [(1.0, 1.0)]})
        locations = [
            VisitLocation(name="bad1", address="x", visit_duration_minutes=10),
            VisitLocation(name="fine", address="good", visit_duration_minutes=10),
            VisitLocation(name="bad2", address="y", visit_duration_minutes=10),
        ]
        self.assertEqual(LocationResolver(geocoder).diagnose(locations), ["bad1", "bad2"])


class TestNominatimGeocoder(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("tripwise.geocode.Nominatim")
        self.nominatim_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.backend = self.nominatim_cls.return_value

    def test_geocode_returns_all_results_and_caches(self):
        self.backend.geocode.return_value = [
            mock.Mock(latitude=35.6586, longitude=139.7454),
            mock.Mock(latitude=35.0, longitude=139.0),
        ]
        geocoder = NominatimGeocoder(user_agent="tests", timeout=3)
        self.assertEqual(geocoder.geocode("Tokyo Tower"), [(35.6586, 139.7454), (35.0, 139.0)])
        self.assertEqual(geocoder.geocode("Tokyo Tower"), [(35.6586, 139.7454), (35.0, 139.0)])
        self.backend.geocode.assert_called_once_with("Tokyo Tower", exactly_one=False, timeout=3)
        self.nominatim_cls.assert_called_once_with(user_agent="tests")

    def test_geocode_no_match(self):
        self.backend.geocode.return_value = None
        self.assertEqual(NominatimGeocoder().geocode("nowhere"), [])

    def test_geocode_retries_once_on_timeout(self):
        self.backend.geocode.side_effect = [GeocoderTimedOut("slow"), [mock.Mock(latitude=1.0, longitude=2.0)]]
        geocoder = NominatimGeocoder(timeout=4, min_delay_seconds=0)
        self.assertEqual(geocoder.geocode("Main St"), [(1.0, 2.0)])
        self.assertEqual(self.backend.geocode.call_args[1]["timeout"], 8)

    def test_geocode_is_rate_limited(self):
        with mock.patch("tripwise.geocode.RateLimiter") as limiter:
            NominatimGeocoder()
        limiter.assert_called_once_with(
            self.backend.geocode,
            min_delay_seconds=settings.nominatim_min_delay_seconds,
            max_retries=0,
            swallow_exceptions=False,
        )
        self.assertEqual(NominatimGeocoder(min_delay_seconds=2)._geocode.min_delay_seconds, 2)

    def test_resolver_lookups_never_overlap(self):
        lock = threading.Lock()
        in_flight = [0]
        peak = [0]

        def slow_geocode(address, exactly_one, timeout):
            with lock:
                in_flight[0] += 1
                peak[0] = max(peak[0], in_flight[0])
            time.sleep(0.05)
            with lock:
                in_flight[0] -= 1
            n = float(address.split()[-1])
            return [mock.Mock(latitude=n, longitude=n)]

        self.backend.geocode.side_effect = slow_geocode
        locations = [
            VisitLocation(name=f"L{i}", address=f"addr {i}", visit_duration_minutes=10) for i in range(4)
        ]
        resolver = LocationResolver(NominatimGeocoder(min_delay_seconds=0), max_workers=4)
        resolved, _ = resolver.resolve_all(locations)
        self.assertEqual(peak[0], 1)
        self.assertEqual(self.backend.geocode.call_count, 4)
        self.assertEqual([loc.coordinates for loc in resolved], [(float(i), float(i)) for i in range(4)])

    def test_cache_evicts_least_recently_used(self):
        self.backend.geocode.return_value = [mock.Mock(latitude=1.0, longitude=2.0)]
        geocoder = NominatimGeocoder(min_delay_seconds=0, cache_size=2)
        for address in ("a", "b", "c"):
            geocoder.geocode(address)
        self.assertEqual(geocoder.cache_info().currsize, 2)
        geocoder.geocode("c")
        self.assertEqual(self.backend.geocode.call_count, 3)
        # "a" was evicted and is queried again
        geocoder.geocode("a")
        self.assertEqual(self.backend.geocode.call_count, 4)
        self.assertEqual(geocoder.cache_info().maxsize, 2)

    def test_cached_results_are_not_shared(self):
        self.backend.geocode.return_value = [mock.Mock(latitude=1.0, longitude=2.0)]
        geocoder = NominatimGeocoder(min_delay_seconds=0)
        geocoder.geocode("a").append((9.0, 9.0))
        self.assertEqual(geocoder.geocode("a"), [(1.0, 2.0)])

    def test_place_details(self):
        session = mock.Mock()
        session.get.return_value.json.return_value = [{"lat": "35.1", "lon": "139.2"}]
        geocoder = NominatimGeocoder(base_url="http://nominatim.test", session=session)
        self.assertEqual(geocoder.place_details("N240109189"), (35.1, 139.2))
        url = session.get.call_args[0][0]
        self.assertEqual(url, "http://nominatim.test/lookup")
        self.assertEqual(session.get.call_args[1]["params"]["osm_ids"], "N240109189")

    def test_place_details_not_found(self):
        session = mock.Mock()
        session.get.return_value.json.return_value = []
        self.assertIsNone(NominatimGeocoder(session=session).place_details("N0"))


if __name__ == "__main__":
    unittest.main()
