import unittest

from tripwise.models import VisitLocation
from tripwise.schedule import build_schedule, format_time, parse_time


class TestTimeHelpers(unittest.TestCase):
    def test_parse_time(self):
        self.assertEqual(parse_time("09:00"), 540)
        self.assertEqual(parse_time(" 17:45 "), 1065)
        self.assertEqual(parse_time("00:00"), 0)

    def test_parse_time_rejects_garbage(self):
        for bad in ("9am", "24:00", "12:60", "", None):
            with self.assertRaises(ValueError):
                parse_time(bad)

    def test_format_time_does_not_wrap(self):
        self.assertEqual(format_time(540), "09:00")
        self.assertEqual(format_time(1439), "23:59")
        self.assertEqual(format_time(1530), "25:30")


class TestBuildSchedule(unittest.TestCase):
    def setUp(self):
        self.locations = [
            VisitLocation(name="A", coordinates=(0, 0), visit_duration_minutes=30),
            VisitLocation(name="B", coordinates=(0, 1), visit_duration_minutes=45),
            VisitLocation(name="C", coordinates=(1, 0), visit_duration_minutes=60),
        ]
        self.minutes = [
            [0, 10, 20],
            [10, 0, 5],
            [20, 5, 0],
        ]

    def test_arrivals_accumulate(self):
        schedule = build_schedule([0, 1, 2], self.locations, self.minutes, parse_time("09:00"))
        self.assertEqual([s.location.name for s in schedule], ["A", "B", "C"])
        self.assertEqual([s.travel_time_minutes for s in schedule], [0, 10, 5])
        self.assertEqual(
            [(s.arrival_time, s.departure_time) for s in schedule],
            [("09:00", "09:30"), ("09:40", "10:25"), ("10:30", "11:30")],
        )

    def test_route_order_selects_matrix_cells(self):
        schedule = build_schedule([2, 0], self.locations, self.minutes, 600)
        self.assertEqual(schedule[0].index, 2)
        self.assertEqual(schedule[1].travel_time_minutes, 20)
        self.assertEqual(schedule[1].arrival, 600 + 60 + 20)

    def test_runs_past_midnight_without_wrapping(self):
        schedule = build_schedule([0, 1, 2], self.locations, self.minutes, parse_time("22:30"))
        self.assertEqual(schedule[-1].departure_time, "25:00")
        self.assertGreater(schedule[-1].departure, schedule[0].arrival)

    def test_empty_route(self):
        self.assertEqual(build_schedule([], [], [], 540), [])


if __name__ == "__main__":
    unittest.main()
