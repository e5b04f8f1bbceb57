import unittest
from datetime import datetime, timezone
from unittest import mock

from schemas import LocationIn
from services import plan_service
from utils import geocoding_helpers
from utils.errors import PlanError


class CompanionCapTests(unittest.TestCase):
    def test_known_companion_types(self):
        self.assertEqual(plan_service.max_participants_for("Individual"), 2)
        self.assertEqual(plan_service.max_participants_for("Pareja"), 2)
        self.assertEqual(plan_service.max_participants_for("Grupo pequeño"), 6)
        self.assertEqual(plan_service.max_participants_for("Grupo grande"), 20)

    def test_companion_type_wins_over_explicit_value(self):
        self.assertEqual(plan_service.max_participants_for("Grupo grande", 4), 20)

    def test_fallbacks(self):
        self.assertEqual(plan_service.max_participants_for("Unknown"), 2)
        self.assertEqual(plan_service.max_participants_for(None, "12"), 12)
        self.assertEqual(plan_service.max_participants_for(None, "lots"), 2)
        self.assertEqual(plan_service.max_participants_for(None, 0), 2)


class CombineDateTimeTests(unittest.TestCase):
    def test_plain_date_and_time(self):
        result = plan_service.combine_date_time("2030-05-01", "18:30")
        self.assertEqual(result, datetime(2030, 5, 1, 18, 30, tzinfo=timezone.utc))

    def test_iso_values_from_mobile_client(self):
        result = plan_service.combine_date_time("2030-05-01T00:00:00.000Z", "2030-04-20T09:15:00.000Z")
        self.assertEqual(result, datetime(2030, 5, 1, 9, 15, tzinfo=timezone.utc))

    def test_unparsable(self):
        with self.assertRaises(PlanError) as ctx:
            plan_service.combine_date_time("tomorrow", "18:30")
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.fields, ["date", "time"])


class LocationTests(unittest.TestCase):
    def test_string_location_is_the_address(self):
        self.assertEqual(
            plan_service.normalize_location("  Calle Mayor 1 "),
            {"address": "Calle Mayor 1", "city": None, "latitude": None, "longitude": None},
        )

    def test_object_location(self):
        location = plan_service.normalize_location(LocationIn(city="Madrid", latitude=40.4, longitude=-3.7))
        self.assertEqual(location["city"], "Madrid")
        self.assertIsNone(location["address"])

    def test_parse_near(self):
        self.assertEqual(plan_service.parse_near("40.4,-3.7"), (40.4, -3.7))
        with self.assertRaises(PlanError):
            plan_service.parse_near("40.4")

    def test_haversine_distance_in_meters(self):
        madrid_to_barcelona = geocoding_helpers.haversine_distance(40.4168, -3.7038, 41.3874, 2.1686)
        self.assertAlmostEqual(madrid_to_barcelona / 1000, 505, delta=5)


class ResolveLocationTests(unittest.IsolatedAsyncioTestCase):
    async def test_fills_missing_coordinates(self):
        lookup = mock.AsyncMock(return_value=(40.4168, -3.7038, "Madrid, Spain"))
        with mock.patch.object(geocoding_helpers, "geocode_place_to_coords", lookup):
            result = await geocoding_helpers.resolve_location(
                {"address": "Puerta del Sol", "city": "Madrid", "latitude": None, "longitude": None}
            )
        self.assertEqual((result["latitude"], result["longitude"]), (40.4168, -3.7038))
        lookup.assert_awaited_once()

    async def test_failed_lookup_leaves_location_untouched(self):
        with mock.patch.object(geocoding_helpers, "geocode_place_to_coords", mock.AsyncMock(return_value=None)):
            result = await geocoding_helpers.resolve_location(
                {"address": "Nowhere", "city": None, "latitude": None, "longitude": None}
            )
        self.assertIsNone(result["latitude"])
        self.assertEqual(result["address"], "Nowhere")


if __name__ == "__main__":
    unittest.main()
