import unittest

from errors import ConfigurationError, OutOfRangeError
from terrain import Terrain


class TestTerrain(unittest.TestCase):
    def make_simple_terrain(self) -> Terrain:
        # Flat from x=0..2000 at y=1000, with simple slopes up/down around
        points = [
            ( -500.0, 1500.0),
            (    0.0, 1000.0),  # start of flat
            ( 2000.0, 1000.0),  # end of flat
            ( 3000.0, 1500.0),
        ]
        return Terrain.from_points(points)

    def test_landing_zone_range_and_y(self):
        t = self.make_simple_terrain()
        zone = t.landing_zone()
        self.assertEqual((zone.x_min, zone.x_max), (0.0, 2000.0))
        self.assertEqual(zone.y, 1000.0)
        self.assertEqual(zone.center, 1000.0)
        self.assertEqual((zone.first_seg, zone.last_seg), (1, 1))

    def test_flat_run_spanning_several_points(self):
        t = Terrain.from_points([(0, 500), (100, 200), (200, 200), (300, 200), (400, 600)])
        zone = t.landing_zone()
        self.assertEqual((zone.x_min, zone.x_max, zone.y), (100.0, 300.0, 200.0))
        hit = t.segment_crosses((250.0, 300.0), (250.0, 100.0))
        self.assertIsNotNone(hit)
        self.assertEqual(hit.seg_idx, 2)
        self.assertTrue(hit.on_landing_zone)

    def test_height_at_interpolates(self):
        t = self.make_simple_terrain()
        self.assertAlmostEqual(t.height_at(-250.0), 1250.0)
        self.assertAlmostEqual(t.height_at(1234.0), 1000.0)
        self.assertAlmostEqual(t.height_at(2500.0), 1250.0)
        self.assertAlmostEqual(t.height_at(3000.0), 1500.0)
        self.assertAlmostEqual(t.height_at(-500.0), 1500.0)

    def test_height_at_outside_extent(self):
        t = self.make_simple_terrain()
        with self.assertRaises(OutOfRangeError):
            t.height_at(3000.5)
        with self.assertRaises(OutOfRangeError):
            t.height_at(-501.0)

    def test_crossing_hits_flat(self):
        t = self.make_simple_terrain()
        # Path from above through the flat: should report a hit on the flat segment (index 1)
        hit = t.segment_crosses((1000.0, 1500.0), (1000.0, 900.0))
        self.assertIsNotNone(hit)
        self.assertEqual(hit.seg_idx, 1)
        self.assertTrue(hit.on_landing_zone)
        self.assertAlmostEqual(hit.point[0], 1000.0, places=6)
        self.assertAlmostEqual(hit.point[1], 1000.0, places=6)

    def test_crossing_slope_is_not_landing_zone(self):
        t = self.make_simple_terrain()
        hit = t.segment_crosses((2500.0, 1300.0), (2500.0, 1200.0))
        self.assertIsNotNone(hit)
        self.assertEqual(hit.seg_idx, 2)
        self.assertFalse(hit.on_landing_zone)

    def test_crossing_earliest_hit(self):
        points = [
            (0.0, 900.0), (1000.0, 900.0),  # seg 0 (flat)
            (2000.0, 1100.0),               # seg 1 (angled)
            (3000.0, 800.0),                # seg 2 (angled)
        ]
        t = Terrain.from_points(points)
        # Horizontal path at y=1000 crosses both sides of the ridge; the first one in path order wins
        hit = t.segment_crosses((1200.0, 1000.0), (2800.0, 1000.0))
        self.assertIsNotNone(hit)
        self.assertEqual(hit.seg_idx, 1)
        self.assertAlmostEqual(hit.point[0], 1500.0, places=6)
        back = t.segment_crosses((2800.0, 1000.0), (1200.0, 1000.0))
        self.assertEqual(back.seg_idx, 2)

    def test_crossing_at_landing_zone_vertices(self):
        t = Terrain.from_points([(0.0, 500.0), (1000.0, 0.0), (2000.0, 0.0), (3000.0, 500.0)])
        # Both ends of the flat run are shared with a slope; the flat segment takes the hit
        for x in (1000.0, 2000.0):
            hit = t.segment_crosses((x, 10.0), (x, -10.0))
            self.assertIsNotNone(hit)
            self.assertEqual(hit.seg_idx, 1)
            self.assertTrue(hit.on_landing_zone)
            self.assertAlmostEqual(hit.point[1], 0.0)

    def test_crossing_through_thin_spike(self):
        # Narrow peak between x=1000 and x=1020 that a fast horizontal move jumps over
        t = Terrain.from_points([(0, 100), (500, 100), (1000, 100.5), (1010, 900), (1020, 100.5), (2000, 50)])
        hit = t.segment_crosses((900.0, 500.0), (1100.0, 500.0))
        self.assertIsNotNone(hit)
        self.assertIn(hit.seg_idx, (2, 3))
        self.assertFalse(hit.on_landing_zone)

    def test_collinear_overlap_counts(self):
        t = self.make_simple_terrain()
        hit = t.segment_crosses((500.0, 1000.0), (1500.0, 1000.0))
        self.assertIsNotNone(hit)
        self.assertEqual(hit.seg_idx, 1)
        self.assertAlmostEqual(hit.point[0], 500.0)

    def test_no_intersection_parallel(self):
        t = self.make_simple_terrain()
        # Segment far above, parallel to flat; choose y above any terrain y (max is 1500)
        self.assertIsNone(t.segment_crosses((-400.0, 1600.0), (2900.0, 1600.0)))

    def test_no_movement(self):
        t = self.make_simple_terrain()
        self.assertIsNone(t.segment_crosses((1000.0, 1200.0), (1000.0, 1200.0)))

    def test_rejects_invalid_profiles(self):
        with self.assertRaises(ConfigurationError):
            Terrain.from_points([(0.0, 0.0)])
        with self.assertRaises(ConfigurationError):
            Terrain.from_points([(0, 100), (100, 100), (100, 200)])  # repeated x
        with self.assertRaises(ConfigurationError):
            Terrain.from_points([(0, 100), (200, 100), (150, 300)])  # x going back
        with self.assertRaises(ConfigurationError):
            Terrain.from_points([(0, 100), (100, 200), (200, 300)])  # no flat
        with self.assertRaises(ConfigurationError):
            Terrain.from_points([(0, 100), (100, 100), (200, 300), (300, 300)])  # two flats
        with self.assertRaises(ConfigurationError):
            Terrain.from_points([(0, 100), (100, 100)], ceiling=50.0)
        with self.assertRaises(ConfigurationError):
            Terrain.from_points([(0, "a"), (100, 100)])


if __name__ == "__main__":
    unittest.main()
