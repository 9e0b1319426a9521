import unittest

from squarefit.config import Settings


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        s = Settings.from_env({})
        self.assertEqual(s.size, 2000)
        self.assertAlmostEqual(s.pad, 0.05)
        self.assertEqual(s.vbias, 0.0)
        self.assertEqual(s.alpha_threshold, 16)
        self.assertFalse(s.hq)
        self.assertEqual((s.smooth_thresh, s.smooth_blur), (180, 1.2))
        self.assertEqual((s.quality, s.alpha_quality, s.effort), (82, 80, 6))

    def test_reads_environment_keys(self):
        s = Settings.from_env(
            {
                "SIZE": "1000",
                "PAD": "0.1",
                "VBIAS": "-0.02",
                "ATHRESH": "40",
                "HQ": "1",
                "SMOOTH_THRESH": "200",
                "SMOOTH_BLUR": "2.5",
                "QUALITY": "90",
                "AQUALITY": "70",
                "EFFORT": "3",
            }
        )
        self.assertEqual(s.size, 1000)
        self.assertAlmostEqual(s.pad, 0.1)
        self.assertAlmostEqual(s.vbias, -0.02)
        self.assertEqual(s.alpha_threshold, 40)
        self.assertTrue(s.hq)
        self.assertEqual((s.smooth_thresh, s.smooth_blur), (200, 2.5))
        self.assertEqual((s.quality, s.alpha_quality, s.effort), (90, 70, 3))

    def test_hq_only_enabled_by_one(self):
        self.assertFalse(Settings.from_env({"HQ": "true"}).hq)
        self.assertFalse(Settings.from_env({"HQ": ""}).hq)

    def test_unparsable_values_use_defaults(self):
        s = Settings.from_env({"SIZE": "big", "PAD": "lots"})
        self.assertEqual(s.size, 2000)
        self.assertAlmostEqual(s.pad, 0.05)

    def test_out_of_range_values_raise(self):
        for env in ({"EFFORT": "7"}, {"PAD": "0.5"}, {"ATHRESH": "256"}, {"SIZE": "0"}, {"QUALITY": "101"}):
            with self.assertRaises(ValueError, msg=str(env)):
                Settings.from_env(env)

    def test_settings_are_frozen(self):
        s = Settings()
        with self.assertRaises(Exception):
            s.size = 10  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
