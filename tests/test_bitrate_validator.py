"""
Unit tests for BitrateValidator
"""

import unittest

from autocompress.bitrate_validator import BitrateValidator, estimate_output_bytes
from autocompress.error_handler import ErrorKind, ToolError


class TestBitrateValidator(unittest.TestCase):

    def setUp(self):
        self.validator = BitrateValidator()

    def test_default_floor(self):
        self.assertEqual(self.validator.min_video_bitrate_kbps, 100)

    def test_floor_itself_is_accepted(self):
        result = self.validator.validate_bitrate(100)
        self.assertTrue(result.is_valid)
        self.assertEqual(self.validator.ensure_valid(100), 100)

    def test_below_floor_is_rejected_with_value_in_message(self):
        result = self.validator.validate_bitrate(99)
        self.assertFalse(result.is_valid)
        self.assertEqual(result.minimum_required, 100)
        self.assertIn("99k", result.message)

        with self.assertRaises(ToolError) as ctx:
            self.validator.ensure_valid(42)
        self.assertEqual(ctx.exception.kind, ErrorKind.BITRATE_TOO_LOW)
        self.assertEqual(str(ctx.exception), "target bitrate too low (42k)")

    def test_custom_floor(self):
        validator = BitrateValidator(min_video_bitrate_kbps=500)
        self.assertFalse(validator.validate_bitrate(499).is_valid)
        self.assertTrue(validator.validate_bitrate(500).is_valid)

    def test_non_positive_floor_rejected(self):
        with self.assertRaises(ValueError):
            BitrateValidator(min_video_bitrate_kbps=0)


class TestOutputEstimate(unittest.TestCase):

    def test_audio_budget_overshoots_target(self):
        target = 9 * 1024 * 1024
        # 629 kbps video for 120s spends the target; audio comes on top
        estimate = estimate_output_bytes(629, 128, 120)
        self.assertGreater(estimate, target)
        self.assertEqual(estimate, int(757 * 1000 * 120 / 8))


if __name__ == '__main__':
    unittest.main()
