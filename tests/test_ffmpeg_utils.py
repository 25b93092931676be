"""
Unit tests for ffmpeg/ffprobe command building, duration parsing and bitrate math
"""

import math
import re
import unittest

from autocompress.error_handler import ErrorKind, ToolError
from autocompress.ffmpeg_utils import FFmpegUtils, KEEP_ORIGINAL, RESOLUTION_BOUNDS


def _simulate_scale_pad(filter_expr, in_width, in_height):
    """Apply the scale+pad expression the way ffmpeg evaluates it"""
    match = re.match(r"scale='min\(iw,(\d+)\)':'min\(ih,(\d+)\)':force_original_aspect_ratio=decrease,"
                     r"pad=ceil\(iw/2\)\*2:ceil\(ih/2\)\*2$", filter_expr)
    assert match, filter_expr
    box_w = min(in_width, int(match.group(1)))
    box_h = min(in_height, int(match.group(2)))
    # force_original_aspect_ratio=decrease shrinks one side to keep the aspect ratio
    scale = min(box_w / in_width, box_h / in_height)
    width = min(box_w, round(in_width * scale))
    height = min(box_h, round(in_height * scale))
    return math.ceil(width / 2) * 2, math.ceil(height / 2) * 2


class TestBitrateMath(unittest.TestCase):

    def test_reference_example(self):
        # 9 MB over two minutes
        self.assertEqual(FFmpegUtils.compute_video_bitrate(9 * 1024 * 1024, 120), 629)

    def test_floor_is_applied(self):
        self.assertEqual(FFmpegUtils.compute_video_bitrate(1000, 1), 8)
        self.assertEqual(FFmpegUtils.compute_video_bitrate(1999, 2), 7)

    def test_matches_formula_for_fractional_durations(self):
        for target, duration in [(8 * 1024 * 1024, 33.3667), (25 * 1024 * 1024, 0.5), (10 ** 7, 599.99)]:
            expected = math.floor(target * 8 / duration / 1000)
            self.assertEqual(FFmpegUtils.compute_video_bitrate(target, duration), expected)


class TestParseDuration(unittest.TestCase):

    def test_plain_number(self):
        self.assertEqual(FFmpegUtils.parse_duration("12.345000\n"), 12.345)

    def test_rejects_non_positive_and_garbage(self):
        for output in ["", "   \n", "N/A", "0", "-3.2", "nan", "inf", "abc"]:
            self.assertIsNone(FFmpegUtils.parse_duration(output), output)


class TestScaleFilter(unittest.TestCase):

    def test_original_adds_no_filter(self):
        self.assertIsNone(FFmpegUtils.scale_filter(KEEP_ORIGINAL))

    def test_unknown_label_is_invalid_config(self):
        with self.assertRaises(ToolError) as ctx:
            FFmpegUtils.scale_filter('4k')
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_CONFIG)

    def test_720_fits_bounds_with_even_dimensions(self):
        expr = FFmpegUtils.scale_filter('720')
        self.assertIn("min(iw,1280)", expr)
        self.assertIn("min(ih,720)", expr)
        for size in [(1920, 1080), (3840, 2160), (1080, 1920), (1279, 719), (641, 361),
                     (2560, 1080), (720, 720), (1281, 721), (333, 999)]:
            width, height = _simulate_scale_pad(expr, *size)
            self.assertLessEqual(width, 1280, size)
            self.assertLessEqual(height, 720, size)
            self.assertEqual(width % 2, 0, size)
            self.assertEqual(height % 2, 0, size)

    def test_every_label_bounds_are_even(self):
        for label, (width, height) in RESOLUTION_BOUNDS.items():
            self.assertEqual(width % 2, 0, label)
            self.assertEqual(height % 2, 0, label)
            self.assertIn(f"min(iw,{width})", FFmpegUtils.scale_filter(label))


class TestCommands(unittest.TestCase):

    def test_probe_command(self):
        cmd = FFmpegUtils.build_probe_command('/usr/bin/ffprobe', '/tmp/in.mp4')
        self.assertEqual(cmd, [
            '/usr/bin/ffprobe', '-v', 'error', '-show_entries', 'format=duration',
            '-of', 'default=noprint_wrappers=1:nokey=1', '/tmp/in.mp4',
        ])

    def test_encode_command_keep_original(self):
        cmd = FFmpegUtils.build_encode_command('/usr/bin/ffmpeg', '/tmp/in.mov', '/tmp/out.mov',
                                               629, 128, 'medium')
        self.assertEqual(cmd, [
            '/usr/bin/ffmpeg', '-y', '-i', '/tmp/in.mov',
            '-c:v', 'libx264', '-b:v', '629k', '-maxrate', '629k', '-bufsize', '1258k',
            '-preset', 'medium',
            '-c:a', 'aac', '-b:a', '128k', '-map_metadata', '0', '-movflags', '+faststart',
            '/tmp/out.mov',
        ])

    def test_encode_command_with_downscale(self):
        cmd = FFmpegUtils.build_encode_command('ffmpeg', 'in.mp4', 'out.mp4', 300, 128, 'veryslow', '480')
        vf = cmd[cmd.index('-vf') + 1]
        self.assertEqual(vf, FFmpegUtils.scale_filter('480'))
        # Filter sits between the preset and the audio settings
        self.assertLess(cmd.index('-preset'), cmd.index('-vf'))
        self.assertLess(cmd.index('-vf'), cmd.index('-c:a'))
        self.assertEqual(cmd[-1], 'out.mp4')

    def test_preset_is_passed_through_verbatim(self):
        cmd = FFmpegUtils.build_encode_command('ffmpeg', 'in.mp4', 'out.mp4', 300, 128, 'placebo')
        self.assertEqual(cmd[cmd.index('-preset') + 1], 'placebo')


class TestTailText(unittest.TestCase):

    def test_short_text_unchanged(self):
        self.assertEqual(FFmpegUtils.tail_text("  error  \n"), "error")

    def test_long_text_keeps_the_end(self):
        text = "x" * 5000 + "final error"
        tail = FFmpegUtils.tail_text(text, limit=20)
        self.assertTrue(tail.endswith("final error"))
        self.assertEqual(len(tail), 21)


if __name__ == '__main__':
    unittest.main()
