import colorsys
import unittest

import numpy as np

from visual_fidelity.eval.drift import DiffMap
from visual_fidelity.eval.heatmap import (
    HEAT_PALETTE,
    NO_CHANGE_CUTOFF,
    generate_heatmap,
    intensity_to_color,
    render_heatmap,
    render_overlay,
)
from visual_fidelity.raster import RasterImage


class TestIntensityToColor(unittest.TestCase):
    def test_no_change_is_transparent(self) -> None:
        for value in range(NO_CHANGE_CUTOFF):
            self.assertEqual(intensity_to_color(value), (0, 0, 0, 0))

    def test_endpoints(self) -> None:
        self.assertEqual(intensity_to_color(5)[2], 255)
        self.assertEqual(intensity_to_color(5)[3], 131)
        self.assertEqual(intensity_to_color(255), (255, 0, 0, 255))

    def test_alpha_is_monotonic(self) -> None:
        alphas = [intensity_to_color(v)[3] for v in range(NO_CHANGE_CUTOFF, 256)]
        for lower, higher in zip(alphas, alphas[1:]):
            self.assertGreaterEqual(higher, lower)
        self.assertEqual(max(alphas), 255)

    def test_hue_runs_blue_to_red(self) -> None:
        hues = []
        for value in range(NO_CHANGE_CUTOFF, 256):
            r, g, b, _ = intensity_to_color(value)
            hues.append(colorsys.rgb_to_hsv(r / 255, g / 255, b / 255)[0])
        for lower, higher in zip(hues, hues[1:]):
            self.assertLessEqual(higher, lower + 1e-9)
        self.assertAlmostEqual(hues[0], 2 / 3, places=1)
        self.assertEqual(hues[-1], 0.0)

    def test_no_jump_at_segment_boundaries(self) -> None:
        colors = np.array([intensity_to_color(v)[:3] for v in range(NO_CHANGE_CUTOFF, 256)], dtype=int)
        steps = np.abs(np.diff(colors, axis=0))
        self.assertLessEqual(int(steps.max()), 8)

    def test_boundary_colors(self) -> None:
        # Last value before t=0.33 is cyan, first value at/after t=0.66 is yellow-ish.
        self.assertEqual(intensity_to_color(84)[:3], (0, 255, 255))
        r, g, b, _ = intensity_to_color(169)
        self.assertEqual((r, b), (255, 0))
        self.assertGreaterEqual(g, 250)

    def test_palette_matches_function(self) -> None:
        for value in (0, 4, 5, 84, 85, 168, 169, 255):
            self.assertEqual(tuple(int(c) for c in HEAT_PALETTE[value]), intensity_to_color(value))


class TestRendering(unittest.TestCase):
    def setUp(self) -> None:
        values = np.zeros((3, 4), dtype=np.uint8)
        values[1, 1] = 255
        values[2, 3] = 100
        self.diff_map = DiffMap(values)
        self.candidate = RasterImage.new(4, 3, (255, 255, 255, 255))

    def test_heatmap_shape_and_transparency(self) -> None:
        heatmap = render_heatmap(self.diff_map)
        self.assertEqual(heatmap.size, (4, 3))
        self.assertEqual(int(heatmap.pixels[0, 0, 3]), 0)
        self.assertEqual(tuple(int(c) for c in heatmap.pixels[1, 1]), (255, 0, 0, 255))

    def test_overlay_keeps_unchanged_pixels(self) -> None:
        overlay = render_overlay(render_heatmap(self.diff_map), self.candidate)
        self.assertEqual(tuple(int(c) for c in overlay.pixels[0, 0]), (255, 255, 255, 255))
        self.assertEqual(tuple(int(c) for c in overlay.pixels[1, 1]), (255, 0, 0, 255))
        r, g, b, a = intensity_to_color(100)
        self.assertEqual(a, 178)
        blended = overlay.pixels[2, 3]
        for channel, source in zip(blended[:3], (r, g, b)):
            # Plain "over" onto opaque white at the heatmap pixel's own alpha.
            expected = (source * a + 255 * (255 - a)) / 255
            self.assertAlmostEqual(int(channel), expected, delta=1)
        self.assertEqual(int(blended[3]), 255)

    def test_overlay_resamples_candidate(self) -> None:
        big = RasterImage.new(8, 6, (10, 10, 10, 255))
        result = generate_heatmap(self.diff_map, big)
        self.assertEqual(result.overlay.size, (4, 3))
        self.assertEqual(result.heatmap.size, (4, 3))


if __name__ == "__main__":
    unittest.main()
