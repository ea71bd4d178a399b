import unittest

import numpy as np

from visual_fidelity.config import MaskSynthesisConfig
from visual_fidelity.errors import InvalidBoundingBoxError
from visual_fidelity.masks import (
    adaptive_padding,
    calculate_coverage,
    merge_overlapping_regions,
    rasterize_regions,
    regions_from_analysis,
    regions_overlap,
    synthesize_mask,
    to_pixel_region,
)
from visual_fidelity.utils import DetectedRegion, MaskRegion, NormalizedBox


def _region(label: str, x: float, y: float, width: float, height: float) -> DetectedRegion:
    return DetectedRegion(label=label, box=NormalizedBox(x=x, y=y, width=width, height=height))


def _rect(x: int, y: int, width: int, height: int, label: str = "r") -> MaskRegion:
    return MaskRegion(x=x, y=y, width=width, height=height, padding=0, label=label)


class TestPadding(unittest.TestCase):
    def test_documented_example(self) -> None:
        region = to_pixel_region(_region("SALE", 0.1, 0.1, 0.2, 0.05), 1000, 1000, MaskSynthesisConfig())
        # avg dimension (200 + 50) / 2 = 125 -> 12.5 -> 13
        self.assertEqual(region.padding, 13)
        self.assertEqual((region.x, region.y, region.width, region.height), (87, 87, 226, 76))

    def test_min_padding(self) -> None:
        self.assertEqual(adaptive_padding(1, 1, MaskSynthesisConfig()), 5)

    def test_max_padding(self) -> None:
        self.assertEqual(adaptive_padding(1000, 1000, MaskSynthesisConfig()), 50)

    def test_custom_percent(self) -> None:
        config = MaskSynthesisConfig(padding_percent=20, min_padding=0, max_padding=100)
        self.assertEqual(adaptive_padding(100, 50, config), 15)

    def test_padding_is_clamped_to_image(self) -> None:
        region = to_pixel_region(_region("edge", 0.0, 0.9, 0.5, 0.1), 100, 100, MaskSynthesisConfig())
        self.assertEqual(region.x, 0)
        self.assertEqual(region.y, 90 - region.padding)
        self.assertLessEqual(region.right, 100)
        self.assertEqual(region.bottom, 100)


class TestUntrustedBoxes(unittest.TestCase):
    def test_out_of_range_values_are_clamped(self) -> None:
        box = NormalizedBox(x=-0.2, y=0.95, width=0.5, height=0.3).clamped()
        self.assertEqual(box.x, 0.0)
        self.assertEqual(box.y, 0.95)
        self.assertAlmostEqual(box.height, 0.05)
        box.validate()

    def test_region_never_leaves_image(self) -> None:
        region = to_pixel_region(_region("x", 1.5, -3.0, 2.0, 9.0), 64, 48, MaskSynthesisConfig())
        self.assertGreaterEqual(region.x, 0)
        self.assertGreaterEqual(region.y, 0)
        self.assertLessEqual(region.right, 64)
        self.assertLessEqual(region.bottom, 48)

    def test_non_finite_box_is_rejected(self) -> None:
        with self.assertRaises(InvalidBoundingBoxError):
            NormalizedBox(x=float("nan"), y=0.1, width=0.1, height=0.1).clamped()
        with self.assertRaises(InvalidBoundingBoxError):
            NormalizedBox(x=0.1, y=0.1, width=float("inf"), height=0.1).clamped()

    def test_validate_rejects_raw_out_of_range(self) -> None:
        with self.assertRaises(InvalidBoundingBoxError):
            NormalizedBox(x=0.9, y=0.0, width=0.5, height=0.1).validate()


class TestMerge(unittest.TestCase):
    def test_disabled_keeps_every_region(self) -> None:
        detected = [
            _region("a", 0.0, 0.0, 0.1, 0.1),
            _region("b", 0.5, 0.0, 0.1, 0.1),
            _region("c", 0.0, 0.5, 0.1, 0.1),
            _region("d", 0.12, 0.0, 0.1, 0.1),
        ]
        suggestion = synthesize_mask(detected, 100, 100)
        self.assertEqual(len(suggestion.regions), 4)

    def test_enabled_merges_overlapping_pair(self) -> None:
        detected = [_region("A", 0.1, 0.1, 0.1, 0.1), _region("B", 0.15, 0.15, 0.1, 0.1)]
        suggestion = synthesize_mask(detected, 100, 100, MaskSynthesisConfig(merge_regions=True))
        self.assertEqual(len(suggestion.regions), 1)
        merged = suggestion.regions[0]
        self.assertEqual((merged.x, merged.y, merged.right, merged.bottom), (5, 5, 30, 30))
        self.assertEqual(merged.label, "A + B")

    def test_enabled_leaves_distant_regions(self) -> None:
        detected = [_region("A", 0.0, 0.0, 0.1, 0.1), _region("B", 0.6, 0.6, 0.1, 0.1)]
        suggestion = synthesize_mask(detected, 100, 100, MaskSynthesisConfig(merge_regions=True))
        self.assertEqual(len(suggestion.regions), 2)

    def test_tolerance(self) -> None:
        a = _rect(0, 0, 10, 10)
        self.assertTrue(regions_overlap(a, _rect(12, 0, 5, 5), tolerance=2))
        self.assertFalse(regions_overlap(a, _rect(13, 0, 5, 5), tolerance=2))
        self.assertFalse(regions_overlap(a, _rect(0, 13, 5, 5), tolerance=2))

    def test_chain_collapses_to_one(self) -> None:
        regions = [_rect(40, 0, 10, 10, "c"), _rect(0, 0, 10, 10, "a"), _rect(20, 0, 10, 10, "b"), _rect(10, 0, 12, 10, "ab")]
        merged = merge_overlapping_regions(regions)
        self.assertEqual(len(merged), 2)
        bounds = sorted((r.x, r.right) for r in merged)
        self.assertEqual(bounds, [(0, 30), (40, 50)])

    def test_bridging_region_joins_both_neighbours(self) -> None:
        regions = [_rect(0, 0, 5, 5, "top"), _rect(30, 3, 5, 5, "right"), _rect(4, 4, 30, 2, "bar")]
        merged = merge_overlapping_regions(regions)
        self.assertEqual(len(merged), 1)
        self.assertEqual((merged[0].x, merged[0].y, merged[0].right, merged[0].bottom), (0, 0, 35, 8))


class TestRasterize(unittest.TestCase):
    def test_hard_edges_and_black_pixels(self) -> None:
        suggestion = synthesize_mask([_region("t", 0.2, 0.2, 0.2, 0.2)], 100, 100)
        region = suggestion.regions[0]
        self.assertEqual((region.x, region.y, region.right, region.bottom), (15, 15, 45, 45))

        alpha = suggestion.mask.alpha
        self.assertTrue(set(np.unique(alpha).tolist()) <= {0, 255})
        self.assertTrue(np.all(suggestion.mask.pixels[:, :, :3] == 0))
        self.assertTrue(np.all(alpha[15:45, 15:45] == 0))
        self.assertEqual(int(alpha[14, 20]), 255)
        self.assertEqual(int(alpha[20, 45]), 255)
        self.assertEqual(int(alpha[45, 44]), 255)
        self.assertEqual(int(np.count_nonzero(alpha == 0)), 30 * 30)

    def test_empty_detections_preserve_everything(self) -> None:
        suggestion = synthesize_mask([], 20, 10)
        self.assertEqual(suggestion.regions, [])
        self.assertEqual(suggestion.coverage, 0.0)
        self.assertEqual(suggestion.mask.size, (20, 10))
        self.assertTrue(np.all(suggestion.mask.alpha == 255))

    def test_zero_area_regions_are_skipped(self) -> None:
        mask = rasterize_regions([_rect(3, 3, 0, 5)], 10, 10)
        self.assertTrue(np.all(mask.alpha == 255))

    def test_invalid_size(self) -> None:
        with self.assertRaises(ValueError):
            synthesize_mask([], 0, 10)


class TestCoverage(unittest.TestCase):
    def test_overlaps_are_counted_twice(self) -> None:
        regions = [_rect(0, 0, 10, 10), _rect(0, 0, 10, 10)]
        self.assertEqual(calculate_coverage(regions, 20, 10), 100.0)

    def test_suggestion_reports_coverage(self) -> None:
        suggestion = synthesize_mask([_region("t", 0.2, 0.2, 0.2, 0.2)], 100, 100)
        self.assertAlmostEqual(suggestion.coverage, 9.0)
        payload = suggestion.to_dict()
        self.assertEqual(payload["image_dimensions"], {"width": 100, "height": 100})
        self.assertEqual(payload["regions"][0]["label"], "t")
        self.assertEqual(payload["regions"][0]["padding"], 5)


class TestRegionsFromAnalysis(unittest.TestCase):
    def test_detection_payload(self) -> None:
        payload = {
            "textRegions": [
                {"text": "Hello", "boundingBox": {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.1}, "confidence": 0.9},
                {"text": "World", "boundingBox": {"x": 0.5, "y": 0.6, "width": 0.2, "height": 0.1}},
            ],
            "layout": "centered",
        }
        regions = regions_from_analysis(payload)
        self.assertEqual([r.label for r in regions], ["Hello", "World"])
        self.assertEqual(regions[0].box, NormalizedBox(0.1, 0.2, 0.3, 0.1))

    def test_bare_list(self) -> None:
        regions = regions_from_analysis([{"label": "x", "box": {"x": 0, "y": 0, "width": 1, "height": 1}}])
        self.assertEqual(len(regions), 1)

    def test_malformed(self) -> None:
        with self.assertRaises(ValueError):
            regions_from_analysis({"nothing": []})
        with self.assertRaises(ValueError):
            regions_from_analysis([{"text": "no box"}])
        with self.assertRaises(InvalidBoundingBoxError):
            regions_from_analysis([{"text": "bad", "boundingBox": {"x": 0.1}}])


if __name__ == "__main__":
    unittest.main()
