from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from thr_growth_pipeline.growth_data import GrowthData  # noqa: E402


def _growth(prods, dens=None) -> GrowthData:
    g = GrowthData("S1", 24.0)
    dens = dens if dens is not None else [1.0] * len(prods)
    for i, (p, d) in enumerate(zip(prods, dens)):
        g.merge(p, d, "E1", f"A{i + 1}")
    return g


class RemoveBadZeroesTests(unittest.TestCase):
    def test_single_zero_among_high_values_is_removed(self) -> None:
        g = _growth([0.0, 0.8, 0.9])
        g.remove_bad_zeroes(0.5)
        self.assertEqual(g.mask(), [False, True, True])
        self.assertAlmostEqual(g.production(), 0.85)
        self.assertFalse(g.suspicious)

    def test_two_zeroes_are_kept(self) -> None:
        g = _growth([0.0, 0.0, 0.9])
        g.remove_bad_zeroes(0.5)
        self.assertEqual(g.mask(), [True, True, True])

    def test_low_nonzero_minimum_keeps_zero(self) -> None:
        g = _growth([0.0, 5.0, 0.6])
        g.remove_bad_zeroes(1.0)
        self.assertEqual(g.mask(), [True, True, True])

    def test_minimum_equal_to_threshold_keeps_zero(self) -> None:
        g = _growth([0.0, 0.5, 0.9])
        g.remove_bad_zeroes(0.5)
        self.assertEqual(g.mask(), [True, True, True])
        self.assertFalse(g.suspicious)

    def test_no_nonzero_values_keeps_zero(self) -> None:
        g = _growth([0.0])
        g.remove_bad_zeroes(0.5)
        self.assertEqual(g.mask(), [True])
        self.assertFalse(g.suspicious)

    def test_invalid_zero_is_not_counted(self) -> None:
        g = _growth([0.0, 0.0, 2.0, 2.1], [0.01, 1.0, 1.0, 1.0])
        g.remove_bad_zeroes(0.5)
        # only one valid zero remains, so it is the artifact
        self.assertEqual(g.mask(), [False, False, True, True])

    def test_all_invalid_marks_suspicious(self) -> None:
        g = _growth([1.0, 2.0], [0.01, 0.02])
        g.remove_bad_zeroes(0.5)
        self.assertTrue(g.suspicious)
        self.assertEqual(g.mask(), [False, False])


class RemoveOutlierTests(unittest.TestCase):
    def test_small_spread_is_accepted(self) -> None:
        g = _growth([1.0, 1.5, 2.0])
        self.assertTrue(g.remove_outlier(1.0))
        self.assertEqual(g.mask(), [True, True, True])

    def test_low_outlier_is_removed(self) -> None:
        g = _growth([1.0, 5.0, 5.1])
        self.assertTrue(g.remove_outlier(1.0))
        self.assertEqual(g.mask(), [False, True, True])

    def test_high_outlier_is_removed(self) -> None:
        g = _growth([1.0, 1.1, 5.0])
        self.assertTrue(g.remove_outlier(1.0))
        self.assertEqual(g.mask(), [True, True, False])

    def test_ambiguous_spread_is_unresolved(self) -> None:
        g = _growth([1.0, 3.0, 5.0])
        self.assertFalse(g.remove_outlier(1.0))
        self.assertEqual(g.mask(), [True, True, True])

    def test_two_replicates_cannot_be_resolved(self) -> None:
        g = _growth([1.0, 5.0])
        self.assertFalse(g.remove_outlier(1.0))
        self.assertEqual(g.mask(), [True, True])

    def test_invalid_replicates_do_not_count(self) -> None:
        g = _growth([1.0, 9.0, 1.5], [1.0, 0.01, 1.0])
        self.assertTrue(g.remove_outlier(1.0))
        self.assertEqual(g.mask(), [True, False, True])

    def test_spread_equal_to_range_is_accepted(self) -> None:
        g = _growth([1.0, 2.0, 1.5])
        self.assertTrue(g.remove_outlier(1.0))

    def test_empty_record_is_accepted(self) -> None:
        self.assertTrue(GrowthData("S1", 24.0).remove_outlier(1.0))


if __name__ == "__main__":
    unittest.main()
