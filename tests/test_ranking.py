from __future__ import annotations

import itertools
import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from thr_growth_pipeline.growth_data import GrowthData, sort_growth_data  # noqa: E402


def _one(strain: str, time: float, prod: float) -> GrowthData:
    g = GrowthData(strain, time)
    g.merge(prod, 1.0, "E1", "A1")
    return g


class RankingTests(unittest.TestCase):
    def test_sort_order(self) -> None:
        a = _one("B", 24.0, 2.0)
        b = _one("A", 24.0, 1.0)
        c = _one("B", 12.0, 1.0)
        d = _one("A", 12.0, 1.0)
        e = _one("Z", 48.0, 3.0)
        ranked = sort_growth_data([a, b, c, d, e])
        self.assertEqual(
            [(g.old_strain, g.time_point) for g in ranked],
            [("Z", 48.0), ("B", 24.0), ("A", 12.0), ("B", 12.0), ("A", 24.0)],
        )
        self.assertEqual(sorted([a, b, c, d, e]), ranked)

    def test_order_is_strict_and_transitive(self) -> None:
        recs = [
            _one("A", 12.0, 1.0),
            _one("B", 12.0, 1.0),
            _one("A", 24.0, 1.0),
            _one("A", 12.0, 2.0),
            _one("C", 6.0, 0.5),
        ]
        for x, y in itertools.permutations(recs, 2):
            self.assertNotEqual(x < y, y < x)
        for x, y, z in itertools.permutations(recs, 3):
            if x < y and y < z:
                self.assertTrue(x < z)

    def test_identity_ignores_production(self) -> None:
        a = _one("S1", 24.0, 1.0)
        b = _one("S1", 24.0, 5.0)
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertEqual(len({a, b}), 1)
        self.assertNotEqual(a, _one("S1", 12.0, 1.0))
        self.assertNotEqual(a, _one("S2", 24.0, 1.0))

    def test_nan_production_ranks_first(self) -> None:
        ranked = sort_growth_data([_one("A", 24.0, 3.0), _one("B", 24.0, float("nan"))])
        self.assertEqual(ranked[0].old_strain, "B")


if __name__ == "__main__":
    unittest.main()
