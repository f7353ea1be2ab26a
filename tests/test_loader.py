from __future__ import annotations

import math
import sys
import tempfile
import unittest
from pathlib import Path

import pandas as pd

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from thr_growth_pipeline.config import GrowthConfig  # noqa: E402
from thr_growth_pipeline.loader import (  # noqa: E402
    OUTPUT_COLUMNS,
    load_production_table,
    parse_flag,
    tidy_production_table,
)
from thr_growth_pipeline.summary import build_growth_map  # noqa: E402


MASTER_TSV = (
    "strain_lower\tiptg\ttime\tThr\tGrowth\tSuspect\texperiment\tSample_y\n"
    "7_0_0_A_asdO\tY\t4.5\t0.12\t2.09\t\tX1\tA01\n"
    "\t\t24\t1.50\t1.85\t\tX1\tA2\n"
    "\t\t24\t\t1.80\t\tX1\tA3\n"
    "Blank\t\t24\t0.0\t0.02\t\tX1\tA4\n"
    "7_0_0_A_asdO\tN\t24\t1.70\tNA\tY\tX2\tB1\n"
    "7_0_0_B\t\t24\t0.0\t1.1\t\tX2\tB2\n"
)


class LoaderTests(unittest.TestCase):
    def test_load_master_table(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "master.tsv"
            path.write_text(MASTER_TSV, encoding="utf-8")
            df, stats = load_production_table(path)

        self.assertEqual(list(df.columns), OUTPUT_COLUMNS)
        self.assertEqual(stats.input_rows, 6)
        self.assertEqual(stats.bad_num_rows, 1)
        self.assertEqual(stats.blank_rows, 1)
        self.assertEqual(stats.suspect_rows, 1)
        self.assertEqual(stats.kept_rows, 3)
        self.assertEqual(stats.zero_prod_rows, 1)

        self.assertEqual(df["strain"].tolist(), ["7_0_0_A_asdO", "7_0_0_A_asdO", "7_0_0_A_asdO", "7_0_0_B"])
        # IPTG is never on before 5 hours; blank cells repeat the previous flag
        self.assertEqual(df["iptg"].tolist(), [False, True, False, False])
        # well text is kept verbatim for origin labels
        self.assertEqual(df["well"].tolist(), ["A01", "A2", "B1", "B2"])
        self.assertEqual(df["suspect"].tolist(), [False, False, True, False])
        self.assertTrue(math.isnan(df.loc[2, "density"]))
        self.assertAlmostEqual(df.loc[1, "production"], 1.5)

    def test_origin_labels_keep_raw_well_text(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "master.tsv"
            path.write_text(MASTER_TSV, encoding="utf-8")
            df, _ = load_production_table(path)
        good, _ = build_growth_map(df, GrowthConfig())
        self.assertEqual(good[("7_0_0_A_asdO", False, 4.5)].origins(), "X1:A01")

    def test_blank_strain_after_blank_row_is_skipped(self) -> None:
        raw = pd.DataFrame(
            {
                "strain_lower": ["Blank", ""],
                "time": ["24", "24"],
                "Thr": ["0.0", "1.0"],
                "Growth": ["0.01", "1.0"],
                "experiment": ["X1", "X1"],
                "Sample_y": ["A1", "A2"],
            }
        )
        df, stats = tidy_production_table(raw)
        self.assertTrue(df.empty)
        self.assertEqual(stats.blank_rows, 2)

    def test_missing_column_raises(self) -> None:
        raw = pd.DataFrame({"strain_lower": ["a"], "time": ["24"], "Thr": ["1"]})
        with self.assertRaises(ValueError):
            tidy_production_table(raw)

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_production_table(Path("/nonexistent/master.tsv"))

    def test_parse_flag(self) -> None:
        self.assertTrue(parse_flag(" yes "))
        self.assertTrue(parse_flag("T"))
        self.assertFalse(parse_flag(""))
        self.assertFalse(parse_flag(float("nan")))


if __name__ == "__main__":
    unittest.main()
