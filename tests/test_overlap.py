"""Tests for percent overlap and control/treatment window pairing."""

import numpy as np
import pandas as pd
import pytest

from htsip.errors import EmptyPartition, MissingColumn, NoOverlap
from htsip.gradient.overlap import OVERLAP_COLUMNS, fraction_overlap, percent_overlap


def windows(rows):
    return pd.DataFrame(rows, columns=["sample_id", "is_control", "BD_min", "BD_max"])


class TestPercentOverlap:

    def test_half_covered(self):
        assert percent_overlap(0, 1, 0, 0.5) == 50

    def test_fully_covered(self):
        assert percent_overlap(0, 0.5, 0, 1) == 100

    def test_disjoint_is_zero(self):
        assert percent_overlap(0, 1, 2, 3) == 0
        assert percent_overlap(2, 3, 0, 1) == 0

    def test_touching_is_zero(self):
        assert percent_overlap(0, 1, 1, 2) == 0

    def test_zero_width_reference(self):
        assert percent_overlap(1, 1, 0, 2) == 0

    def test_vectorised_in_range(self):
        rng = np.random.default_rng(0)
        xs = np.sort(rng.uniform(0, 10, size=(200, 2)), axis=1)
        ys = np.sort(rng.uniform(0, 10, size=(200, 2)), axis=1)
        p = percent_overlap(xs[:, 0], xs[:, 1], ys[:, 0], ys[:, 1])
        assert p.shape == (200,)
        assert ((p >= 0) & (p <= 100)).all()
        disjoint = (ys[:, 0] >= xs[:, 1]) | (ys[:, 1] <= xs[:, 0])
        assert (p[disjoint] == 0).all()

    def test_returns_float_for_scalars(self):
        assert isinstance(percent_overlap(0, 1, 0, 0.25), float)


class TestFractionOverlap:

    def test_one_pair_kept(self):
        win = windows([
            ("c1", True, 1.70, 1.72),
            ("t1", False, 1.71, 1.73),
            ("t2", False, 1.74, 1.76),
        ])
        pairs = fraction_overlap(win)
        assert list(pairs.columns) == OVERLAP_COLUMNS
        assert len(pairs) == 1
        row = pairs.iloc[0]
        assert row["control_sample_id"] == "c1"
        assert row["treatment_sample_id"] == "t1"
        assert row["percent_overlap"] == pytest.approx(50)

    def test_relative_to_treatment_window(self):
        win = windows([
            ("c1", True, 1.70, 1.80),
            ("t1", False, 1.72, 1.74),
        ])
        pairs = fraction_overlap(win)
        assert pairs.iloc[0]["percent_overlap"] == pytest.approx(100)

    def test_cross_product(self):
        win = windows([
            ("c1", True, 1.70, 1.72),
            ("c2", True, 1.72, 1.74),
            ("t1", False, 1.71, 1.73),
            ("t2", False, 1.715, 1.735),
        ])
        pairs = fraction_overlap(win)
        assert len(pairs) == 4
        assert pairs["percent_overlap"].between(0, 100, inclusive="right").all()

    def test_empty_control(self):
        win = windows([("t1", False, 1.70, 1.72)])
        with pytest.raises(EmptyPartition):
            fraction_overlap(win)

    def test_empty_treatment(self):
        win = windows([("c1", True, 1.70, 1.72)])
        with pytest.raises(EmptyPartition):
            fraction_overlap(win)

    def test_no_overlap(self):
        win = windows([
            ("c1", True, 1.60, 1.62),
            ("t1", False, 1.70, 1.72),
        ])
        with pytest.raises(NoOverlap):
            fraction_overlap(win)

    def test_missing_column(self):
        win = windows([("c1", True, 1.70, 1.72)]).drop(columns="BD_max")
        with pytest.raises(MissingColumn):
            fraction_overlap(win)
