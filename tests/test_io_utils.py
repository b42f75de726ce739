"""Tests for shared helpers: control classification, abundance table, config."""

import pandas as pd
import pytest

from htsip.errors import MissingColumn
from htsip.io_utils import (
    abundance_long, classify_control, config_to_argv, load_toml_config, parse_csv_list,
)


@pytest.fixture
def meta():
    return pd.DataFrame({
        "Buoyant_density": [1.70, 1.72, 1.70, 1.72],
        "Substrate": ["12C-Con", "12C-Con", "13C-Cel", "13C-Cel"],
        "Replicate": [1, 1, 1, 1],
    }, index=["s1", "s2", "s3", "s4"])


class TestClassifyControl:

    def test_expression(self, meta):
        flags = classify_control(meta, "Substrate == '12C-Con'")
        assert list(flags) == [True, True, False, False]
        assert flags.index.equals(meta.index)

    def test_compound_expression(self, meta):
        flags = classify_control(meta, "(Substrate == '12C-Con') & (Buoyant_density > 1.71)")
        assert list(flags) == [False, True, False, False]

    def test_unknown_name(self, meta):
        with pytest.raises(MissingColumn):
            classify_control(meta, "Treatment == 'x'")

    def test_series_aligned_by_label(self, meta):
        s = pd.Series([False, False, True, True], index=["s3", "s4", "s1", "s2"])
        assert list(classify_control(meta, s)) == [True, True, False, False]

    def test_wrong_length(self, meta):
        with pytest.raises(ValueError):
            classify_control(meta, [True, False])

    def test_non_boolean_strings(self, meta):
        with pytest.raises(ValueError):
            classify_control(meta, "Substrate")


class TestAbundanceLong:

    def test_shape_and_join(self, meta):
        counts = pd.DataFrame({"s1": [1, 0], "s2": [2, 3], "s3": [0, 4], "s4": [5, 6]},
                              index=["otu1", "otu2"])
        long = abundance_long(counts, meta)
        assert len(long) == 8
        assert {"taxon", "sample", "Count", "Buoyant_density", "Substrate"} <= set(long.columns)
        row = long[(long["taxon"] == "otu2") & (long["sample"] == "s3")].iloc[0]
        assert row["Count"] == 4
        assert row["Substrate"] == "13C-Cel"

    def test_without_metadata(self):
        counts = pd.DataFrame({"s1": [1, 0]}, index=["otu1", "otu2"])
        long = abundance_long(counts)
        assert list(long.columns) == ["taxon", "sample", "Count"]

    def test_keep_columns(self, meta):
        counts = pd.DataFrame({"s1": [1]}, index=["otu1"])
        long = abundance_long(counts, meta, sample_cols_keep=["Buoyant_density"])
        assert "Substrate" not in long.columns

    def test_sample_without_metadata(self, meta):
        counts = pd.DataFrame({"s9": [1]}, index=["otu1"])
        with pytest.raises(ValueError):
            abundance_long(counts, meta)


class TestConfig:

    def test_config_to_argv(self):
        cli = config_to_argv({"n_boot": 100, "n_sample": [4, 4], "samples_as_columns": True, "quiet": False},
                             flag_keys=("samples-as-columns", "quiet"), listy=("n-sample",))
        assert cli == ["--n-boot", "100", "--n-sample", "4,4", "--samples-as-columns"]

    def test_list_not_allowed(self):
        with pytest.raises(ValueError):
            config_to_argv({"seed": [1, 2]})

    def test_load_toml(self, tmp_path):
        p = tmp_path / "cfg.toml"
        p.write_text('isotope = "18O"\nn_boot = 50\n')
        assert load_toml_config(str(p)) == {"isotope": "18O", "n_boot": 50}

    def test_parse_csv_list(self):
        assert parse_csv_list("3, 4", cast=int) == [3, 4]
        assert parse_csv_list("") is None
