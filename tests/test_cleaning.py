"""
Test Suite for Cleaning Module
==============================

Tests for type casting, label checks and grouped bmi imputation.
"""

import pytest
import numpy as np
import pandas as pd

from stroke_risk.cleaning import (
    cast_types,
    drop_invalid_labels,
    drop_incomplete_rows,
    impute_bmi,
    clean_data,
)
from stroke_risk.exceptions import SchemaError, ValidationError

from conftest import make_stroke_frame


class TestCastTypes:
    """Tests for semantic type casting."""

    def test_drops_id_and_parses_na(self):
        df = make_stroke_frame(n_samples=10, missing_bmi_frac=0.0)
        df['bmi'] = df['bmi'].astype(object)
        df.loc[3, 'bmi'] = 'N/A'

        result = cast_types(df)

        assert 'id' not in result.columns
        assert np.isnan(result.loc[3, 'bmi'])
        assert result['bmi'].dtype == float

    def test_strips_categoricals(self):
        df = make_stroke_frame(n_samples=5, missing_bmi_frac=0.0)
        df.loc[0, 'gender'] = '  Female '

        result = cast_types(df)

        assert result.loc[0, 'gender'] == 'Female'

    def test_does_not_mutate_input(self):
        df = make_stroke_frame(n_samples=5)
        cast_types(df)
        assert 'id' in df.columns


class TestLabels:
    """Tests for missing/invalid label handling."""

    @pytest.fixture
    def bad_labels(self):
        df = make_stroke_frame(n_samples=6, missing_bmi_frac=0.0)
        df['stroke'] = [0, 1, 2, np.nan, 1, 0]
        return cast_types(df)

    def test_drop_policy(self, bad_labels):
        result = drop_invalid_labels(bad_labels, policy="drop")

        assert len(result) == 4
        assert set(result['stroke'].unique()) <= {0, 1}
        assert result['stroke'].dtype == int

    def test_raise_policy_names_rows(self, bad_labels):
        with pytest.raises(ValidationError, match=r"rows \[2, 3\]"):
            drop_invalid_labels(bad_labels, policy="raise")

    def test_unknown_policy(self, bad_labels):
        with pytest.raises(ValueError, match="Unknown label policy"):
            drop_invalid_labels(bad_labels, policy="ignore")


class TestIncompleteRows:
    """Tests for dropping rows missing non-bmi fields."""

    def test_drops_missing_age_and_invalid_flag(self):
        df = make_stroke_frame(n_samples=10, missing_bmi_frac=0.0)
        df.loc[1, 'age'] = np.nan
        df.loc[2, 'hypertension'] = 2
        df.loc[3, 'bmi'] = np.nan

        result = drop_incomplete_rows(cast_types(df))

        assert len(result) == 8
        assert 3 in result.index
        assert result['hypertension'].isin([0, 1]).all()


class TestImputeBmi:
    """Tests for (age category, gender) median imputation."""

    @pytest.fixture
    def small_frame(self):
        return pd.DataFrame({
            'age': [20.0, 22.0, 21.0, 40.0, 80.0],
            'gender': ['Male', 'Male', 'Male', 'Female', 'Female'],
            'bmi': [20.0, 24.0, np.nan, 30.0, np.nan],
        })

    def test_group_median(self, small_frame):
        result, report = impute_bmi(small_frame)

        # Young Adult / Male group: median of 20 and 24
        assert result.loc[2, 'bmi'] == pytest.approx(22.0)
        assert report['n_missing'] == 2
        assert report['n_group_imputed'] == 1

    def test_empty_group_falls_back_to_global_median(self, small_frame):
        result, report = impute_bmi(small_frame)

        # Elderly / Female has no observed bmi; global median of 20, 24, 30
        assert result.loc[4, 'bmi'] == pytest.approx(24.0)
        assert report['n_global_fallback'] == 1
        assert report['global_median'] == pytest.approx(24.0)

    def test_no_nan_after_imputation(self, raw_data):
        clean_df, _ = clean_data(raw_data)
        assert not clean_df['bmi'].isna().any()

    def test_all_missing_raises(self, small_frame):
        small_frame['bmi'] = np.nan
        with pytest.raises(SchemaError, match="no observed values"):
            impute_bmi(small_frame)

    def test_nothing_to_impute(self, small_frame):
        small_frame = small_frame.dropna()
        result, report = impute_bmi(small_frame)

        pd.testing.assert_frame_equal(result, small_frame)
        assert report['n_missing'] == 0


class TestCleanData:
    """Tests for the full cleaning stage."""

    def test_report_accounts_for_rows(self, raw_data):
        raw_data['stroke'] = raw_data['stroke'].astype(float)
        raw_data.loc[0, 'stroke'] = np.nan
        raw_data.loc[1, 'gender'] = np.nan

        clean_df, report = clean_data(raw_data)

        assert report['n_input_rows'] == len(raw_data)
        assert report['n_invalid_labels'] == 1
        assert report['n_incomplete_rows'] == 1
        assert report['n_output_rows'] == len(clean_df) == len(raw_data) - 2
        assert list(clean_df.index) == list(range(len(clean_df)))

    def test_raise_policy_from_config(self, raw_data):
        raw_data.loc[5, 'stroke'] = 7
        config = {'cleaning': {'invalid_label_policy': 'raise'}}

        with pytest.raises(ValidationError):
            clean_data(raw_data, config)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
