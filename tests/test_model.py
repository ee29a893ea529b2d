"""
Test Suite for Model Module
===========================

Tests for StrokeRiskModel training, failure modes and persistence.
"""

import pytest
import numpy as np
import pandas as pd

from stroke_risk.exceptions import TrainingError
from stroke_risk.model import StrokeRiskModel, train_model


def small_model(**kwargs):
    params = dict(param_grid={'n_estimators': [10]}, cv_folds=5, random_state=0, n_jobs=1)
    params.update(kwargs)
    return StrokeRiskModel(**params)


class TestStrokeRiskModel:
    """Tests for the trained classifier."""

    def test_init(self):
        model = StrokeRiskModel()

        assert model.cv_folds == 5
        assert model.scoring == 'roc_auc'
        assert model.oversample is True
        assert model._is_fitted is False

    def test_fit_records_search(self, trained_model):
        info = trained_model.training_info

        assert trained_model._is_fitted is True
        assert trained_model.best_params_['n_estimators'] == 25
        assert trained_model.best_params_['max_depth'] in (None, 5)
        assert len(info['cv_fold_scores']) == 5
        assert 0.0 <= info['cv_best_score'] <= 1.0

    def test_pipeline_oversamples(self, trained_model):
        assert 'oversample' in trained_model.model.named_steps

    def test_predict_proba(self, trained_model, split_data):
        _, X_test, _, _ = split_data
        proba = trained_model.predict_proba(X_test)

        assert proba.shape == (len(X_test), 2)
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)
        assert ((proba >= 0) & (proba <= 1)).all()

    def test_predict_matches_threshold(self, trained_model, split_data):
        _, X_test, _, _ = split_data
        labels = trained_model.predict(X_test)
        expected = (trained_model.predict_proba(X_test)[:, 1] > 0.5).astype(int)

        np.testing.assert_array_equal(labels, expected)

    def test_known_categories(self, trained_model):
        assert trained_model.known_categories_['gender'] == ['Female', 'Male']
        assert 'Other' not in trained_model.known_categories_['gender']

    def test_feature_importances(self, trained_model):
        importances = trained_model.get_feature_importances()

        assert isinstance(importances, pd.Series)
        assert importances.sum() == pytest.approx(1.0)
        assert importances.is_monotonic_decreasing

    def test_predict_before_fit(self, split_data):
        _, X_test, _, _ = split_data
        with pytest.raises(ValueError, match="must be trained"):
            StrokeRiskModel().predict_proba(X_test)


class TestTrainingErrors:
    """Degenerate training data fails with TrainingError."""

    def test_single_class(self, split_data):
        X_train, _, y_train, _ = split_data
        with pytest.raises(TrainingError, match="single class"):
            small_model().fit(X_train, pd.Series(np.zeros(len(y_train), dtype=int)))

    def test_too_few_minority_samples(self, split_data):
        X_train, _, y_train, _ = split_data
        y = pd.Series(np.zeros(len(y_train), dtype=int), index=y_train.index)
        y.iloc[:3] = 1

        with pytest.raises(TrainingError, match="fewer than the 5 CV folds"):
            small_model().fit(X_train, y)

    def test_fit_failure_wrapped(self, split_data):
        X_train, _, y_train, _ = split_data
        model = small_model(param_grid={'n_estimators': [10], 'max_features': ['not-a-mode']})

        with pytest.raises(TrainingError):
            model.fit(X_train, y_train)


class TestPersistence:
    """Tests for save/load."""

    def test_round_trip_predictions(self, trained_model, split_data, tmp_path):
        _, X_test, _, _ = split_data
        path = tmp_path / "models" / "stroke_model.joblib"

        trained_model.save(str(path))
        loaded = StrokeRiskModel.load(str(path))

        np.testing.assert_array_equal(
            loaded.predict_proba(X_test),
            trained_model.predict_proba(X_test)
        )
        assert loaded.best_params_ == trained_model.best_params_
        assert loaded.known_categories_ == trained_model.known_categories_

    def test_save_untrained(self, tmp_path):
        with pytest.raises(ValueError, match="untrained"):
            StrokeRiskModel().save(str(tmp_path / "m.joblib"))

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            StrokeRiskModel.load(str(tmp_path / "absent.joblib"))


class TestTrainModel:

    def test_train_model_from_config(self, split_data, tmp_path):
        X_train, _, y_train, _ = split_data
        config = {'model': {'param_grid': {'n_estimators': [10]}, 'cv_folds': 3, 'n_jobs': 1}}
        path = tmp_path / "model.joblib"

        model = train_model(X_train, y_train, config, save_path=str(path))

        assert model.cv_folds == 3
        assert len(model.training_info['cv_fold_scores']) == 3
        assert path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
