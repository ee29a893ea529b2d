"""
Model Training Module
=====================

Handles stroke classifier training with RandomForestClassifier.

Features:
    - Minority-class oversampling inside the CV pipeline (imbalanced-learn)
    - Hyperparameter search maximising ROC-AUC under stratified k-fold CV
    - Degenerate-fold and fit-failure detection
    - Model persistence (save/load)
"""

import logging
import warnings
from pathlib import Path
from typing import Dict, Any, Optional, List
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
from imblearn.over_sampling import RandomOverSampler
from imblearn.pipeline import Pipeline as ImbPipeline
from sklearn.ensemble import RandomForestClassifier
from sklearn.exceptions import FitFailedWarning
from sklearn.model_selection import GridSearchCV, StratifiedKFold

from .data_loader import CATEGORICAL_COLUMNS
from .exceptions import TrainingError
from .preprocessing import build_feature_transformer, feature_names, prepare_features

logger = logging.getLogger(__name__)


DEFAULT_PARAM_GRID = {
    'n_estimators': [100, 300],
    'max_depth': [None, 10],
    'min_samples_leaf': [1, 5],
}


class StrokeRiskModel:
    """
    Stroke classifier built on RandomForestClassifier.

    The fitted estimator is an imbalanced-learn pipeline of one-hot encoding,
    random oversampling and the forest, so resampling only ever touches the
    training folds during cross-validation.
    """

    def __init__(
        self,
        param_grid: Optional[Dict[str, List[Any]]] = None,
        cv_folds: int = 5,
        scoring: str = 'roc_auc',
        oversample: bool = True,
        random_state: int = 42,
        n_jobs: int = -1
    ):
        """
        Initialize the model with its search configuration.

        Args:
            param_grid: RandomForestClassifier hyperparameters to search
            cv_folds: Number of stratified CV folds
            scoring: Scikit-learn scorer used to select hyperparameters
            oversample: Whether to oversample the minority class
            random_state: Random seed for reproducibility
            n_jobs: Number of parallel jobs (-1 for all cores)
        """
        self.param_grid = param_grid or DEFAULT_PARAM_GRID
        self.cv_folds = cv_folds
        self.scoring = scoring
        self.oversample = oversample
        self.random_state = random_state
        self.n_jobs = n_jobs

        self.model: Optional[ImbPipeline] = None
        self.best_params_: Dict[str, Any] = {}
        self.known_categories_: Dict[str, List[str]] = {}
        self.feature_names_: List[str] = []
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    def _create_pipeline(self) -> ImbPipeline:
        """Create the unfitted encode -> oversample -> forest pipeline."""
        steps = [('preprocess', build_feature_transformer())]
        if self.oversample:
            steps.append(('oversample', RandomOverSampler(random_state=self.random_state)))
        steps.append((
            'classifier',
            RandomForestClassifier(random_state=self.random_state, n_jobs=1)
        ))
        return ImbPipeline(steps=steps)

    def _check_training_labels(self, X: pd.DataFrame, y: np.ndarray, cv: StratifiedKFold) -> None:
        """Reject label sets that would leave a CV fold with one class."""
        classes, counts = np.unique(y, return_counts=True)

        if len(classes) < 2:
            raise TrainingError(
                f"Training labels contain a single class {classes.tolist()}; "
                f"a classifier cannot be fitted"
            )
        if counts.min() < self.cv_folds:
            raise TrainingError(
                f"Minority class {classes[counts.argmin()]} has {counts.min()} "
                f"samples, fewer than the {self.cv_folds} CV folds"
            )

        for fold, (train_idx, val_idx) in enumerate(cv.split(X, y), start=1):
            if np.unique(y[train_idx]).size < 2:
                raise TrainingError(f"CV fold {fold}: training partition has a single class")
            if np.unique(y[val_idx]).size < 2:
                raise TrainingError(f"CV fold {fold}: validation partition has a single class")

    def fit(self, X: pd.DataFrame, y: pd.Series) -> 'StrokeRiskModel':
        """
        Search hyperparameters with stratified k-fold CV and refit the best.

        Args:
            X: Feature-engineered DataFrame
            y: Binary stroke labels

        Returns:
            Self for method chaining

        Raises:
            TrainingError: On degenerate labels/folds or failed fitting
        """
        start_time = datetime.now()

        X = prepare_features(X)
        y_arr = np.asarray(y).astype(int)

        logger.info("=" * 60)
        logger.info("STARTING MODEL TRAINING")
        logger.info("=" * 60)
        logger.info(f"Training data shape: X={X.shape}, y={y_arr.shape}")
        logger.info(f"CV folds: {self.cv_folds}, scoring: {self.scoring}")
        logger.info(f"Oversampling: {self.oversample}")
        logger.info(f"Hyperparameter grid: {self.param_grid}")

        cv = StratifiedKFold(
            n_splits=self.cv_folds, shuffle=True, random_state=self.random_state
        )
        self._check_training_labels(X, y_arr, cv)

        search = GridSearchCV(
            self._create_pipeline(),
            param_grid={f"classifier__{k}": v for k, v in self.param_grid.items()},
            scoring=self.scoring,
            cv=cv,
            n_jobs=self.n_jobs,
            refit=True,
            error_score=np.nan
        )

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", category=FitFailedWarning)
                search.fit(X, y_arr)
        except ValueError as exc:
            raise TrainingError(f"Random forest failed to fit: {exc}") from exc

        mean_scores = np.asarray(search.cv_results_['mean_test_score'], dtype=float)
        n_failed = int(np.isnan(mean_scores).sum())
        if n_failed == len(mean_scores) or not np.isfinite(search.best_score_):
            raise TrainingError(
                f"No hyperparameter candidate produced a finite CV {self.scoring} "
                f"({n_failed}/{len(mean_scores)} candidates failed)"
            )
        if n_failed:
            logger.warning(f"{n_failed} hyperparameter candidates failed to fit")

        self.model = search.best_estimator_
        self.best_params_ = {
            k.replace('classifier__', ''): v for k, v in search.best_params_.items()
        }
        self.known_categories_ = {
            col: sorted(X[col].astype(str).unique().tolist()) for col in CATEGORICAL_COLUMNS
        }
        self.feature_names_ = feature_names(self.model.named_steps['preprocess'])

        best_idx = search.best_index_
        fold_scores = [
            float(search.cv_results_[f'split{i}_test_score'][best_idx])
            for i in range(self.cv_folds)
        ]

        end_time = datetime.now()
        training_duration = (end_time - start_time).total_seconds()

        self.training_info = {
            'training_duration_seconds': training_duration,
            'n_samples': int(X.shape[0]),
            'n_input_columns': int(X.shape[1]),
            'n_encoded_features': len(self.feature_names_),
            'class_counts': {int(c): int(n) for c, n in zip(*np.unique(y_arr, return_counts=True))},
            'trained_at': end_time.isoformat(),
            'cv_folds': self.cv_folds,
            'scoring': self.scoring,
            'best_params': self.best_params_,
            'cv_best_score': float(search.best_score_),
            'cv_fold_scores': fold_scores,
            'cv_score_std': float(np.std(fold_scores)),
            'n_candidates': len(mean_scores)
        }

        self._is_fitted = True

        logger.info(f"Best hyperparameters: {self.best_params_}")
        logger.info(f"Best CV {self.scoring}: {search.best_score_:.4f}")
        logger.info("=" * 60)
        logger.info(f"MODEL TRAINING COMPLETE in {training_duration:.2f} seconds")
        logger.info("=" * 60)

        return self

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """
        Class probabilities for each row.

        Args:
            X: Feature-engineered DataFrame

        Returns:
            Array of shape (n_samples, 2): P(no stroke), P(stroke)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        proba = self.model.predict_proba(prepare_features(X))
        classes = list(self.model.classes_)
        return proba[:, [classes.index(0), classes.index(1)]]

    def predict(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        """Binary labels: 1 where P(stroke) exceeds the threshold."""
        return (self.predict_proba(X)[:, 1] > threshold).astype(int)

    def get_feature_importances(self) -> pd.Series:
        """
        Get impurity-based feature importances of the fitted forest.

        Returns:
            Series indexed by encoded feature name, sorted descending
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")

        importances = self.model.named_steps['classifier'].feature_importances_
        return pd.Series(importances, index=self.feature_names_).sort_values(ascending=False)

    def save(self, filepath: str) -> None:
        """
        Save the trained model to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'model': self.model,
            'hyperparameters': {
                'param_grid': self.param_grid,
                'cv_folds': self.cv_folds,
                'scoring': self.scoring,
                'oversample': self.oversample,
                'random_state': self.random_state,
                'n_jobs': self.n_jobs
            },
            'best_params_': self.best_params_,
            'known_categories_': self.known_categories_,
            'feature_names_': self.feature_names_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'StrokeRiskModel':
        """
        Load a trained model from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded StrokeRiskModel instance
        """
        if not Path(filepath).exists():
            raise FileNotFoundError(f"Model file not found: {filepath}")

        state = joblib.load(filepath)

        model = cls(**state['hyperparameters'])
        model.model = state['model']
        model.best_params_ = state['best_params_']
        model.known_categories_ = state['known_categories_']
        model.feature_names_ = state['feature_names_']
        model.training_info = state['training_info']
        model._is_fitted = state['_is_fitted']

        logger.info(f"Model loaded from {filepath}")
        return model


def train_model(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    config: Dict[str, Any],
    save_path: Optional[str] = None
) -> StrokeRiskModel:
    """
    Train a model using configuration parameters.

    Args:
        X_train: Training features
        y_train: Training labels
        config: Configuration dictionary (uses the 'model' section)
        save_path: Path to save the trained model (optional)

    Returns:
        Trained StrokeRiskModel
    """
    model_config = config.get('model', {})

    model = StrokeRiskModel(
        param_grid=model_config.get('param_grid', DEFAULT_PARAM_GRID),
        cv_folds=model_config.get('cv_folds', 5),
        scoring=model_config.get('scoring', 'roc_auc'),
        oversample=model_config.get('oversample', True),
        random_state=model_config.get('random_state', 42),
        n_jobs=model_config.get('n_jobs', -1)
    )

    model.fit(X_train, y_train)

    if save_path:
        model.save(save_path)

    return model


def print_model_summary(model: StrokeRiskModel) -> None:
    """
    Print a summary of the trained model.

    Args:
        model: Trained model instance
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print("Model Type: RandomForestClassifier (one-hot + RandomOverSampler pipeline)")
    print(f"CV folds: {model.cv_folds} | scoring: {model.scoring}")
    print("\nBest Hyperparameters:")
    for name, value in model.best_params_.items():
        print(f"  - {name}: {value}")

    if model.training_info:
        info = model.training_info
        print("\nTraining Info:")
        print(f"  - Duration: {info.get('training_duration_seconds', 0.0):.2f}s")
        print(f"  - Samples: {info.get('n_samples', 'N/A')}")
        print(f"  - Class counts: {info.get('class_counts', 'N/A')}")
        print(f"  - Encoded features: {info.get('n_encoded_features', 'N/A')}")
        print(f"  - CV {model.scoring}: {info.get('cv_best_score', float('nan')):.4f} "
              f"(± {info.get('cv_score_std', float('nan')):.4f})")

    print("=" * 50 + "\n")
