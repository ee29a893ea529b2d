"""
Shared fixtures: synthetic stroke records and a small trained model.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from stroke_risk.cleaning import clean_data
from stroke_risk.features import engineer_features
from stroke_risk.model import StrokeRiskModel
from stroke_risk.preprocessing import stratified_split


def make_stroke_frame(n_samples: int = 400, seed: int = 42, missing_bmi_frac: float = 0.05) -> pd.DataFrame:
    """Raw-shaped stroke data where risk rises with age and comorbidities."""
    rng = np.random.RandomState(seed)

    age = rng.uniform(1, 90, n_samples).round(0)
    hypertension = rng.binomial(1, 0.1 + 0.2 * (age > 60))
    heart_disease = rng.binomial(1, 0.05 + 0.1 * (age > 65))
    glucose = rng.normal(105, 30, n_samples).clip(55, 270).round(2)
    bmi = rng.normal(28, 6, n_samples).clip(12, 60).round(1)

    logit = -5.0 + 0.06 * age + 0.8 * hypertension + 0.8 * heart_disease + 0.01 * (glucose - 100)
    proba = 1 / (1 + np.exp(-logit))
    stroke = rng.binomial(1, proba)
    stroke[np.argsort(proba)[-25:]] = 1

    df = pd.DataFrame({
        'id': np.arange(n_samples) + 1000,
        'gender': rng.choice(['Male', 'Female'], n_samples),
        'age': age,
        'hypertension': hypertension,
        'heart_disease': heart_disease,
        'ever_married': np.where(age > 25, rng.choice(['Yes', 'No'], n_samples, p=[0.8, 0.2]), 'No'),
        'work_type': rng.choice(['Private', 'Self-employed', 'Govt_job', 'children'], n_samples),
        'Residence_type': rng.choice(['Urban', 'Rural'], n_samples),
        'avg_glucose_level': glucose,
        'bmi': bmi,
        'smoking_status': rng.choice(['formerly smoked', 'never smoked', 'smokes', 'Unknown'], n_samples),
        'stroke': stroke
    })

    missing = rng.rand(n_samples) < missing_bmi_frac
    df.loc[missing, 'bmi'] = np.nan
    return df


@pytest.fixture
def raw_data():
    return make_stroke_frame()


@pytest.fixture
def engineered_data(raw_data):
    clean_df, _ = clean_data(raw_data)
    return engineer_features(clean_df)


@pytest.fixture(scope="session")
def split_data():
    clean_df, _ = clean_data(make_stroke_frame())
    return stratified_split(engineer_features(clean_df), test_size=0.2, random_state=42)


@pytest.fixture(scope="session")
def trained_model(split_data):
    X_train, _, y_train, _ = split_data
    model = StrokeRiskModel(
        param_grid={'n_estimators': [25], 'max_depth': [None, 5]},
        cv_folds=5,
        random_state=42,
        n_jobs=1
    )
    return model.fit(X_train, y_train)


@pytest.fixture
def example_record():
    return {
        'age': 65,
        'gender': 'Male',
        'hypertension': 1,
        'heart_disease': 0,
        'ever_married': 'Yes',
        'work_type': 'Private',
        'Residence_type': 'Urban',
        'avg_glucose_level': 120,
        'bmi': 28,
        'smoking_status': 'formerly smoked'
    }
