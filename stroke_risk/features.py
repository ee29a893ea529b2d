"""
Feature Engineering Module
==========================

Derives bucketed categories and a composite risk score from patient records.

Every derived column is a pure function of its own row, so the same code runs
on the training frame and on single records at prediction time.

Boundary table (intervals are left-closed, right-open):

    age_category       Child < 18 <= Young Adult < 35 <= Middle-aged < 55
                       <= Senior < 75 <= Elderly
    bmi_category       Underweight < 18.5 <= Normal < 25 <= Overweight < 30
                       <= Obese
    glucose_category   Normal < 100 <= Prediabetic < 126 <= Diabetic

    health_risk_score  hypertension + heart_disease
"""

import logging
from typing import List

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


AGE_BINS = [-np.inf, 18, 35, 55, 75, np.inf]
AGE_LABELS = ['Child', 'Young Adult', 'Middle-aged', 'Senior', 'Elderly']

BMI_BINS = [-np.inf, 18.5, 25, 30, np.inf]
BMI_LABELS = ['Underweight', 'Normal', 'Overweight', 'Obese']

GLUCOSE_BINS = [-np.inf, 100, 126, np.inf]
GLUCOSE_LABELS = ['Normal', 'Prediabetic', 'Diabetic']

DERIVED_CATEGORICAL_COLUMNS = ['age_category', 'bmi_category', 'glucose_category']
DERIVED_NUMERIC_COLUMNS = ['health_risk_score']


def _bucketize(values: pd.Series, bins: List[float], labels: List[str]) -> pd.Series:
    """Map numeric values onto labelled, left-closed intervals."""
    numeric = pd.to_numeric(values, errors='coerce')
    buckets = pd.cut(numeric, bins=bins, labels=labels, right=False)
    # Plain object dtype keeps downstream one-hot encoding free of unused levels
    return buckets.astype(object).where(buckets.notna(), np.nan)


def categorize_age(age: pd.Series) -> pd.Series:
    return _bucketize(age, AGE_BINS, AGE_LABELS)


def categorize_bmi(bmi: pd.Series) -> pd.Series:
    return _bucketize(bmi, BMI_BINS, BMI_LABELS)


def categorize_glucose(glucose: pd.Series) -> pd.Series:
    return _bucketize(glucose, GLUCOSE_BINS, GLUCOSE_LABELS)


def add_health_risk_score(df: pd.DataFrame) -> pd.Series:
    """Count of the comorbidity flags (hypertension, heart disease) per row."""
    return (df['hypertension'].astype(int) + df['heart_disease'].astype(int)).astype(int)


def engineer_features(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add all derived feature columns.

    Args:
        df: Cleaned DataFrame (bmi must already be imputed)

    Returns:
        New DataFrame with age/bmi/glucose categories and health_risk_score
    """
    df = df.copy()

    df['age_category'] = categorize_age(df['age'])
    df['bmi_category'] = categorize_bmi(df['bmi'])
    df['glucose_category'] = categorize_glucose(df['avg_glucose_level'])
    df['health_risk_score'] = add_health_risk_score(df)

    logger.info(
        f"Engineered features for {len(df)} rows: "
        f"{DERIVED_CATEGORICAL_COLUMNS + DERIVED_NUMERIC_COLUMNS}"
    )
    return df
