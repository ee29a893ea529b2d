"""
Data Cleaning Module
====================

Type casting, label checks, and grouped bmi imputation.

Functions:
    - cast_types: Coerce columns to their semantic types
    - drop_invalid_labels: Drop or reject rows with a missing/invalid label
    - drop_incomplete_rows: Drop rows missing a required non-bmi field
    - impute_bmi: Median bmi per (age category, gender) group
    - clean_data: Full cleaning stage
"""

import logging
from typing import Dict, Any, Optional, Tuple

import pandas as pd

from .data_loader import (
    TARGET_COLUMN,
    NUMERIC_COLUMNS,
    BINARY_COLUMNS,
    CATEGORICAL_COLUMNS,
    FEATURE_COLUMNS,
)
from .exceptions import SchemaError, ValidationError
from .features import categorize_age

logger = logging.getLogger(__name__)

IMPUTATION_GROUPS = ['age_category', 'gender']


def cast_types(df: pd.DataFrame) -> pd.DataFrame:
    """
    Cast columns to their semantic types.

    Numerics become floats (unparseable values such as "N/A" become NaN),
    flags become numbers checked later and categoricals become stripped strings.
    """
    df = df.copy()

    if 'id' in df.columns:
        df = df.drop(columns=['id'])

    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors='coerce').astype(float)

    for col in BINARY_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors='coerce')

    for col in CATEGORICAL_COLUMNS:
        df[col] = df[col].where(df[col].isna(), df[col].astype(str).str.strip())

    if TARGET_COLUMN in df.columns:
        df[TARGET_COLUMN] = pd.to_numeric(df[TARGET_COLUMN], errors='coerce')

    return df


def drop_invalid_labels(df: pd.DataFrame, policy: str = "drop") -> pd.DataFrame:
    """
    Remove rows whose label is missing or not exactly 0 or 1.

    Args:
        df: DataFrame after cast_types
        policy: "drop" to log and drop offending rows, "raise" to reject them

    Returns:
        DataFrame with an integer label column

    Raises:
        ValidationError: If policy is "raise" and invalid labels exist
    """
    if policy not in ("drop", "raise"):
        raise ValueError(f"Unknown label policy: {policy}. Choose from: drop, raise")

    invalid_mask = ~df[TARGET_COLUMN].isin([0, 1])
    if invalid_mask.any():
        bad_rows = df.index[invalid_mask].tolist()
        message = (
            f"{len(bad_rows)} rows have a missing or invalid '{TARGET_COLUMN}' label "
            f"(rows {bad_rows[:10]}{'...' if len(bad_rows) > 10 else ''})"
        )
        if policy == "raise":
            raise ValidationError(message)
        logger.warning(f"Dropping {message}")
        df = df.loc[~invalid_mask]

    df = df.copy()
    df[TARGET_COLUMN] = df[TARGET_COLUMN].astype(int)
    return df


def drop_incomplete_rows(df: pd.DataFrame) -> pd.DataFrame:
    """Drop rows missing any required field except bmi, which is imputed."""
    required = [col for col in FEATURE_COLUMNS if col != 'bmi']
    df = df.copy()
    for col in BINARY_COLUMNS:
        invalid_flag = df[col].notna() & ~df[col].isin([0, 1])
        if invalid_flag.any():
            logger.warning(
                f"Column '{col}' has {int(invalid_flag.sum())} values outside {{0, 1}} "
                f"(rows {df.index[invalid_flag].tolist()[:10]})"
            )
            df[col] = df[col].where(~invalid_flag)
    incomplete = df[required].isna().any(axis=1)

    if incomplete.any():
        for col in required:
            n_missing = int(df[col].isna().sum())
            if n_missing:
                logger.warning(f"Column '{col}' has {n_missing} missing values")
        logger.warning(
            f"Dropping {int(incomplete.sum())} incomplete rows "
            f"(rows {df.index[incomplete].tolist()[:10]})"
        )
        df = df.loc[~incomplete]

    df = df.copy()
    for col in BINARY_COLUMNS:
        df[col] = df[col].astype(int)
    return df


def impute_bmi(df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Fill missing bmi with the median of the row's (age category, gender) group.

    Groups with no observed bmi fall back to the dataset-wide median.

    Args:
        df: DataFrame with numeric bmi, age and gender

    Returns:
        Tuple of (imputed DataFrame, imputation report)

    Raises:
        SchemaError: If no bmi value is observed at all
    """
    df = df.copy()
    missing_mask = df['bmi'].isna()
    report = {
        'n_missing': int(missing_mask.sum()),
        'n_group_imputed': 0,
        'n_global_fallback': 0,
        'global_median': None,
        'group_medians': {}
    }

    if not missing_mask.any():
        logger.info("No missing bmi values to impute")
        return df, report

    global_median = df['bmi'].median()
    if pd.isna(global_median):
        raise SchemaError("Column 'bmi' has no observed values; cannot impute")
    report['global_median'] = float(global_median)

    groups = pd.DataFrame({
        'age_category': categorize_age(df['age']),
        'gender': df['gender'],
    }, index=df.index)

    group_median = df['bmi'].groupby(
        [groups[col] for col in IMPUTATION_GROUPS], dropna=False
    ).transform('median')

    filled = df['bmi'].fillna(group_median)
    fallback_mask = filled.isna()
    filled = filled.fillna(global_median)

    report['n_global_fallback'] = int(fallback_mask.sum())
    report['n_group_imputed'] = report['n_missing'] - report['n_global_fallback']

    medians = df['bmi'].groupby([groups[col] for col in IMPUTATION_GROUPS]).median()
    report['group_medians'] = {
        f"{age}|{gender}": (None if pd.isna(value) else float(value))
        for (age, gender), value in medians.items()
    }

    if report['n_global_fallback']:
        logger.warning(
            f"{report['n_global_fallback']} bmi values fell back to the global "
            f"median ({global_median:.2f}); their group had no observed bmi"
        )

    df['bmi'] = filled
    logger.info(
        f"Imputed {report['n_missing']} missing bmi values "
        f"({report['n_group_imputed']} by group median)"
    )
    return df, report


def clean_data(
    df: pd.DataFrame,
    config: Optional[Dict[str, Any]] = None
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Run the full cleaning stage.

    Args:
        df: Raw DataFrame from load_data
        config: Configuration dictionary (uses the 'cleaning' section)

    Returns:
        Tuple of (clean DataFrame, cleaning report)
    """
    cleaning_config = (config or {}).get('cleaning', {})
    label_policy = cleaning_config.get('invalid_label_policy', 'drop')

    logger.info("=" * 60)
    logger.info("STARTING DATA CLEANING")
    logger.info("=" * 60)

    n_input = len(df)

    df = cast_types(df)
    df = drop_invalid_labels(df, policy=label_policy)
    n_after_labels = len(df)

    df = drop_incomplete_rows(df)
    n_after_complete = len(df)

    df, imputation = impute_bmi(df)
    df = df.reset_index(drop=True)

    if df['bmi'].isna().any():
        raise SchemaError("bmi still contains missing values after imputation")

    report = {
        'n_input_rows': n_input,
        'n_invalid_labels': n_input - n_after_labels,
        'n_incomplete_rows': n_after_labels - n_after_complete,
        'n_output_rows': len(df),
        'bmi_imputation': imputation
    }

    logger.info("=" * 60)
    logger.info("CLEANING COMPLETE")
    logger.info(f"  Rows in: {n_input}, rows out: {len(df)}")
    logger.info(f"  bmi imputed: {imputation['n_missing']}")
    logger.info("=" * 60)

    return df, report


def print_cleaning_summary(report: Dict[str, Any]) -> None:
    """
    Print a summary of the cleaning results.

    Args:
        report: Report dictionary from clean_data
    """
    imputation = report['bmi_imputation']
    print("\n" + "=" * 50)
    print("CLEANING SUMMARY")
    print("=" * 50)
    print(f"Input rows: {report['n_input_rows']}")
    print(f"Dropped (invalid label): {report['n_invalid_labels']}")
    print(f"Dropped (incomplete): {report['n_incomplete_rows']}")
    print(f"Output rows: {report['n_output_rows']}")
    print(f"\nbmi imputed: {imputation['n_missing']}")
    print(f"  - by (age category, gender) median: {imputation['n_group_imputed']}")
    print(f"  - by global median: {imputation['n_global_fallback']}")
    if imputation['global_median'] is not None:
        print(f"  - global median: {imputation['global_median']:.2f}")
    print("=" * 50 + "\n")
