"""
Data Loader Module
==================

Handles CSV ingestion, schema checks, and basic data quality reporting.

Functions:
    - load_config: Load YAML configuration file
    - load_data: Load the stroke CSV and check required columns
    - validate_data: Check data quality constraints
    - get_data_summary: Generate basic statistics
"""

import logging
from pathlib import Path
from typing import Dict, Any, Tuple

import pandas as pd
import numpy as np
import yaml

from .exceptions import SchemaError

logger = logging.getLogger(__name__)


TARGET_COLUMN = 'stroke'

NUMERIC_COLUMNS = ['age', 'avg_glucose_level', 'bmi']
BINARY_COLUMNS = ['hypertension', 'heart_disease']
CATEGORICAL_COLUMNS = [
    'gender', 'ever_married', 'work_type', 'Residence_type', 'smoking_status'
]

# Input fields a new patient record must carry (label excluded)
FEATURE_COLUMNS = [
    'age', 'gender', 'hypertension', 'heart_disease', 'ever_married',
    'work_type', 'Residence_type', 'avg_glucose_level', 'bmi', 'smoking_status'
]
REQUIRED_COLUMNS = FEATURE_COLUMNS + [TARGET_COLUMN]

# Levels present in the public stroke dataset
KNOWN_LEVELS = {
    'gender': ['Male', 'Female', 'Other'],
    'ever_married': ['Yes', 'No'],
    'work_type': ['Private', 'Self-employed', 'Govt_job', 'children', 'Never_worked'],
    'Residence_type': ['Urban', 'Rural'],
    'smoking_status': ['formerly smoked', 'never smoked', 'smokes', 'Unknown'],
}

# Plausible physiological ranges used for quality warnings only
VALUE_RANGES = {
    'age': (0.0, 120.0),
    'avg_glucose_level': (40.0, 400.0),
    'bmi': (10.0, 100.0),
}


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def load_data(file_path: str) -> pd.DataFrame:
    """
    Load the stroke CSV and check that every required column is present.

    Args:
        file_path: Path to the CSV file

    Returns:
        DataFrame containing the raw records

    Raises:
        FileNotFoundError: If data file doesn't exist
        SchemaError: If required columns are missing
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(file_path)
    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise SchemaError(
            f"Missing required columns: {missing}. "
            f"Columns found: {list(df.columns)}"
        )

    return df


def validate_data(df: pd.DataFrame, strict: bool = True) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate data quality constraints for the stroke dataset.

    Checks:
        - Missing values per column
        - Duplicate rows
        - Unexpected categorical levels
        - Numeric values outside plausible ranges
        - Label values outside {0, 1}

    Args:
        df: DataFrame to validate
        strict: If True, raise errors on validation failure

    Returns:
        Tuple of (is_valid, validation_report)
    """
    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "column_names": list(df.columns),
        "issues": []
    }

    # Check 1: Missing values (bmi is stored as "N/A" in the raw file)
    missing_counts = df.replace('N/A', np.nan).isnull().sum()
    total_missing = int(missing_counts.sum())
    if total_missing > 0:
        issue = f"Missing values: {total_missing}"
        report["issues"].append(issue)
        report["missing_by_column"] = {
            col: int(n) for col, n in missing_counts[missing_counts > 0].items()
        }
        logger.warning(f"{issue} {report['missing_by_column']}")

    # Check 2: Duplicate rows
    subset = [col for col in df.columns if col != 'id']
    duplicates = int(df.duplicated(subset=subset).sum())
    if duplicates > 0:
        issue = f"Duplicate rows found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 3: Unexpected categorical levels
    for col, levels in KNOWN_LEVELS.items():
        if col not in df.columns:
            continue
        observed = set(df[col].dropna().astype(str).str.strip().unique())
        unexpected = sorted(observed - set(levels))
        if unexpected:
            issue = f"Column '{col}' has unexpected levels: {unexpected}"
            report["issues"].append(issue)
            logger.warning(issue)

    # Check 4: Plausible numeric ranges
    for col, (low, high) in VALUE_RANGES.items():
        if col not in df.columns:
            continue
        values = pd.to_numeric(df[col], errors='coerce')
        out_of_range = int(((values < low) | (values > high)).sum())
        if out_of_range > 0:
            issue = f"Column '{col}' has {out_of_range} values outside [{low}, {high}]"
            report["issues"].append(issue)
            logger.warning(issue)

    # Check 5: Label values and balance
    if TARGET_COLUMN in df.columns:
        labels = pd.to_numeric(df[TARGET_COLUMN], errors='coerce')
        invalid = int((~labels.isin([0, 1])).sum())
        if invalid > 0:
            issue = f"Label '{TARGET_COLUMN}' has {invalid} values outside {{0, 1}}"
            report["issues"].append(issue)
            logger.warning(issue)
        report["label_distribution"] = {
            int(k): int(v) for k, v in labels[labels.isin([0, 1])].value_counts().items()
        }

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise SchemaError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def get_data_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Generate summary statistics for the dataset.

    Args:
        df: DataFrame to summarize

    Returns:
        Dictionary containing summary statistics
    """
    summary = {
        "shape": df.shape,
        "columns": list(df.columns),
        "dtypes": df.dtypes.astype(str).to_dict(),
        "memory_usage_mb": df.memory_usage(deep=True).sum() / 1024 / 1024,
        "statistics": {},
        "levels": {}
    }

    for col in NUMERIC_COLUMNS:
        if col not in df.columns:
            continue
        values = pd.to_numeric(df[col], errors='coerce')
        summary["statistics"][col] = {
            "count": int(values.count()),
            "mean": float(values.mean()),
            "std": float(values.std()),
            "min": float(values.min()),
            "50%": float(values.quantile(0.50)),
            "max": float(values.max()),
            "skew": float(values.skew())
        }

    for col in CATEGORICAL_COLUMNS:
        if col in df.columns:
            summary["levels"][col] = df[col].value_counts().to_dict()

    return summary


def print_data_summary(df: pd.DataFrame) -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
    """
    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"Memory Usage: {df.memory_usage(deep=True).sum() / 1024:.2f} KB")
    print("\nColumn Information:")
    print("-" * 40)

    for col in df.columns:
        dtype = df[col].dtype
        non_null = df[col].replace('N/A', np.nan).count()
        null_pct = (1 - non_null / len(df)) * 100 if len(df) else 0.0
        print(f"  {col}: {dtype} | {non_null} non-null ({null_pct:.1f}% missing)")

    if TARGET_COLUMN in df.columns:
        print("\nLabel Distribution:")
        print("-" * 40)
        counts = df[TARGET_COLUMN].value_counts()
        for label, count in counts.items():
            print(f"  {TARGET_COLUMN}={label}: {count} ({count / len(df) * 100:.2f}%)")

    print("=" * 60 + "\n")
