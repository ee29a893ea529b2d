"""
Data Preprocessing Module
=========================

Turns the raw stroke frame into model-ready train/test partitions.

Functions:
    - build_feature_transformer: Numeric passthrough + one-hot encoding
    - stratified_split: Seeded, label-stratified train/test split
    - class_distribution: Label counts and ratios
    - preprocess_pipeline: Clean, engineer features and split in one call
"""

import logging
from typing import Dict, Any, Tuple, Optional, List

import pandas as pd
import numpy as np
from sklearn.compose import ColumnTransformer
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import OneHotEncoder

from .cleaning import clean_data
from .data_loader import (
    TARGET_COLUMN,
    NUMERIC_COLUMNS,
    BINARY_COLUMNS,
    CATEGORICAL_COLUMNS,
)
from .exceptions import SchemaError
from .features import (
    engineer_features,
    DERIVED_CATEGORICAL_COLUMNS,
    DERIVED_NUMERIC_COLUMNS,
)

logger = logging.getLogger(__name__)

MODEL_NUMERIC_COLUMNS = NUMERIC_COLUMNS + BINARY_COLUMNS + DERIVED_NUMERIC_COLUMNS
MODEL_CATEGORICAL_COLUMNS = CATEGORICAL_COLUMNS + DERIVED_CATEGORICAL_COLUMNS
MODEL_INPUT_COLUMNS = MODEL_NUMERIC_COLUMNS + MODEL_CATEGORICAL_COLUMNS


def build_feature_transformer() -> ColumnTransformer:
    """
    Build the column transformer feeding the classifier.

    Numeric columns pass through unchanged (tree models need no scaling);
    categorical columns are one-hot encoded. Levels unseen inside a CV fold
    encode to all zeros; unseen levels at prediction time are rejected
    earlier by the predictor.
    """
    return ColumnTransformer(
        transformers=[
            ('num', 'passthrough', MODEL_NUMERIC_COLUMNS),
            ('cat', OneHotEncoder(handle_unknown='ignore', sparse_output=False),
             MODEL_CATEGORICAL_COLUMNS),
        ],
        remainder='drop',
        verbose_feature_names_out=True
    )


def class_distribution(y: pd.Series) -> Dict[str, Any]:
    """
    Count labels and their proportions.

    Args:
        y: Label series

    Returns:
        Dictionary with per-class counts, per-class ratios and positive ratio
    """
    counts = pd.Series(y).value_counts().sort_index()
    total = int(counts.sum())
    return {
        'counts': {int(k): int(v) for k, v in counts.items()},
        'ratios': {int(k): float(v / total) for k, v in counts.items()} if total else {},
        'positive_ratio': float(counts.get(1, 0) / total) if total else 0.0,
        'n_samples': total
    }


def stratified_split(
    df: pd.DataFrame,
    test_size: float = 0.2,
    random_state: int = 42
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
    """
    Split into train and test partitions preserving the label proportions.

    Args:
        df: Feature-engineered DataFrame including the label
        test_size: Fraction of rows held out for testing
        random_state: Seed for a reproducible split

    Returns:
        Tuple of (X_train, X_test, y_train, y_test)

    Raises:
        SchemaError: If the label has a single class or too few rows per class
    """
    if not 0.0 < test_size < 1.0:
        raise ValueError(f"test_size must be in (0, 1), got {test_size}")

    y = df[TARGET_COLUMN].astype(int)
    X = df[MODEL_INPUT_COLUMNS]

    counts = y.value_counts()
    if len(counts) < 2:
        raise SchemaError(
            f"Label '{TARGET_COLUMN}' has a single class {counts.index.tolist()}; "
            f"cannot stratify"
        )
    if counts.min() < 2:
        raise SchemaError(
            f"Label '{TARGET_COLUMN}' class {counts.idxmin()} has only "
            f"{counts.min()} row(s); stratified split needs at least 2"
        )

    X_train, X_test, y_train, y_test = train_test_split(
        X, y,
        test_size=test_size,
        random_state=random_state,
        stratify=y
    )

    train_dist = class_distribution(y_train)
    test_dist = class_distribution(y_test)
    logger.info(
        f"Train/Test split: {len(X_train)} train samples, {len(X_test)} test samples"
    )
    logger.info(
        f"Positive ratio: train {train_dist['positive_ratio']:.4f}, "
        f"test {test_dist['positive_ratio']:.4f}"
    )

    return X_train, X_test, y_train, y_test


def prepare_features(df: pd.DataFrame) -> pd.DataFrame:
    """Select model input columns in the order the transformer expects."""
    missing = [col for col in MODEL_INPUT_COLUMNS if col not in df.columns]
    if missing:
        raise SchemaError(f"Missing model input columns: {missing}")
    return df[MODEL_INPUT_COLUMNS]


def preprocess_pipeline(
    df: pd.DataFrame,
    config: Optional[Dict[str, Any]] = None,
    cleaned: Optional[Tuple[pd.DataFrame, Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """
    Complete preprocessing pipeline for the stroke dataset.

    Args:
        df: Raw DataFrame from load_data
        config: Configuration dictionary
        cleaned: (clean DataFrame, cleaning report) from an earlier clean_data
            call; df is cleaned here when omitted

    Returns:
        Dictionary containing:
            - X_train, X_test, y_train, y_test: Split datasets
            - dataset: Cleaned and feature-engineered DataFrame
            - cleaning_report: Report from clean_data
            - class_distribution: Label distribution per partition
    """
    config = config or {}
    split_config = config.get('split', {})

    logger.info("=" * 60)
    logger.info("STARTING DATA PREPROCESSING")
    logger.info("=" * 60)

    if cleaned is None:
        cleaned = clean_data(df, config)
    clean_df, cleaning_report = cleaned
    dataset = engineer_features(clean_df)

    X_train, X_test, y_train, y_test = stratified_split(
        dataset,
        test_size=split_config.get('test_size', 0.2),
        random_state=split_config.get('random_state', 42)
    )

    result = {
        'X_train': X_train,
        'X_test': X_test,
        'y_train': y_train,
        'y_test': y_test,
        'dataset': dataset,
        'cleaning_report': cleaning_report,
        'class_distribution': {
            'full': class_distribution(dataset[TARGET_COLUMN]),
            'train': class_distribution(y_train),
            'test': class_distribution(y_test)
        }
    }

    logger.info("=" * 60)
    logger.info("PREPROCESSING COMPLETE")
    logger.info(f"  Training samples: {len(X_train)}")
    logger.info(f"  Test samples: {len(X_test)}")
    logger.info(f"  Input columns: {len(MODEL_INPUT_COLUMNS)}")
    logger.info("=" * 60)

    return result


def print_preprocessing_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the preprocessing results.

    Args:
        result: Dictionary from preprocess_pipeline
    """
    dist = result['class_distribution']
    print("\n" + "=" * 50)
    print("PREPROCESSING SUMMARY")
    print("=" * 50)
    print(f"Training samples: {len(result['X_train'])}")
    print(f"Test samples: {len(result['X_test'])}")
    print(f"Input columns: {result['X_train'].shape[1]}")
    print(f"\nStroke ratio (full):  {dist['full']['positive_ratio']:.4f}")
    print(f"Stroke ratio (train): {dist['train']['positive_ratio']:.4f}")
    print(f"Stroke ratio (test):  {dist['test']['positive_ratio']:.4f}")
    print("=" * 50 + "\n")


def feature_names(transformer: ColumnTransformer) -> List[str]:
    """Names of the encoded columns produced by a fitted transformer."""
    return [str(name) for name in np.asarray(transformer.get_feature_names_out())]
