#!/usr/bin/env python3
"""
Stroke Risk Analytics - Main Pipeline
=====================================

Orchestrates the complete pipeline for stroke prediction.

Phases:
    1. EDA - Cleaning and exploratory data analysis
    2. Training - Random forest with oversampling and CV tuning
    3. Evaluation - Confusion matrix, ROC/AUC, Youden threshold
    4. Prediction - Score a new patient record with the saved model

Usage:
    # Run complete pipeline
    python main.py --data data/raw/healthcare-dataset-stroke-data.csv

    # Run specific phase
    python main.py --data data/raw/healthcare-dataset-stroke-data.csv --phase eda

    # Score a record with the saved model
    python main.py --phase predict --record record.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional, Tuple

import pandas as pd

from stroke_risk.data_loader import load_config, load_data, validate_data, print_data_summary
from stroke_risk.cleaning import clean_data, print_cleaning_summary
from stroke_risk.eda import generate_eda_report, print_association_insights
from stroke_risk.preprocessing import preprocess_pipeline, print_preprocessing_summary
from stroke_risk.model import train_model, print_model_summary, StrokeRiskModel
from stroke_risk.evaluation import evaluate_model, print_evaluation_report
from stroke_risk.prediction import (
    StrokePredictor,
    generate_model_report,
    print_prediction_result,
)

EXAMPLE_RECORD = {
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


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        ]
    )


def run_eda(
    df: pd.DataFrame,
    config: Dict[str, Any],
    cleaned: Optional[Tuple[pd.DataFrame, Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """
    Execute Phase 1: cleaning and Exploratory Data Analysis.

    Args:
        df: Raw data
        config: Configuration dictionary
        cleaned: Output of an earlier clean_data call (optional)

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 1: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    if cleaned is None:
        cleaned = clean_data(df, config)
    clean_df, cleaning_report = cleaned
    print_cleaning_summary(cleaning_report)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')
    report = generate_eda_report(clean_df, output_dir=output_dir, show_plots=False)

    print_association_insights(report["associations"])

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_training(
    prep_result: Dict[str, Any],
    config: Dict[str, Any]
) -> StrokeRiskModel:
    """
    Execute Phase 2: Model Training.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Trained model
    """
    print("\n" + "=" * 70)
    print("PHASE 2: MODEL TRAINING")
    print("=" * 70)

    print_preprocessing_summary(prep_result)

    model_path = config.get('output', {}).get('model_path', 'models/stroke_model.joblib')

    model = train_model(
        prep_result['X_train'],
        prep_result['y_train'],
        config,
        save_path=model_path
    )

    print_model_summary(model)

    return model


def run_evaluation(
    model: StrokeRiskModel,
    prep_result: Dict[str, Any],
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 3: Model Evaluation and model report.

    Args:
        model: Trained model
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 3: MODEL EVALUATION")
    print("=" * 70)

    output_config = config.get('output', {})

    result = evaluate_model(
        model,
        prep_result['X_test'],
        prep_result['y_test'],
        output_dir=output_config.get('reports_path', 'reports/'),
        show_plots=False
    )

    print_evaluation_report(result['metrics'])

    report_path = output_config.get('model_report_path', 'reports/model_report.md')
    generate_model_report(model, result['metrics'], output_path=report_path)
    result['model_report_path'] = report_path
    print(f"Model report written to {report_path}")

    return result


def run_prediction(
    config: Dict[str, Any],
    record: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Execute Phase 4: score one patient record with the saved model.

    Args:
        config: Configuration dictionary
        record: Patient record (defaults to a built-in example)

    Returns:
        Prediction result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 4: PREDICTION")
    print("=" * 70)

    if record is None:
        record = EXAMPLE_RECORD
    model_path = config.get('output', {}).get('model_path', 'models/stroke_model.joblib')

    predictor = StrokePredictor.from_path(model_path)
    result = predictor.predict(record)

    print_prediction_result(record, result)

    return result.to_dict()


def run_full_pipeline(
    data_path: str,
    config_path: str = "config/config.yaml",
    record: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Execute the complete pipeline.

    Args:
        data_path: Path to input CSV file
        config_path: Path to configuration file
        record: Patient record to score at the end (optional)

    Returns:
        Dictionary containing all phase results
    """
    print("\n" + "=" * 70)
    print("STROKE RISK PIPELINE")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    config = load_config(config_path)
    setup_logging(config.get('logging', {}).get('level', 'INFO'))

    print("\n📊 Loading data...")
    df = load_data(data_path)
    print_data_summary(df)

    is_valid, validation_report = validate_data(df, strict=False)
    if not is_valid:
        print("⚠️  Data validation warnings detected. Proceeding anyway...")

    results = {
        'config': config,
        'data_shape': df.shape,
        'validation': validation_report
    }

    cleaned = clean_data(df, config)
    results['eda'] = run_eda(df, config, cleaned)
    results['preprocessing'] = preprocess_pipeline(df, config, cleaned)
    results['model'] = run_training(results['preprocessing'], config)
    results['evaluation'] = run_evaluation(results['model'], results['preprocessing'], config)
    results['prediction'] = run_prediction(config, record)

    metrics = results['evaluation']['metrics']

    print("\n" + "=" * 70)
    print("PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  • Input data: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"  • Test ROC-AUC: {metrics['roc_auc']:.4f}")
    print(f"  • Youden threshold: {metrics['youden']['threshold']:.4f}")
    print(f"  • Example risk score: {results['prediction']['risk_score']:.4f} "
          f"({results['prediction']['classification']})")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    data_path: Optional[str],
    config_path: str = "config/config.yaml",
    record: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Execute a single phase of the pipeline.

    Args:
        phase: Phase to run ('eda', 'train', 'evaluate', 'predict')
        data_path: Path to input CSV file (not needed for 'predict')
        config_path: Path to configuration file
        record: Patient record for the 'predict' phase

    Returns:
        Phase result dictionary
    """
    config = load_config(config_path)
    setup_logging(config.get('logging', {}).get('level', 'INFO'))

    if phase == 'predict':
        return run_prediction(config, record)

    if data_path is None:
        raise ValueError(f"Phase '{phase}' requires --data")

    df = load_data(data_path)

    if phase == 'eda':
        return run_eda(df, config)

    elif phase == 'train':
        prep_result = preprocess_pipeline(df, config)
        return {'model': run_training(prep_result, config), 'preprocessing': prep_result}

    elif phase == 'evaluate':
        prep_result = preprocess_pipeline(df, config)
        model = run_training(prep_result, config)
        return run_evaluation(model, prep_result, config)

    else:
        raise ValueError(f"Unknown phase: {phase}. Choose from: eda, train, evaluate, predict")


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Stroke Risk Prediction Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --data data/raw/healthcare-dataset-stroke-data.csv
  python main.py --data data/raw/healthcare-dataset-stroke-data.csv --phase eda
  python main.py --phase predict --record record.json
        """
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        default=None,
        help='Path to the input CSV file'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['eda', 'train', 'evaluate', 'predict', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--record', '-r',
        type=str,
        default=None,
        help='JSON file with a patient record to score'
    )

    args = parser.parse_args()

    if args.phase != 'predict':
        if args.data is None:
            parser.error(f"--data is required for phase '{args.phase}'")
        if not Path(args.data).exists():
            print(f"Error: Data file not found: {args.data}")
            print("\nExpected format: stroke CSV with columns age, gender, hypertension, "
                  "heart_disease, ever_married, work_type, Residence_type, "
                  "avg_glucose_level, bmi, smoking_status, stroke")
            return 1

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        return 1

    if args.record and not Path(args.record).exists():
        print(f"Error: Record file not found: {args.record}")
        return 1

    try:
        record = None
        if args.record:
            with open(args.record, 'r') as f:
                record = json.load(f)

        if args.phase == 'all':
            run_full_pipeline(args.data, args.config, record)
        else:
            run_single_phase(args.phase, args.data, args.config, record)

        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
