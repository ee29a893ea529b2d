"""
Prediction Module
=================

Scores new patient records with a trained stroke model.

Features:
    - Input validation against the fields and levels seen in training
    - Risk score, risk label and full probability distribution per record
    - Batch scoring
    - Model report listing input fields, output schema and metrics
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from .data_loader import FEATURE_COLUMNS, NUMERIC_COLUMNS, BINARY_COLUMNS, CATEGORICAL_COLUMNS
from .exceptions import ValidationError
from .features import engineer_features
from .model import StrokeRiskModel

logger = logging.getLogger(__name__)

RISK_THRESHOLD = 0.5
HIGH_RISK = "High Risk"
LOW_RISK = "Low Risk"


class PatientRecord(BaseModel):
    """
    One patient's input fields.

    Categorical levels are checked against ``known_categories`` when it is
    passed in the validation context. Extra keys such as the label are ignored.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    gender: str = Field(..., min_length=1, description="Male / Female / Other")
    age: float = Field(..., ge=0, allow_inf_nan=False, description="Patient age in years")
    hypertension: int = Field(..., ge=0, le=1, description="0 = No, 1 = Yes")
    heart_disease: int = Field(..., ge=0, le=1, description="0 = No, 1 = Yes")
    ever_married: str = Field(..., min_length=1, description="Yes / No")
    work_type: str = Field(..., min_length=1, description="Type of work")
    Residence_type: str = Field(..., min_length=1, description="Urban / Rural")
    avg_glucose_level: float = Field(..., ge=0, allow_inf_nan=False,
                                     description="Average glucose level mg/dL")
    bmi: float = Field(..., ge=0, allow_inf_nan=False, description="Body Mass Index")
    smoking_status: str = Field(..., min_length=1, description="Smoking status")

    @field_validator('age', 'avg_glucose_level', 'bmi', mode='before')
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("Input should be a number, not a boolean")
        return value

    @field_validator(*CATEGORICAL_COLUMNS)
    @classmethod
    def _check_known_level(cls, value: str, info: ValidationInfo) -> str:
        known = (info.context or {}).get('known_categories', {}).get(info.field_name)
        if known is not None and value not in known:
            raise ValueError(f"Unknown value {value!r}; expected one of {known}")
        return value


class PredictionResult(BaseModel):
    """Outcome of scoring one patient record."""

    risk_score: float = Field(..., ge=0, le=1)
    classification: str
    probabilities: Dict[str, float] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def classify_risk(risk_score: float, threshold: float = RISK_THRESHOLD) -> str:
    """High Risk iff the score is strictly above the threshold."""
    return HIGH_RISK if risk_score > threshold else LOW_RISK


def _format_errors(exc: PydanticValidationError) -> str:
    messages = []
    for error in exc.errors():
        field_name = ".".join(str(part) for part in error['loc']) or "record"
        if error['type'] == 'missing':
            messages.append(f"Field '{field_name}' is required")
        else:
            messages.append(f"Field '{field_name}': {error['msg']} (got {error['input']!r})")
    return "; ".join(messages)


class StrokePredictor:
    """
    Thin scoring wrapper around a trained StrokeRiskModel.

    Records are plain dictionaries keyed by the raw input column names.
    Each record is validated, feature-engineered and scored; nothing is
    imputed or defaulted at this stage.
    """

    def __init__(self, model: StrokeRiskModel, threshold: float = RISK_THRESHOLD):
        if not model._is_fitted:
            raise ValueError("Predictor requires a trained model.")
        self.model = model
        self.threshold = threshold

    @classmethod
    def from_path(cls, model_path: str, threshold: float = RISK_THRESHOLD) -> 'StrokePredictor':
        """Load the model artifact at model_path and wrap it."""
        if not Path(model_path).exists():
            raise FileNotFoundError(
                f"Model file not found: {model_path}. Run the training phase first."
            )
        return cls(StrokeRiskModel.load(model_path), threshold=threshold)

    @property
    def known_categories(self) -> Dict[str, List[str]]:
        return self.model.known_categories_

    def validate_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check a record and return a normalised copy of its input fields.

        Raises:
            ValidationError: On a missing field, a non-numeric or non-finite
                number, a flag outside {0, 1}, or an unknown category level
        """
        if not isinstance(record, Mapping):
            raise ValidationError(f"Record must be a mapping, got {type(record).__name__}")

        # "N/A" is the dataset's missing-bmi marker; reject it like any missing value
        fields = {k: (None if isinstance(v, str) and v.strip() == 'N/A' else v)
                  for k, v in record.items()}
        try:
            patient = PatientRecord.model_validate(
                fields, context={'known_categories': self.known_categories}
            )
        except PydanticValidationError as exc:
            raise ValidationError(_format_errors(exc)) from exc

        return patient.model_dump()

    def _score(self, records: List[Dict[str, Any]]) -> List[PredictionResult]:
        frame = pd.DataFrame([self.validate_record(r) for r in records], columns=FEATURE_COLUMNS)
        frame = engineer_features(frame)
        proba = self.model.predict_proba(frame)

        results = []
        for p_no_stroke, p_stroke in proba:
            risk_score = float(p_stroke)
            results.append(PredictionResult(
                risk_score=risk_score,
                classification=classify_risk(risk_score, self.threshold),
                probabilities={'no_stroke': float(p_no_stroke), 'stroke': risk_score}
            ))
        return results

    def predict(self, record: Dict[str, Any]) -> PredictionResult:
        """
        Score a single patient record.

        Args:
            record: Mapping with every field in FEATURE_COLUMNS (label not needed)

        Returns:
            PredictionResult
        """
        result = self._score([record])[0]
        logger.info(
            f"Scored record: risk_score={result.risk_score:.4f} ({result.classification})"
        )
        return result

    def predict_batch(self, records: List[Dict[str, Any]]) -> List[PredictionResult]:
        """Score several records; the first invalid record fails the batch."""
        if not records:
            return []
        results = self._score(records)
        n_high = sum(r.classification == HIGH_RISK for r in results)
        logger.info(f"Scored {len(results)} records ({n_high} high risk)")
        return results


def predict_stroke_risk(
    record: Dict[str, Any],
    model_path: Union[str, Path] = "models/stroke_model.joblib"
) -> Dict[str, Any]:
    """
    Score one patient record from the saved model artifact.

    Args:
        record: Patient fields (see FEATURE_COLUMNS)
        model_path: Path to the trained model

    Returns:
        Dictionary with risk_score, classification and probabilities
    """
    predictor = StrokePredictor.from_path(str(model_path))
    return predictor.predict(record).to_dict()


def generate_model_report(
    model: StrokeRiskModel,
    metrics: Optional[Dict[str, Any]] = None,
    output_path: Optional[str] = None
) -> str:
    """
    Write the model documentation as Markdown.

    Lists the required input fields, the output schema and the performance
    metrics of the trained model.

    Args:
        model: Trained model
        metrics: Metrics dictionary from evaluate_model (optional)
        output_path: Where to save the report (optional)

    Returns:
        Report text
    """
    info = model.training_info
    lines = [
        "# Stroke Risk Model",
        "",
        f"Generated at: {datetime.now().isoformat(timespec='seconds')}",
        f"Trained at: {info.get('trained_at', 'N/A')}",
        "",
        "## Required input fields",
        "",
        "| Field | Type | Allowed values |",
        "|-------|------|----------------|",
    ]

    for col in FEATURE_COLUMNS:
        if col in NUMERIC_COLUMNS:
            lines.append(f"| `{col}` | number | finite, >= 0 |")
        elif col in BINARY_COLUMNS:
            lines.append(f"| `{col}` | integer | 0, 1 |")
        else:
            levels = ", ".join(model.known_categories_.get(col, []))
            lines.append(f"| `{col}` | string | {levels} |")

    lines += [
        "",
        "## Output schema",
        "",
        "| Field | Type | Description |",
        "|-------|------|-------------|",
        "| `risk_score` | float in [0, 1] | Predicted probability of stroke |",
        f"| `classification` | string | `{HIGH_RISK}` if risk_score > {RISK_THRESHOLD}, "
        f"else `{LOW_RISK}` |",
        "| `probabilities` | object | `no_stroke` and `stroke` probabilities (sum to 1) |",
        "",
        "## Model",
        "",
        "RandomForestClassifier with minority-class random oversampling, "
        f"tuned by {info.get('cv_folds', model.cv_folds)}-fold stratified CV on "
        f"{info.get('scoring', model.scoring)}.",
        "",
    ]
    for name, value in model.best_params_.items():
        lines.append(f"- `{name}`: {value}")
    if 'cv_best_score' in info:
        lines.append(f"- CV {info['scoring']}: {info['cv_best_score']:.4f} "
                     f"(± {info['cv_score_std']:.4f})")

    if metrics:
        cm = metrics['confusion_matrix']
        lines += [
            "",
            "## Performance (held-out test set)",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| ROC-AUC | {metrics['roc_auc']:.4f} |",
            f"| Sensitivity | {metrics['sensitivity']:.4f} |",
            f"| Specificity | {metrics['specificity']:.4f} |",
            f"| Precision | {metrics['precision']:.4f} |",
            f"| F1 | {metrics['f1']:.4f} |",
            f"| Accuracy | {metrics['accuracy']:.4f} |",
            "",
            f"Confusion matrix at threshold {metrics['threshold']:.2f}: "
            f"TN={cm['tn']}, FP={cm['fp']}, FN={cm['fn']}, TP={cm['tp']}",
        ]
        if 'youden' in metrics:
            youden = metrics['youden']
            lines.append(
                f"Youden's J optimal threshold: {youden['threshold']:.4f} "
                f"(J={youden['j_statistic']:.4f})"
            )

    report = "\n".join(lines) + "\n"

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report)
        logger.info(f"Model report saved to {output_path}")

    return report


def print_prediction_result(record: Dict[str, Any], result: PredictionResult) -> None:
    """
    Print a formatted prediction to console.

    Args:
        record: The scored input record
        result: PredictionResult from StrokePredictor.predict
    """
    print("\n" + "=" * 50)
    print("STROKE RISK PREDICTION")
    print("=" * 50)
    for col in FEATURE_COLUMNS:
        print(f"  {col:<20} {record.get(col)}")
    print("-" * 50)
    print(f"Risk score: {result.risk_score:.4f}")
    print(f"Classification: {result.classification}")
    print(f"P(no stroke) = {result.probabilities['no_stroke']:.4f}, "
          f"P(stroke) = {result.probabilities['stroke']:.4f}")
    print("=" * 50 + "\n")
