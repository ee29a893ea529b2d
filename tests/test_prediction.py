"""
Test Suite for Prediction Module
================================

Tests for record validation, scoring and the model report.
"""

import pytest
import numpy as np
from pydantic import ValidationError as PydanticValidationError

from stroke_risk.data_loader import FEATURE_COLUMNS
from stroke_risk.exceptions import ValidationError
from stroke_risk.prediction import (
    HIGH_RISK,
    LOW_RISK,
    PatientRecord,
    PredictionResult,
    StrokePredictor,
    classify_risk,
    generate_model_report,
    predict_stroke_risk,
)


@pytest.fixture
def predictor(trained_model):
    return StrokePredictor(trained_model)


class TestClassifyRisk:

    @pytest.mark.parametrize("score, expected", [
        (0.0, LOW_RISK),
        (0.5, LOW_RISK),
        (0.5000001, HIGH_RISK),
        (1.0, HIGH_RISK),
    ])
    def test_threshold_is_strict(self, score, expected):
        assert classify_risk(score) == expected


class TestPredict:
    """Tests for scoring valid records."""

    def test_example_record(self, predictor, example_record):
        result = predictor.predict(example_record)

        assert isinstance(result, PredictionResult)
        assert 0.0 <= result.risk_score <= 1.0
        assert result.classification == (HIGH_RISK if result.risk_score > 0.5 else LOW_RISK)
        assert result.probabilities['stroke'] == result.risk_score
        assert result.probabilities['no_stroke'] + result.risk_score == pytest.approx(1.0)

    def test_classification_consistent_across_records(self, predictor, split_data):
        _, X_test, _, _ = split_data
        records = X_test.iloc[:40][
            ['age', 'gender', 'hypertension', 'heart_disease', 'ever_married',
             'work_type', 'Residence_type', 'avg_glucose_level', 'bmi', 'smoking_status']
        ].to_dict(orient='records')

        for result in predictor.predict_batch(records):
            assert (result.classification == HIGH_RISK) == (result.risk_score > 0.5)

    def test_batch_matches_single(self, predictor, example_record):
        other = dict(example_record, age=30, hypertension=0, smoking_status='never smoked')

        batch = predictor.predict_batch([example_record, other])

        assert batch[0] == predictor.predict(example_record)
        assert batch[1] == predictor.predict(other)

    def test_empty_batch(self, predictor):
        assert predictor.predict_batch([]) == []

    def test_string_numbers_accepted(self, predictor, example_record):
        as_strings = dict(example_record, age="65", bmi="28.0", hypertension="1")

        assert predictor.predict(as_strings) == predictor.predict(example_record)

    def test_label_is_ignored(self, predictor, example_record):
        with_label = dict(example_record, stroke=1)
        assert predictor.predict(with_label) == predictor.predict(example_record)

    def test_to_dict(self, predictor, example_record):
        payload = predictor.predict(example_record).to_dict()
        assert set(payload) == {'risk_score', 'classification', 'probabilities'}


class TestValidation:
    """Invalid records raise ValidationError, never a silent default."""

    def test_unknown_category(self, predictor, example_record):
        with pytest.raises(ValidationError, match="gender"):
            predictor.predict(dict(example_record, gender='Other'))

    def test_missing_field(self, predictor, example_record):
        record = dict(example_record)
        del record['smoking_status']

        with pytest.raises(ValidationError, match="smoking_status"):
            predictor.predict(record)

    @pytest.mark.parametrize("value", [None, np.nan, "", "N/A"])
    def test_null_bmi(self, predictor, example_record, value):
        with pytest.raises(ValidationError, match="bmi"):
            predictor.predict(dict(example_record, bmi=value))

    def test_non_numeric_age(self, predictor, example_record):
        with pytest.raises(ValidationError, match="age"):
            predictor.predict(dict(example_record, age="sixty"))

    def test_negative_glucose(self, predictor, example_record):
        with pytest.raises(ValidationError, match="avg_glucose_level"):
            predictor.predict(dict(example_record, avg_glucose_level=-5))

    def test_flag_out_of_range(self, predictor, example_record):
        with pytest.raises(ValidationError, match="hypertension"):
            predictor.predict(dict(example_record, hypertension=2))

    def test_not_a_mapping(self, predictor):
        with pytest.raises(ValidationError, match="mapping"):
            predictor.predict(["Male", 65])

    def test_invalid_record_fails_batch(self, predictor, example_record):
        with pytest.raises(ValidationError):
            predictor.predict_batch([example_record, dict(example_record, work_type='Astronaut')])

    def test_boolean_age(self, predictor, example_record):
        with pytest.raises(ValidationError, match="age"):
            predictor.predict(dict(example_record, age=True))

    def test_infinite_glucose(self, predictor, example_record):
        with pytest.raises(ValidationError, match="avg_glucose_level"):
            predictor.predict(dict(example_record, avg_glucose_level=float("inf")))

    def test_every_bad_field_is_reported(self, predictor, example_record):
        record = dict(example_record, bmi=None, heart_disease=3)

        with pytest.raises(ValidationError) as excinfo:
            predictor.predict(record)

        assert "bmi" in str(excinfo.value)
        assert "heart_disease" in str(excinfo.value)

    def test_normalised_fields(self, predictor, example_record):
        record = dict(example_record, age="65", hypertension=1.0, gender=" Male ", stroke=1)

        clean = predictor.validate_record(record)

        assert set(clean) == set(FEATURE_COLUMNS)
        assert clean["age"] == 65.0
        assert clean["hypertension"] == 1
        assert clean["gender"] == "Male"


class TestPatientRecord:
    """Schema checks that do not depend on a trained model."""

    def test_levels_unchecked_without_context(self, example_record):
        patient = PatientRecord.model_validate(dict(example_record, gender="Other"))
        assert patient.gender == "Other"

    def test_levels_checked_with_context(self, example_record):
        with pytest.raises(PydanticValidationError):
            PatientRecord.model_validate(
                dict(example_record, gender="Other"),
                context={"known_categories": {"gender": ["Female", "Male"]}},
            )

    def test_result_schema(self):
        result = PredictionResult(
            risk_score=0.7,
            classification=HIGH_RISK,
            probabilities={"no_stroke": 0.3, "stroke": 0.7},
        )
        assert result.to_dict()["risk_score"] == 0.7

        with pytest.raises(PydanticValidationError):
            PredictionResult(risk_score=1.5, classification=HIGH_RISK)


class TestLoading:
    """Tests for loading the predictor from a saved artifact."""

    def test_from_path_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Run the training phase"):
            StrokePredictor.from_path(str(tmp_path / "missing.joblib"))

    def test_wrapper_function(self, trained_model, example_record, tmp_path):
        path = tmp_path / "stroke_model.joblib"
        trained_model.save(str(path))

        result = predict_stroke_risk(example_record, model_path=path)

        expected = StrokePredictor(trained_model).predict(example_record)
        assert result['risk_score'] == pytest.approx(expected.risk_score)
        assert result['classification'] == expected.classification

    def test_untrained_model_rejected(self):
        from stroke_risk.model import StrokeRiskModel
        with pytest.raises(ValueError, match="trained model"):
            StrokePredictor(StrokeRiskModel())


class TestModelReport:

    def test_report_lists_fields_schema_and_metrics(self, trained_model, split_data, tmp_path):
        from stroke_risk.evaluation import evaluate_model
        _, X_test, _, y_test = split_data
        metrics = evaluate_model(trained_model, X_test, y_test, output_dir=str(tmp_path))['metrics']
        path = tmp_path / "model_report.md"

        text = generate_model_report(trained_model, metrics, output_path=str(path))

        assert path.read_text() == text
        for field in ['age', 'gender', 'Residence_type', 'smoking_status', 'bmi']:
            assert f"`{field}`" in text
        assert "`risk_score`" in text
        assert "`classification`" in text
        assert "ROC-AUC" in text
        assert "Youden" in text

    def test_report_without_metrics(self, trained_model):
        text = generate_model_report(trained_model)

        assert "Required input fields" in text
        assert "Performance" not in text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
