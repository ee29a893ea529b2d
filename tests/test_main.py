"""
Test Suite for the Pipeline Entry Point
=======================================

Tests for the prediction phase and command-line error handling.
"""

import sys

import pytest
import yaml

import main
from stroke_risk.exceptions import ValidationError


@pytest.fixture
def saved_model_config(trained_model, tmp_path):
    model_path = tmp_path / "stroke_model.joblib"
    trained_model.save(str(model_path))
    return {'output': {'model_path': str(model_path)}}


class TestRunPrediction:

    def test_default_record_is_scored(self, saved_model_config):
        result = main.run_prediction(saved_model_config)

        assert set(result) == {'risk_score', 'classification', 'probabilities'}

    def test_empty_record_is_rejected(self, saved_model_config):
        with pytest.raises(ValidationError, match="age"):
            main.run_prediction(saved_model_config, {})


class TestMainArguments:

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'logging': {'level': 'INFO'}}))
        return path

    def test_missing_record_file(self, config_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(sys, 'argv', [
            'main.py', '--phase', 'predict', '--config', str(config_file),
            '--record', str(tmp_path / "absent.json"),
        ])

        assert main.main() == 1

    def test_malformed_record_file(self, config_file, tmp_path, monkeypatch):
        record_file = tmp_path / "record.json"
        record_file.write_text("{not json")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(sys, 'argv', [
            'main.py', '--phase', 'predict', '--config', str(config_file),
            '--record', str(record_file),
        ])

        assert main.main() == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
