"""
Unit tests for parsing the diagnosis model's answer.
"""

from __future__ import annotations

import pytest

from media.diagnosis import DiagnosisError, DiagnosisGenerator, extract_diagnosis

ANSWER = """```json
{
  "species": "dog",
  "wound_description": "Deep cut on the front paw",
  "severity_1_10": 7,
  "urgency": "High",
  "care_instructions": "Apply gentle pressure with a clean cloth."
}
```"""


class TestExtractDiagnosis:

    def test_parses_fenced_json(self):
        assert extract_diagnosis(ANSWER) == {
            "species": "dog",
            "wound_description": "Deep cut on the front paw",
            "severity_1_10": 7,
            "urgency": "high",
            "care_instructions": "Apply gentle pressure with a clean cloth.",
        }

    def test_clamps_severity(self):
        text = ANSWER.replace('"severity_1_10": 7', '"severity_1_10": 14')
        assert extract_diagnosis(text)["severity_1_10"] == 10

    def test_unknown_urgency_falls_back_to_medium(self):
        text = ANSWER.replace('"High"', '"whenever"')
        assert extract_diagnosis(text)["urgency"] == "medium"

    @pytest.mark.parametrize("text", [
        "",
        "I cannot help with that.",
        "{not json}",
        '{"species": "cat"}',
        ANSWER.replace('"severity_1_10": 7', '"severity_1_10": "very"'),
    ])
    def test_unusable_answers(self, text):
        with pytest.raises(DiagnosisError):
            extract_diagnosis(text)


class TestDiagnosisGenerator:

    def test_missing_api_key(self, settings, monkeypatch):
        settings.GEMINI_API_KEY = ""
        monkeypatch.setattr(DiagnosisGenerator, "_configured", False)

        with pytest.raises(DiagnosisError):
            DiagnosisGenerator().analyze(b"webp")
