"""
AI wound diagnosis via Gemini (``google-generativeai``).

Best effort only: nothing on the claim or transition path calls this.
"""

from __future__ import annotations

import json
import logging
import re
import threading

import google.generativeai as genai
from django.conf import settings
from google.api_core.exceptions import GoogleAPIError

logger = logging.getLogger(__name__)

DIAGNOSIS_FIELDS = ("species", "wound_description", "severity_1_10", "urgency", "care_instructions")
URGENCY_LEVELS = ("low", "medium", "high", "critical")

PROMPT_TEMPLATE = """Analyze this image of an animal that appears to be injured or in distress.

User Description: {description}

Provide a structured JSON response with the following fields:
1. species: The likely species of the animal.
2. wound_description: A concise medical-style description of the observed injuries.
3. severity_1_10: An integer from 1 to 10.
4. urgency: One of 'low', 'medium', 'high', 'critical'.
5. care_instructions: Brief, safe first-aid instructions for a non-expert bystander.

Return ONLY the JSON object."""


class DiagnosisError(Exception):
    """The model could not be reached or returned an unusable answer."""


def extract_diagnosis(text: str) -> dict:
    """
    Parse the first ``{...}`` block of a model answer into a diagnosis.

    Raises:
        DiagnosisError: If no valid JSON object with the expected fields is found.
    """
    match = re.search(r"\{[\s\S]*\}", text or "")
    if match is None:
        raise DiagnosisError("Model answer contained no JSON object.")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise DiagnosisError("Model answer was not valid JSON.") from exc
    if not isinstance(data, dict):
        raise DiagnosisError("Model answer was not a JSON object.")

    missing = [name for name in DIAGNOSIS_FIELDS if name not in data]
    if missing:
        raise DiagnosisError(f"Model answer is missing: {', '.join(missing)}.")

    try:
        severity = int(data["severity_1_10"])
    except (TypeError, ValueError) as exc:
        raise DiagnosisError("severity_1_10 is not an integer.") from exc
    urgency = str(data["urgency"]).lower()

    return {
        "species": str(data["species"]),
        "wound_description": str(data["wound_description"]),
        "severity_1_10": min(10, max(1, severity)),
        "urgency": urgency if urgency in URGENCY_LEVELS else "medium",
        "care_instructions": str(data["care_instructions"]),
    }


class DiagnosisGenerator:

    _configured = False
    _configure_lock = threading.Lock()

    def __init__(self, model_name: str | None = None):
        self.model_name = model_name or settings.GEMINI_MODEL

    @classmethod
    def _configure(cls) -> None:
        if cls._configured:
            return
        with cls._configure_lock:
            if not cls._configured:
                if not settings.GEMINI_API_KEY:
                    raise DiagnosisError("GEMINI_API_KEY is not configured.")
                genai.configure(api_key=settings.GEMINI_API_KEY)
                cls._configured = True

    def analyze(self, image: bytes, description: str | None = None) -> dict:
        """
        Diagnose the animal in ``image`` (WebP bytes).

        Raises:
            DiagnosisError: On any model or parsing failure.
        """
        self._configure()
        model = genai.GenerativeModel(model_name=self.model_name)
        prompt = PROMPT_TEMPLATE.format(description=description or "No description provided.")
        try:
            response = model.generate_content([
                prompt,
                {"mime_type": "image/webp", "data": image},
            ])
            text = response.text
        except (GoogleAPIError, ValueError) as exc:
            logger.warning("Gemini diagnosis failed: %s", exc)
            raise DiagnosisError(str(exc)) from exc
        return extract_diagnosis(text)
