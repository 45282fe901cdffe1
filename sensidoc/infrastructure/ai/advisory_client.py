import json
import logging
import re
from typing import Any, Dict, Optional

from ...application.ports.ai_provider import AIProvider

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

DIAGNOSIS_PROMPT = """
As a medical AI assistant, analyze the following symptoms and provide a preliminary diagnosis.

Symptoms: {symptoms}
{image_line}

Please provide a response in the following JSON format:
{{
  "condition": "Most likely condition name",
  "confidence_level": 85,
  "description": "Detailed description of the condition",
  "symptoms": ["symptom1", "symptom2", "symptom3"],
  "recommendations": ["recommendation1", "recommendation2"],
  "severity": "mild/moderate/severe",
  "when_to_consult": "When to see a doctor"
}}

Important: This is for informational purposes only and should not replace professional medical advice.
"""

DRUG_BY_NAME_PROMPT = """
Provide detailed information about the medication: {drug_name}

Please provide a response in the following JSON format:
{schema}
"""

DRUG_BY_IMAGE_PROMPT = """
Analyze the medication in this image: {image_ref}

Identify the medication and provide detailed information in the following JSON format:
{schema}

If you cannot clearly identify the medication, please indicate so in the response.
"""

DRUG_SCHEMA = """{
  "drug_name": "Brand name",
  "generic_name": "Generic name",
  "uses": ["use1", "use2", "use3"],
  "dosage": "Typical dosage information",
  "side_effects": ["side_effect1", "side_effect2"],
  "warnings": ["warning1", "warning2"],
  "interactions": ["interaction1", "interaction2"],
  "contraindications": ["contraindication1", "contraindication2"]
}"""


def fallback_diagnosis(symptoms: str, raw_text: str) -> Dict[str, Any]:
    return {
        "condition": "General Health Concern",
        "confidence_level": 70,
        "description": raw_text,
        "symptoms": [s.strip() for s in symptoms.split(",") if s.strip()],
        "recommendations": [
            "Monitor symptoms closely",
            "Stay hydrated and get adequate rest",
            "Consult a healthcare provider if symptoms persist",
        ],
        "severity": "moderate",
        "when_to_consult": "If symptoms worsen or persist for more than 48 hours",
        "fallback": True,
    }


def fallback_drug_analysis(drug_name: Optional[str]) -> Dict[str, Any]:
    return {
        "drug_name": drug_name or "Unknown Medication",
        "generic_name": "Not identified",
        "uses": ["Information not available"],
        "dosage": "Consult healthcare provider",
        "side_effects": ["Consult healthcare provider for side effects"],
        "warnings": ["Always consult healthcare provider before taking any medication"],
        "interactions": ["Check with pharmacist for drug interactions"],
        "contraindications": ["Consult healthcare provider"],
        "fallback": True,
    }


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """First ``{...}`` span of a model reply, or None when it does not decode to an object."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class AdvisoryClient:
    """Turns free text into structured diagnosis / drug results via an AIProvider.

    Provider errors propagate untouched. An unparsable reply is replaced by a
    generic fallback result.
    """

    def __init__(self, provider: AIProvider) -> None:
        self.provider = provider

    def diagnose(self, symptoms: str, image_ref: Optional[str] = None) -> Dict[str, Any]:
        prompt = DIAGNOSIS_PROMPT.format(
            symptoms=symptoms,
            image_line=f"Image provided: {image_ref}" if image_ref else "",
        )
        text = self.provider.generate_text(prompt)
        parsed = extract_json(text)
        if parsed is None:
            logger.warning("Diagnosis reply was not valid JSON, using fallback result")
            return fallback_diagnosis(symptoms, text)
        return parsed

    def analyze_drug(self, drug_name: Optional[str] = None, image_ref: Optional[str] = None) -> Dict[str, Any]:
        if drug_name:
            prompt = DRUG_BY_NAME_PROMPT.format(drug_name=drug_name, schema=DRUG_SCHEMA)
        else:
            prompt = DRUG_BY_IMAGE_PROMPT.format(image_ref=image_ref, schema=DRUG_SCHEMA)
        text = self.provider.generate_text(prompt)
        parsed = extract_json(text)
        if parsed is None:
            logger.warning("Drug analysis reply was not valid JSON, using fallback result")
            return fallback_drug_analysis(drug_name)
        return parsed
