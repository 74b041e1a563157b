"""
Diagnosis extraction: turns a raw Gemini reply into a DiagnosisRecord.

The reply is untrusted free text. Anything the model leaves out or gets the
wrong shape falls back to the field's zero value; only a missing or
unparseable JSON object fails extraction.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Union

from .json_utils import extract_json
from .models import CareGuide, DiagnosisRecord, Treatment

logger = logging.getLogger(__name__)

NOT_A_LEAF_MESSAGE = "Not a plant leaf image"

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")


@dataclass(frozen=True)
class Rejection:
    """Analysis succeeded but the image is not a plant leaf."""
    message: str = NOT_A_LEAF_MESSAGE


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value).strip()


def _as_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    return [text for text in (_as_text(item) for item in items) if text]


def _as_percent(value: Any) -> float:
    """Read a 0-100 figure from a number or text like "85%", clamped."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if not match:
            return 0
        number = float(match.group())
    else:
        return 0
    if number != number:  # NaN
        return 0
    return min(max(number, 0), 100)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _build_record(data: dict) -> DiagnosisRecord:
    treatment = _as_dict(data.get("treatment"))
    care = _as_dict(data.get("careGuide"))

    return DiagnosisRecord(
        is_plant_leaf=True,
        plant_name=_as_text(data.get("plantName")),
        scientific_name=_as_text(data.get("scientificName")),
        family=_as_text(data.get("family")),
        confidence=_as_percent(data.get("confidence")),
        health_score=_as_percent(data.get("healthScore")),
        risk_level=_as_text(data.get("riskLevel")),
        disease=_as_text(data.get("disease")),
        severity=_as_text(data.get("severity")),
        affected_parts=_as_text_list(data.get("affectedParts")),
        disease_duration=_as_text(data.get("diseaseDuration")),
        symptoms=_as_text_list(data.get("symptoms")),
        treatment=Treatment(
            immediate=_as_text_list(treatment.get("immediate")),
            remedies=_as_text_list(treatment.get("remedies")),
            duration=_as_text(treatment.get("duration")),
            success_rate=_as_percent(treatment.get("successRate")),
        ),
        care_guide=CareGuide(
            watering=_as_text(care.get("watering")),
            sunlight=_as_text(care.get("sunlight")),
            soil=_as_text(care.get("soil")),
            fertilizer=_as_text(care.get("fertilizer")),
            temperature=_as_text(care.get("temperature")),
        ),
        prevention_tips=_as_text_list(data.get("preventionTips")),
        notes=_as_text(data.get("notes")),
    )


def decode_diagnosis(data: dict) -> Union[DiagnosisRecord, Rejection]:
    """Apply the diagnosis schema to an already-parsed JSON object.

    Only a literal boolean true in isPlantLeaf yields a record. A missing or
    non-boolean flag is read as false, so the result is a Rejection.
    """
    flag = data.get("isPlantLeaf")
    if not isinstance(flag, bool):
        logger.warning(f"isPlantLeaf missing or not boolean ({flag!r}); treating as not a leaf")
        return Rejection()
    if not flag:
        return Rejection()
    return _build_record(data)


def extract_diagnosis(raw_text: str) -> Union[DiagnosisRecord, Rejection]:
    """Extract a diagnosis from raw model text.

    Raises:
        NoJsonFound: the text holds no {...} span.
        MalformedJson: the span does not parse.
    """
    return decode_diagnosis(extract_json(raw_text))
