"""Tolerant parsing of model JSON into typed results.

Only invalid JSON (or a top level that is not an object) fails a parse.
Every other deviation leaves the affected field at its default: empty
list, empty string, empty dict or zero.
"""
import json
import math
from typing import Any

from .models import (
    ReportResponse,
    ReportSection,
    Sentiment,
    SentimentResult,
    VisualElement,
)


class ResponseParseError(ValueError):
    """Model output could not be read as a JSON object."""


# Keys tried, in order, when a list item or text field arrives as an object.
_TEXT_KEYS = ("text", "name", "description", "value", "summary")

CHAT_LIST_FIELDS = (
    "main_topics",
    "user_intents",
    "key_questions",
    "identified_issues",
    "action_items",
)


def load_json_object(candidate: str) -> dict[str, Any]:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in model response: {e}") from e
    if not isinstance(data, dict):
        raise ResponseParseError(
            f"Expected a JSON object in model response, got {type(data).__name__}"
        )
    return data


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        for key in _TEXT_KEYS:
            if isinstance(value.get(key), str):
                return value[key]
    return ""


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    texts = []
    for item in value:
        if isinstance(item, str):
            texts.append(item)
            continue
        text = _text(item)
        if text:
            texts.append(text)
    return texts


def _number(value: Any, low: float, high: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0.0
    try:
        number = float(value)
    except ValueError:
        return 0.0
    except OverflowError:
        # Integers beyond float range saturate at the nearest bound.
        return high if value > 0 else low
    if math.isnan(number):
        return 0.0
    return min(max(number, low), high)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _label(value: Any) -> Sentiment:
    label = _text(value).strip().upper()
    if label in (Sentiment.POSITIVE, Sentiment.NEGATIVE, Sentiment.NEUTRAL, Sentiment.MIXED):
        return Sentiment(label)
    return Sentiment.NEUTRAL


def parse_sentiment(candidate: str, original_text: str = "") -> SentimentResult:
    """Map a sentiment JSON object onto a SentimentResult."""
    data = load_json_object(candidate)
    return SentimentResult(
        sentiment=_label(data.get("sentiment")),
        score=_number(data.get("score"), -1.0, 1.0),
        confidence=_number(data.get("confidence"), 0.0, 1.0),
        dominant_emotions=_text_list(data.get("dominant_emotions")),
        key_phrases=_text_list(data.get("key_phrases")),
        insights=_text(data.get("insights")),
        original_text=original_text,
    )


def parse_chat_analysis(candidate: str) -> dict[str, Any]:
    """Return the conversation-level fields of a chat analysis.

    The caller merges these into a ChatAnalysisResult together with the
    sentiment calls it makes separately.
    """
    data = load_json_object(candidate)
    fields: dict[str, Any] = {name: _text_list(data.get(name)) for name in CHAT_LIST_FIELDS}
    fields["conversation_summary"] = _text(data.get("conversation_summary"))
    return fields


def _section(value: Any) -> ReportSection | None:
    if not isinstance(value, dict):
        return None
    return ReportSection(
        title=_text(value.get("title")),
        content=_text(value.get("content")),
        subsections=_sections(value.get("subsections")),
    )


def _sections(value: Any) -> list[ReportSection]:
    if not isinstance(value, list):
        return []
    return [section for section in (_section(item) for item in value) if section is not None]


def _visual(value: Any) -> VisualElement | None:
    if not isinstance(value, dict):
        return None
    return VisualElement(
        type=_text(value.get("type")) or "chart",
        title=_text(value.get("title")),
        description=_text(value.get("description")),
        data=_mapping(value.get("data")),
    )


def parse_report(
    candidate: str,
    *,
    report_id: str,
    report_type: str,
    title: str,
    generated_at,
) -> ReportResponse:
    """Map a report JSON object onto a ReportResponse.

    Identity fields come from the caller, never from the model output.
    """
    data = load_json_object(candidate)
    visuals = data.get("visual_elements")
    return ReportResponse(
        report_id=report_id,
        report_type=report_type,
        title=title,
        generated_at=generated_at,
        executive_summary=_text(data.get("executive_summary")),
        key_findings=_text_list(data.get("key_findings")),
        sections=_sections(data.get("sections")),
        recommendations=_text_list(data.get("recommendations")),
        metrics_data=_mapping(data.get("metrics_data")),
        visual_elements=[
            visual
            for visual in (_visual(item) for item in (visuals if isinstance(visuals, list) else []))
            if visual is not None
        ],
    )
