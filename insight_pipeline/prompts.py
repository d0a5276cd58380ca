"""Prompt templates and builders.

The field names listed at the end of each prompt are the keys the parsers
read; change them together.
"""
import json
from typing import Any

from .models import (
    ChatAnalysisRequest,
    DailyMonitoringReportRequest,
    EngagementMetricsRequest,
    PostEventReportRequest,
    ReportRequest,
    SentimentRequest,
)


SENTIMENT_PROMPT = """Analyze the sentiment of the following text. Respond with ONLY a JSON object containing sentiment analysis details.

Text to analyze: "{text}"

"""

SENTIMENT_FIELDS = """Remember to respond with ONLY a JSON object that has these exact fields:
- sentiment: overall sentiment (POSITIVE, NEGATIVE, NEUTRAL, or MIXED)
- score: a decimal score from -1.0 (extremely negative) to 1.0 (extremely positive)
- confidence: a decimal between 0.0 and 1.0 indicating your confidence
- dominant_emotions: array of emotions detected
- key_phrases: array of notable phrases
- insights: brief textual explanation"""


CHAT_PROMPT = """Analyze the following conversation. Respond with ONLY a JSON object containing chat analysis details.

Conversation to analyze:
{transcript}

"""

CHAT_FIELDS = """Remember to respond with ONLY a JSON object with these fields:
- main_topics: array of main topics discussed
- user_intents: array of identified user intentions
- key_questions: array of important questions asked
- identified_issues: array of issues or problems in the conversation
- action_items: array of action items extracted from the conversation
- conversation_summary: a concise summary of the conversation"""


REPORT_PREAMBLE = (
    "Generate {description} with the following specifications. "
    "Respond with ONLY a JSON object structured according to the format specified at the end.\n\n"
)

REPORT_FIELDS = """
Respond with ONLY a JSON object with these fields:
- executive_summary: {summary}
- key_findings: {findings}
- sections: Array of report sections, each with title, content, and optional subsections
- recommendations: {recommendations}
- metrics_data: {metrics}
- visual_elements: Descriptions of charts/graphs that should be included
"""


def _json(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def _bullets(lines: list[str], heading: str, items: list[str]) -> None:
    if items:
        lines.append(f"\n{heading}:")
        lines.extend(f"- {item}" for item in items)


def _structured(lines: list[str], heading: str, value) -> None:
    if value:
        lines.append(f"\n{heading}:")
        lines.append(_json(value))


def _tail(lines: list[str], request: ReportRequest, data_heading: str) -> None:
    _structured(lines, data_heading, request.data)
    if request.context:
        lines.append(f"\nAdditional context: {request.context}")


def _period(request: ReportRequest) -> str | None:
    if request.start_date and request.end_date:
        return f"{request.start_date} to {request.end_date}"
    return None


def build_sentiment_prompt(request: SentimentRequest) -> str:
    prompt = SENTIMENT_PROMPT.format(text=request.text)
    if request.context:
        prompt += f"Context: {request.context}\n\n"
    if request.source:
        prompt += f"Source: {request.source}\n\n"
    return prompt + SENTIMENT_FIELDS


def format_transcript(request: ChatAnalysisRequest) -> str:
    """Render messages as 'ROLE: content' blocks separated by blank lines."""
    return "".join(
        f"{message.role.upper()}: {message.content}\n\n" for message in request.messages
    )


def build_chat_prompt(request: ChatAnalysisRequest) -> str:
    prompt = CHAT_PROMPT.format(transcript=format_transcript(request))
    if request.context:
        prompt += f"Conversation context: {request.context}\n\n"
    return prompt + CHAT_FIELDS


def build_engagement_metrics_prompt(request: EngagementMetricsRequest) -> str:
    lines = [
        REPORT_PREAMBLE.format(description="a detailed engagement metrics report")
        + f"Report Title: {request.title}"
    ]
    period = _period(request)
    if period:
        lines.append(f"Time Period: {period}")
    if request.audience:
        lines.append(f"Target Audience: {request.audience}")

    _bullets(lines, "Metrics to include", request.metrics_to_include)
    if request.breakdown_categories:
        lines.append("\nBreakdown categories:")
        lines.extend(
            f"- {category}: {', '.join(values)}"
            for category, values in request.breakdown_categories.items()
        )
    if request.channels:
        lines.append(f"\nEngagement channels: {', '.join(request.channels)}")
    if request.include_sentiment_analysis:
        lines.append("\nPlease include sentiment analysis of participant feedback.")

    _tail(lines, request, "Raw data for analysis")
    lines.append(REPORT_FIELDS.format(
        summary="A concise overview of the engagement metrics",
        findings="Array of the most important insights from the data",
        recommendations="Array of actionable recommendations based on the findings",
        metrics="Processed metrics data with calculated values",
    ))
    return "\n".join(lines)


def build_post_event_prompt(request: PostEventReportRequest) -> str:
    lines = [
        REPORT_PREAMBLE.format(description="a comprehensive post-event report")
        + f"Event Title: {request.title}"
    ]
    if request.event_type:
        lines.append(f"Event Type: {request.event_type}")
    if request.event_date_time:
        lines.append(f"Date: {request.event_date_time.isoformat()}")
    if request.location:
        lines.append(f"Location: {request.location}")
    if request.participant_count is not None:
        lines.append(f"Participants: {request.participant_count}")

    if request.sponsors:
        lines.append(f"\nSponsors: {', '.join(request.sponsors)}")
    _bullets(lines, "Activities/Sessions", request.activities)
    _structured(lines, "Key Performance Indicators", request.kpis)
    _bullets(lines, "Participant Feedback", request.participant_feedback)
    if request.include_recommendations:
        lines.append("\nPlease include recommendations for future events.")

    _tail(lines, request, "Additional data for analysis")
    lines.append(REPORT_FIELDS.format(
        summary="A concise overview of the event's success and outcomes",
        findings="Array of the most important insights from the event",
        recommendations="Array of suggestions for future events",
        metrics="Key metrics and their values",
    ))
    return "\n".join(lines)


def build_daily_monitoring_prompt(request: DailyMonitoringReportRequest) -> str:
    lines = [
        REPORT_PREAMBLE.format(description="a daily monitoring report")
        + f"Report Title: {request.title}"
    ]
    if request.start_date:
        lines.append(f"Date: {request.start_date}")
    if request.time_interval:
        lines.append(f"Time Interval: {request.time_interval}")

    _bullets(lines, "Metrics to track", request.metrics_to_track)
    _structured(lines, "Current metrics", request.current_metrics)
    _structured(lines, "Previous period metrics (for comparison)", request.previous_period_metrics)
    _structured(lines, "Target metrics", request.target_metrics)
    _bullets(lines, "Notable events", request.notable_events)
    if request.highlight_trends:
        lines.append("\nPlease highlight significant trends in the data.")
    if request.include_alerts:
        lines.append("\nPlease include alerts for metrics outside expected ranges.")
        if request.alert_thresholds:
            lines.append("Alert thresholds:")
            lines.append(_json(request.alert_thresholds))

    _tail(lines, request, "Additional data for analysis")
    lines.append(REPORT_FIELDS.format(
        summary="A concise overview of the day's performance",
        findings="Array of the most important insights from the data",
        recommendations="Array of actionable recommendations",
        metrics="Key metrics and their values, with comparisons to targets and previous periods",
    ))
    return "\n".join(lines)


def build_generic_report_prompt(request: ReportRequest) -> str:
    lines = [
        REPORT_PREAMBLE.format(description=f"a {request.report_type} report")
        + f"Report Title: {request.title}"
    ]
    period = _period(request)
    if period:
        lines.append(f"Time Period: {period}")
    if request.tags:
        lines.append(f"\nTags: {', '.join(request.tags)}")

    _tail(lines, request, "Data for analysis")
    lines.append(REPORT_FIELDS.format(
        summary="A concise overview of the report findings",
        findings="Array of the most important insights",
        recommendations="Array of actionable recommendations",
        metrics="Any relevant metrics and their values",
    ))
    return "\n".join(lines)
