"""Data models for requests, results and request metrics."""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RequestMetrics(BaseModel):
    """Timing and outcome of a single model backend call."""
    model_config = ConfigDict(frozen=True)

    request_id: str
    prompt: str
    model: str
    request_timestamp: datetime
    response_timestamp: datetime
    api_call_duration: timedelta | None = None
    total_processing_duration: timedelta
    response_length: int = 0
    success: bool = True
    error_message: str | None = None

    @model_validator(mode="after")
    def _error_matches_outcome(self) -> "RequestMetrics":
        if self.success and self.error_message is not None:
            raise ValueError("successful request cannot carry an error message")
        if not self.success and not self.error_message:
            raise ValueError("failed request requires an error message")
        return self


class Completion(BaseModel):
    """Raw model text plus the metrics key it was recorded under."""
    text: str
    request_id: str
    success: bool


class Sentiment(str, Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    MIXED = "MIXED"
    ERROR = "ERROR"


class SentimentRequest(BaseModel):
    """Text to classify, with optional context and source labels."""
    text: str
    context: str | None = None
    source: str | None = None


class SentimentResult(BaseModel):
    """Sentiment classification of one text."""
    sentiment: Sentiment = Sentiment.NEUTRAL
    score: float = Field(default=0.0, ge=-1.0, le=1.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    dominant_emotions: list[str] = Field(default_factory=list)
    key_phrases: list[str] = Field(default_factory=list)
    insights: str = ""
    original_text: str = ""
    request_id: str = ""
    processing_time_ms: int = 0


class ChatMessage(BaseModel):
    """One turn of a conversation."""
    role: str
    content: str
    timestamp: str | None = None


class ChatAnalysisRequest(BaseModel):
    """Conversation to analyze."""
    messages: list[ChatMessage]
    context: str | None = None
    user_id: str | None = None


class MessageAnalytics(BaseModel):
    """Per-message analytics inside a conversation."""
    sentiment: SentimentResult
    topics: list[str] = Field(default_factory=list)
    intent: str = ""
    importance: int = Field(default=5, ge=1, le=10)
    contains_question: bool = False


class ChatAnalysisResult(BaseModel):
    """Conversation-level analysis plus per-message analytics."""
    overall_sentiment: SentimentResult | None = None
    main_topics: list[str] = Field(default_factory=list)
    user_intents: list[str] = Field(default_factory=list)
    key_questions: list[str] = Field(default_factory=list)
    identified_issues: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    conversation_summary: str = ""
    message_analytics: dict[int, MessageAnalytics] = Field(default_factory=dict)
    request_id: str = ""
    processing_time_ms: int = 0


class ReportRequest(BaseModel):
    """Base report request, also used as the generic report shape."""
    report_type: str = "generic"
    title: str = ""
    start_date: date | None = None
    end_date: date | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)
    context: str | None = None
    tags: list[str] = Field(default_factory=list)


class EngagementMetricsRequest(ReportRequest):
    """Engagement metrics report over a period."""
    report_type: Literal["engagement_metrics"] = "engagement_metrics"
    metrics_to_include: list[str] = Field(default_factory=list)
    breakdown_categories: dict[str, list[str]] = Field(default_factory=dict)
    audience: str | None = None
    channels: list[str] = Field(default_factory=list)
    include_sentiment_analysis: bool = False


class PostEventReportRequest(ReportRequest):
    """Report summarizing a finished event."""
    report_type: Literal["post_event"] = "post_event"
    event_type: str | None = None
    location: str | None = None
    event_date_time: datetime | None = None
    participant_count: int | None = None
    sponsors: list[str] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)
    participant_feedback: list[str] = Field(default_factory=list)
    kpis: dict[str, Any] = Field(default_factory=dict)
    include_recommendations: bool = False


class DailyMonitoringReportRequest(ReportRequest):
    """Daily monitoring report against targets and the previous period."""
    report_type: Literal["daily_monitoring"] = "daily_monitoring"
    metrics_to_track: list[str] = Field(default_factory=list)
    current_metrics: dict[str, Any] = Field(default_factory=dict)
    previous_period_metrics: dict[str, Any] = Field(default_factory=dict)
    target_metrics: dict[str, Any] = Field(default_factory=dict)
    notable_events: list[str] = Field(default_factory=list)
    time_interval: str | None = None
    highlight_trends: bool = False
    include_alerts: bool = False
    alert_thresholds: dict[str, Any] = Field(default_factory=dict)


REPORT_VARIANTS: dict[str, type[ReportRequest]] = {
    "engagement_metrics": EngagementMetricsRequest,
    "post_event": PostEventReportRequest,
    "daily_monitoring": DailyMonitoringReportRequest,
}


def parse_report_request(payload: dict[str, Any]) -> ReportRequest:
    """Validate a raw report request, picking the model from its report_type tag."""
    model = REPORT_VARIANTS.get(payload.get("report_type"), ReportRequest)
    return model.model_validate(payload)


class ReportSection(BaseModel):
    """Report section; subsections nest to any depth."""
    title: str = ""
    content: str = ""
    subsections: list["ReportSection"] = Field(default_factory=list)


class VisualElement(BaseModel):
    """Chart or table the report suggests rendering."""
    type: str = "chart"
    title: str = ""
    description: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class ReportResponse(BaseModel):
    """Generated report."""
    report_id: str
    report_type: str
    title: str
    generated_at: datetime
    executive_summary: str = ""
    key_findings: list[str] = Field(default_factory=list)
    sections: list[ReportSection] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    metrics_data: dict[str, Any] = Field(default_factory=dict)
    visual_elements: list[VisualElement] = Field(default_factory=list)
    processing_time_ms: int = 0
