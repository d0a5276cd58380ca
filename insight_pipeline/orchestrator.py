"""Analysis services: sentiment, chat analysis and report generation.

Every public operation returns a result model. Backend and parse failures
are caught here and encoded in the result (ERROR sentiment, error summary)
together with the elapsed processing time.
"""
import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from .client import ModelGateway, extract_json
from .models import (
    ChatAnalysisRequest,
    ChatAnalysisResult,
    DailyMonitoringReportRequest,
    EngagementMetricsRequest,
    MessageAnalytics,
    PostEventReportRequest,
    ReportRequest,
    ReportResponse,
    ReportSection,
    Sentiment,
    SentimentRequest,
    SentimentResult,
)
from .parsers import parse_chat_analysis, parse_report, parse_sentiment
from .prompts import (
    build_chat_prompt,
    build_daily_monitoring_prompt,
    build_engagement_metrics_prompt,
    build_generic_report_prompt,
    build_post_event_prompt,
    build_sentiment_prompt,
)


logger = logging.getLogger(__name__)

# Messages at or below this many characters (after strip) get no analytics.
MIN_MESSAGE_LENGTH = 5
DEFAULT_IMPORTANCE = 5


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _preview(text: str, limit: int = 50) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class SentimentAnalyzer:
    """Sentiment classification of single texts and batches."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def analyze(self, request: SentimentRequest) -> SentimentResult:
        """Classify one text; failures yield an ERROR result."""
        started = time.perf_counter()
        request_id = ""
        try:
            logger.info("Analyzing sentiment for text: %s", _preview(request.text))
            completion = self.gateway.complete(build_sentiment_prompt(request))
            request_id = completion.request_id
            logger.debug("Raw model response: %s", completion.text)

            candidate = extract_json(completion.text)
            logger.debug("Extracted JSON: %s", candidate)
            result = parse_sentiment(candidate, original_text=request.text)
        except Exception as e:
            logger.exception("Error analyzing sentiment (request_id=%s)", request_id)
            return SentimentResult(
                sentiment=Sentiment.ERROR,
                insights=f"Error analyzing sentiment: {e}",
                original_text=request.text,
                request_id=request_id or str(uuid.uuid4()),
                processing_time_ms=_elapsed_ms(started),
            )

        logger.info("Sentiment analysis complete. Result: %s", result.sentiment.value)
        return result.model_copy(
            update={"request_id": request_id, "processing_time_ms": _elapsed_ms(started)}
        )

    def analyze_batch(self, requests: list[SentimentRequest]) -> list[SentimentResult]:
        """Classify texts one after another; output order matches input order."""
        logger.info("Batch sentiment analysis for %d texts", len(requests))
        return [self.analyze(request) for request in requests]

    async def analyze_async(self, request: SentimentRequest) -> SentimentResult:
        """Run analyze() on a worker thread."""
        return await asyncio.to_thread(self.analyze, request)

    async def analyze_batch_async(
        self,
        requests: list[SentimentRequest],
        max_concurrent: int = 10,
    ) -> list[SentimentResult]:
        """Classify texts concurrently; output order still matches input order."""
        # At least one call must be allowed in flight or the batch never finishes.
        max_concurrent = max(1, max_concurrent)
        semaphore = asyncio.Semaphore(max_concurrent)

        async def analyze_bounded(request: SentimentRequest) -> SentimentResult:
            async with semaphore:
                return await self.analyze_async(request)

        logger.info(
            "Concurrent batch sentiment analysis for %d texts (max %d in flight)",
            len(requests),
            max_concurrent,
        )
        return list(await asyncio.gather(*[analyze_bounded(r) for r in requests]))


class ChatAnalyzer:
    """Conversation analysis: one conversation-level call plus sentiment calls."""

    def __init__(self, gateway: ModelGateway, sentiment: SentimentAnalyzer | None = None):
        self.gateway = gateway
        self.sentiment = sentiment or SentimentAnalyzer(gateway)

    def analyze(self, request: ChatAnalysisRequest) -> ChatAnalysisResult:
        """Analyze a conversation.

        Issues 2 + k gateway calls, where k is the number of messages longer
        than MIN_MESSAGE_LENGTH characters once stripped. Message analytics
        are keyed by the message's index in the original list.
        """
        started = time.perf_counter()
        request_id = str(uuid.uuid4())

        try:
            logger.info("Analyzing chat conversation with %d messages", len(request.messages))

            completion = self.gateway.complete(build_chat_prompt(request))
            logger.debug("Raw model response: %s", completion.text)
            fields = parse_chat_analysis(extract_json(completion.text))

            full_text = " ".join(message.content for message in request.messages)
            overall = self.sentiment.analyze(SentimentRequest(text=full_text))

            message_analytics = {}
            for index, message in enumerate(request.messages):
                if len(message.content.strip()) <= MIN_MESSAGE_LENGTH:
                    continue
                message_analytics[index] = MessageAnalytics(
                    sentiment=self.sentiment.analyze(SentimentRequest(text=message.content)),
                    importance=DEFAULT_IMPORTANCE,
                    contains_question="?" in message.content,
                )
        except Exception as e:
            logger.exception("Error analyzing chat (request_id=%s)", request_id)
            return ChatAnalysisResult(
                conversation_summary=f"Error analyzing chat: {e}",
                request_id=request_id,
                processing_time_ms=_elapsed_ms(started),
            )

        return ChatAnalysisResult(
            overall_sentiment=overall,
            message_analytics=message_analytics,
            request_id=request_id,
            processing_time_ms=_elapsed_ms(started),
            **fields,
        )

    async def analyze_async(self, request: ChatAnalysisRequest) -> ChatAnalysisResult:
        """Run analyze() on a worker thread."""
        return await asyncio.to_thread(self.analyze, request)


PromptBuilder = Callable[[ReportRequest], str]

# Closed set of report variants: tag -> (request model, prompt builder).
# Anything not listed here goes through the generic path.
REPORT_PATHS: dict[str, tuple[type[ReportRequest], PromptBuilder]] = {
    "engagement_metrics": (EngagementMetricsRequest, build_engagement_metrics_prompt),
    "post_event": (PostEventReportRequest, build_post_event_prompt),
    "daily_monitoring": (DailyMonitoringReportRequest, build_daily_monitoring_prompt),
}


class ReportGenerator:
    """Report generation with dispatch on the request's report_type."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def generate(self, request: ReportRequest) -> ReportResponse:
        """Dispatch to the variant path matching the request, else the generic one."""
        path = REPORT_PATHS.get(request.report_type)
        if path is not None and isinstance(request, path[0]):
            return self._generate(request, path[1], request.report_type)
        return self.generate_generic(request)

    def generate_engagement_metrics(self, request: EngagementMetricsRequest) -> ReportResponse:
        return self._generate(request, build_engagement_metrics_prompt, "engagement_metrics")

    def generate_post_event(self, request: PostEventReportRequest) -> ReportResponse:
        return self._generate(request, build_post_event_prompt, "post_event")

    def generate_daily_monitoring(self, request: DailyMonitoringReportRequest) -> ReportResponse:
        return self._generate(request, build_daily_monitoring_prompt, "daily_monitoring")

    def generate_generic(self, request: ReportRequest) -> ReportResponse:
        """Generic report; report_type is used only as a free-text label."""
        return self._generate(request, build_generic_report_prompt, request.report_type)

    async def generate_async(self, request: ReportRequest) -> ReportResponse:
        """Run generate() on a worker thread."""
        return await asyncio.to_thread(self.generate, request)

    def _generate(
        self,
        request: ReportRequest,
        build_prompt: PromptBuilder,
        report_type: str,
    ) -> ReportResponse:
        started = time.perf_counter()
        report_id = str(uuid.uuid4())

        try:
            logger.info("Generating %s report: %s", report_type, request.title)
            completion = self.gateway.complete(build_prompt(request))
            logger.debug("Raw model response: %s", completion.text)

            report = parse_report(
                extract_json(completion.text),
                report_id=report_id,
                report_type=report_type,
                title=request.title,
                generated_at=datetime.now(timezone.utc),
            )
        except Exception as e:
            logger.exception("Error generating %s report", report_type)
            return _error_report(report_id, report_type, request.title, str(e), started)

        return report.model_copy(update={"processing_time_ms": _elapsed_ms(started)})


def _error_report(
    report_id: str,
    report_type: str,
    title: str,
    error: str,
    started: float,
) -> ReportResponse:
    return ReportResponse(
        report_id=report_id,
        report_type=report_type,
        title=title,
        generated_at=datetime.now(timezone.utc),
        executive_summary=f"Error generating report: {error}",
        key_findings=["An error occurred during report generation."],
        sections=[
            ReportSection(
                title="Error Details",
                content=f"The report generation process encountered an error: {error}",
            )
        ],
        processing_time_ms=_elapsed_ms(started),
    )
