"""Tests for the sentiment, chat and report services."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict

import pytest

from insight_pipeline.client import ModelGateway
from insight_pipeline.metrics import MetricsStore
from insight_pipeline.models import (
    ChatAnalysisRequest,
    ChatMessage,
    DailyMonitoringReportRequest,
    EngagementMetricsRequest,
    PostEventReportRequest,
    ReportRequest,
    Sentiment,
    SentimentRequest,
    parse_report_request,
)
from insight_pipeline.orchestrator import ChatAnalyzer, ReportGenerator, SentimentAnalyzer

from .fakes import FakeAnthropic

SENTIMENT_REPLY = json.dumps(
    {
        "sentiment": "POSITIVE",
        "score": 0.6,
        "confidence": 0.8,
        "dominant_emotions": ["joy"],
        "key_phrases": ["thanks"],
        "insights": "Friendly tone.",
    }
)

CHAT_REPLY = json.dumps(
    {
        "main_topics": ["greeting"],
        "user_intents": ["get help"],
        "key_questions": ["How can I help you today?"],
        "identified_issues": [],
        "action_items": ["follow up"],
        "conversation_summary": "A short greeting.",
    }
)

FULL_REPORT: Dict[str, Any] = {
    "executive_summary": "Engagement rose 12%.",
    "key_findings": ["Mobile leads", "Weekend dip"],
    "sections": [
        {
            "title": "Overview",
            "content": "Totals by channel.",
            "subsections": [
                {"title": "Mobile", "content": "60% of sessions.", "subsections": []},
                {"title": "Web", "content": "40% of sessions.", "subsections": []},
            ],
        }
    ],
    "recommendations": ["Invest in mobile"],
    "metrics_data": {"sessions": 1200, "by_channel": {"mobile": 720, "web": 480}},
    "visual_elements": [
        {
            "type": "bar",
            "title": "Sessions by channel",
            "description": "Mobile vs web",
            "data": {"mobile": 720, "web": 480},
        }
    ],
}


def _is_chat_prompt(prompt: str) -> bool:
    return prompt.startswith("Analyze the following conversation")


class TestSentimentAnalyzer:
    def test_analyze_links_result_to_metrics(self, make_gateway, store: MetricsStore) -> None:
        analyzer = SentimentAnalyzer(make_gateway(lambda p: f"Here you go:\n{SENTIMENT_REPLY}\nDone."))

        result = analyzer.analyze(SentimentRequest(text="Thanks a lot!"))

        assert result.sentiment is Sentiment.POSITIVE
        assert result.score == 0.6
        assert result.original_text == "Thanks a lot!"
        assert result.request_id in store
        assert result.processing_time_ms >= 0

    def test_unparseable_reply_becomes_error_result(self, make_gateway) -> None:
        analyzer = SentimentAnalyzer(make_gateway(lambda p: "I cannot answer that."))

        result = analyzer.analyze(SentimentRequest(text="hmm"))

        assert result.sentiment is Sentiment.ERROR
        assert result.score == 0.0
        assert result.confidence == 0.0
        assert result.insights.startswith("Error analyzing sentiment:")
        assert result.original_text == "hmm"

    def test_backend_failure_becomes_error_result(self, make_gateway, store: MetricsStore) -> None:
        def responder(prompt: str) -> str:
            raise TimeoutError("read timed out")

        result = SentimentAnalyzer(make_gateway(responder)).analyze(SentimentRequest(text="hello"))

        assert result.sentiment is Sentiment.ERROR
        assert store.get(result.request_id).success is False

    def test_batch_keeps_order_and_isolates_failures(self, make_gateway) -> None:
        def responder(prompt: str) -> str:
            if "B-text" in prompt:
                raise RuntimeError("backend down")
            return SENTIMENT_REPLY

        analyzer = SentimentAnalyzer(make_gateway(responder))
        requests = [SentimentRequest(text=t) for t in ("A-text", "B-text", "C-text")]

        results = analyzer.analyze_batch(requests)

        assert [r.original_text for r in results] == ["A-text", "B-text", "C-text"]
        assert [r.sentiment for r in results] == [Sentiment.POSITIVE, Sentiment.ERROR, Sentiment.POSITIVE]

    def test_async_batch_keeps_order_and_isolates_failures(self, make_gateway) -> None:
        def responder(prompt: str) -> str:
            if "B-text" in prompt:
                raise RuntimeError("backend down")
            return SENTIMENT_REPLY

        analyzer = SentimentAnalyzer(make_gateway(responder))
        requests = [SentimentRequest(text=t) for t in ("A-text", "B-text", "C-text", "D-text")]

        results = asyncio.run(analyzer.analyze_batch_async(requests, max_concurrent=2))

        assert [r.original_text for r in results] == ["A-text", "B-text", "C-text", "D-text"]
        assert [r.sentiment for r in results] == [
            Sentiment.POSITIVE,
            Sentiment.ERROR,
            Sentiment.POSITIVE,
            Sentiment.POSITIVE,
        ]

    @pytest.mark.parametrize("max_concurrent", [0, -3])
    def test_async_batch_with_non_positive_limit_still_completes(self, make_gateway, max_concurrent: int) -> None:
        analyzer = SentimentAnalyzer(make_gateway(lambda p: SENTIMENT_REPLY))
        requests = [SentimentRequest(text=t) for t in ("A-text", "B-text")]

        results = asyncio.run(
            asyncio.wait_for(analyzer.analyze_batch_async(requests, max_concurrent=max_concurrent), timeout=5)
        )

        assert [r.original_text for r in results] == ["A-text", "B-text"]
        assert all(r.sentiment is Sentiment.POSITIVE for r in results)

    def test_async_matches_sync(self, make_gateway) -> None:
        analyzer = SentimentAnalyzer(make_gateway(lambda p: SENTIMENT_REPLY))
        request = SentimentRequest(text="Thanks!")

        sync_result = analyzer.analyze(request)
        async_result = asyncio.run(analyzer.analyze_async(request))

        ignore = {"request_id", "processing_time_ms"}
        assert async_result.model_dump(exclude=ignore) == sync_result.model_dump(exclude=ignore)


class TestChatAnalyzer:
    def _gateway(self, make_gateway):
        return make_gateway(lambda p: CHAT_REPLY if _is_chat_prompt(p) else SENTIMENT_REPLY)

    def test_short_messages_are_skipped(self, make_gateway, store: MetricsStore) -> None:
        request = ChatAnalysisRequest(
            messages=[
                ChatMessage(role="user", content="Hi"),
                ChatMessage(role="agent", content="Hello! How can I help you today?"),
            ]
        )

        result = ChatAnalyzer(self._gateway(make_gateway)).analyze(request)

        assert list(result.message_analytics) == [1]
        analytics = result.message_analytics[1]
        assert analytics.contains_question is True
        assert analytics.importance == 5
        assert analytics.sentiment.original_text == "Hello! How can I help you today?"
        assert result.overall_sentiment.original_text == "Hi Hello! How can I help you today?"
        assert result.main_topics == ["greeting"]
        assert result.action_items == ["follow up"]
        assert result.conversation_summary == "A short greeting."
        # 1 conversation call + 1 overall sentiment + 1 qualifying message
        assert len(store) == 3

    def test_indices_follow_original_positions(self, make_gateway, store: MetricsStore) -> None:
        request = ChatAnalysisRequest(
            messages=[
                ChatMessage(role="user", content="My order never arrived."),
                ChatMessage(role="agent", content="  ok   "),
                ChatMessage(role="user", content="12345"),
                ChatMessage(role="agent", content="I will refund you now."),
            ]
        )

        result = ChatAnalyzer(self._gateway(make_gateway)).analyze(request)

        assert sorted(result.message_analytics) == [0, 3]
        assert result.message_analytics[0].contains_question is False
        assert len(store) == 4

    def test_transcript_is_sent_to_backend(self, settings, store) -> None:
        client = FakeAnthropic(lambda p: CHAT_REPLY if _is_chat_prompt(p) else SENTIMENT_REPLY)
        request = ChatAnalysisRequest(messages=[ChatMessage(role="user", content="Where is my parcel?")])

        ChatAnalyzer(ModelGateway(settings, store, client=client)).analyze(request)

        assert "USER: Where is my parcel?" in client.messages.prompts[0]

    def test_unparseable_conversation_reply_becomes_error_summary(self, make_gateway) -> None:
        request = ChatAnalysisRequest(messages=[ChatMessage(role="user", content="Hello there")])

        result = ChatAnalyzer(make_gateway(lambda p: "no json")).analyze(request)

        assert result.conversation_summary.startswith("Error analyzing chat:")
        assert result.request_id
        assert result.message_analytics == {}
        assert result.overall_sentiment is None

    def test_failed_message_sentiment_does_not_fail_chat(self, make_gateway) -> None:
        def responder(prompt: str) -> str:
            if _is_chat_prompt(prompt):
                return CHAT_REPLY
            if '"Second message here"' in prompt:
                return "garbled"
            return SENTIMENT_REPLY

        request = ChatAnalysisRequest(
            messages=[
                ChatMessage(role="user", content="First message here"),
                ChatMessage(role="agent", content="Second message here"),
            ]
        )

        result = ChatAnalyzer(make_gateway(responder)).analyze(request)

        assert result.message_analytics[0].sentiment.sentiment is Sentiment.POSITIVE
        assert result.message_analytics[1].sentiment.sentiment is Sentiment.ERROR
        assert result.conversation_summary == "A short greeting."

    def test_async_matches_sync(self, make_gateway) -> None:
        analyzer = ChatAnalyzer(self._gateway(make_gateway))
        request = ChatAnalysisRequest(messages=[ChatMessage(role="user", content="Is this working?")])

        result = asyncio.run(analyzer.analyze_async(request))

        assert result.main_topics == ["greeting"]
        assert list(result.message_analytics) == [0]


class TestReportGenerator:
    def test_full_schema_round_trip(self, make_gateway) -> None:
        reply = "Report follows.\n" + json.dumps(FULL_REPORT) + "\nEnd."
        generator = ReportGenerator(make_gateway(lambda p: reply))

        report = generator.generate(EngagementMetricsRequest(title="Q1 Engagement"))

        dumped = report.model_dump()
        for key, value in FULL_REPORT.items():
            assert dumped[key] == value
        assert report.report_type == "engagement_metrics"
        assert report.title == "Q1 Engagement"
        assert report.report_id
        assert report.generated_at is not None

    @pytest.mark.parametrize(
        "request_obj, expected_type, prompt_marker",
        [
            (EngagementMetricsRequest(title="t"), "engagement_metrics", "engagement metrics report"),
            (PostEventReportRequest(title="t"), "post_event", "post-event report"),
            (DailyMonitoringReportRequest(title="t"), "daily_monitoring", "daily monitoring report"),
            (ReportRequest(report_type="weekly digest", title="t"), "weekly digest", "weekly digest report"),
        ],
    )
    def test_dispatch_selects_prompt_by_variant(
        self, settings, store, request_obj, expected_type, prompt_marker
    ) -> None:
        client = FakeAnthropic(lambda p: json.dumps(FULL_REPORT))
        generator = ReportGenerator(ModelGateway(settings, store, client=client))

        report = generator.generate(request_obj)

        assert report.report_type == expected_type
        assert prompt_marker in client.messages.prompts[0]

    def test_unknown_type_falls_back_to_generic(self, make_gateway) -> None:
        request = parse_report_request({"report_type": "something_new", "title": "Odd"})

        report = ReportGenerator(make_gateway(lambda p: '{"executive_summary": "fine"}')).generate(request)

        assert type(request) is ReportRequest
        assert report.report_type == "something_new"
        assert report.executive_summary == "fine"
        assert report.sections == []

    def test_tag_without_matching_shape_uses_generic_path(self, settings, store) -> None:
        client = FakeAnthropic(lambda p: "{}")
        request = ReportRequest(report_type="post_event", title="Mismatch")

        report = ReportGenerator(ModelGateway(settings, store, client=client)).generate(request)

        assert client.messages.prompts[0].startswith("Generate a post_event report")
        assert report.report_type == "post_event"

    def test_parse_failure_becomes_error_report(self, make_gateway) -> None:
        report = ReportGenerator(make_gateway(lambda p: "{broken json")).generate(
            DailyMonitoringReportRequest(title="Today")
        )

        assert report.executive_summary.startswith("Error generating report:")
        assert report.key_findings == ["An error occurred during report generation."]
        assert report.sections[0].title == "Error Details"
        assert report.report_type == "daily_monitoring"
        assert report.title == "Today"

    def test_backend_failure_becomes_error_report(self, make_gateway) -> None:
        def responder(prompt: str) -> str:
            raise ConnectionError("unreachable")

        report = ReportGenerator(make_gateway(responder)).generate(ReportRequest(title="x"))

        assert report.executive_summary.startswith("Error generating report:")

    def test_async_matches_sync(self, make_gateway) -> None:
        generator = ReportGenerator(make_gateway(lambda p: json.dumps(FULL_REPORT)))

        report = asyncio.run(generator.generate_async(PostEventReportRequest(title="Expo")))

        assert report.report_type == "post_event"
        assert report.key_findings == FULL_REPORT["key_findings"]


def test_parse_report_request_selects_variant() -> None:
    request = parse_report_request(
        {"report_type": "daily_monitoring", "title": "Today", "metrics_to_track": ["errors"]}
    )

    assert isinstance(request, DailyMonitoringReportRequest)
    assert request.metrics_to_track == ["errors"]
