"""Command-line runner: sentiment batches, chat analysis, reports and raw prompts."""
import argparse
import asyncio
import json
import sys
from pathlib import Path

from .client import ModelGateway
from .config import load_settings
from .csv_loader import load_chat_messages, load_sentiment_requests
from .logging_config import configure_logging
from .metrics import MetricsStore
from .models import ChatAnalysisRequest, ReportResponse, ReportSection, parse_report_request
from .orchestrator import ChatAnalyzer, ReportGenerator, SentimentAnalyzer


def _format_value(value) -> str:
    """Format value for markdown output."""
    if isinstance(value, dict):
        return "; ".join(f"{k}: {_format_value(v)}" for k, v in value.items())
    elif isinstance(value, list):
        return ", ".join(_format_value(i) for i in value) or "N/A"
    return str(value).strip()


def _section_to_markdown(section: ReportSection, level: int) -> list[str]:
    heading = "#" * min(level, 6)
    lines = [f"{heading} {section.title}", section.content, ""]
    for subsection in section.subsections:
        lines.extend(_section_to_markdown(subsection, level + 1))
    return lines


def report_to_markdown(report: ReportResponse) -> str:
    """Convert report to markdown format."""
    lines = [
        f"# {report.title or 'Report'}",
        f"**Type:** {report.report_type}  ",
        f"**Generated:** {report.generated_at.isoformat()}\n",
        "## Executive Summary",
        report.executive_summary,
        "",
    ]

    if report.key_findings:
        lines.append("## Key Findings")
        lines.extend(f"- {finding}" for finding in report.key_findings)
        lines.append("")

    for section in report.sections:
        lines.extend(_section_to_markdown(section, 2))

    if report.recommendations:
        lines.append("## Recommendations")
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(report.recommendations, 1))
        lines.append("")

    if report.metrics_data:
        lines.append("## Metrics")
        lines.extend(f"- **{k}:** {_format_value(v)}" for k, v in report.metrics_data.items())
        lines.append("")

    if report.visual_elements:
        lines.append("## Suggested Visuals")
        for visual in report.visual_elements:
            lines.append(f"- **{visual.title or visual.type}** ({visual.type}): {visual.description}")
        lines.append("")

    return "\n".join(lines)


def _write_json(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str))


def run_sentiment(gateway: ModelGateway, args) -> None:
    requests = load_sentiment_requests(args.csv, text_column=args.text_column)
    print(f"Loaded {len(requests)} texts from {args.csv}\n")

    analyzer = SentimentAnalyzer(gateway)
    results = asyncio.run(analyzer.analyze_batch_async(requests, max_concurrent=args.concurrency))

    for i, result in enumerate(results, 1):
        print(f"{i}. [{result.sentiment.value}] score={result.score:+.2f} "
              f"confidence={result.confidence:.2f} :: {result.original_text[:60]}")

    errors = sum(1 for r in results if r.sentiment.value == "ERROR")
    out_file = args.output_dir / "sentiment_results.json"
    _write_json(out_file, [r.model_dump(mode="json") for r in results])
    print(f"\n✓ {len(results) - errors} analyzed, {errors} failed. Saved to {out_file}")


def run_chat(gateway: ModelGateway, args) -> None:
    messages = load_chat_messages(args.csv)
    print(f"Loaded {len(messages)} messages from {args.csv}\n")

    result = ChatAnalyzer(gateway).analyze(ChatAnalysisRequest(messages=messages))

    print("SUMMARY:")
    print(f"  {result.conversation_summary}")
    if result.overall_sentiment:
        print(f"\nOVERALL SENTIMENT: {result.overall_sentiment.sentiment.value} "
              f"({result.overall_sentiment.score:+.2f})")
    for label, items in [
        ("MAIN TOPICS", result.main_topics),
        ("USER INTENTS", result.user_intents),
        ("KEY QUESTIONS", result.key_questions),
        ("IDENTIFIED ISSUES", result.identified_issues),
        ("ACTION ITEMS", result.action_items),
    ]:
        if items:
            print(f"\n{label}:")
            for item in items:
                print(f"  - {item}")
    print("\nMESSAGES:")
    for index, analytics in sorted(result.message_analytics.items()):
        question = " ?" if analytics.contains_question else ""
        print(f"  #{index} [{analytics.sentiment.sentiment.value}]{question}")

    out_file = args.output_dir / f"chat_{result.request_id}.json"
    _write_json(out_file, result.model_dump(mode="json"))
    print(f"\n✓ Saved to {out_file} ({result.processing_time_ms} ms)")


def run_report(gateway: ModelGateway, args) -> None:
    request = parse_report_request(json.loads(args.request.read_text()))
    print(f"Generating {request.report_type} report: {request.title}\n")

    report = ReportGenerator(gateway).generate(request)

    md_file = args.output_dir / f"report_{report.report_id}.md"
    md_file.parent.mkdir(parents=True, exist_ok=True)
    md_file.write_text(report_to_markdown(report))
    _write_json(md_file.with_suffix(".json"), report.model_dump(mode="json"))

    print("=" * 60)
    print("EXECUTIVE SUMMARY")
    print("=" * 60)
    print(report.executive_summary)
    print("\nKEY FINDINGS:")
    for i, finding in enumerate(report.key_findings, 1):
        print(f"{i}. {finding}")
    print("=" * 60)
    print(f"Full report: {md_file} ({report.processing_time_ms} ms)")
    print("=" * 60)


def run_prompt(gateway: ModelGateway, args) -> None:
    completion = gateway.complete(args.text)
    print(completion.text)

    metrics = gateway.get_metrics(completion.request_id)
    print(f"\nrequest_id: {completion.request_id}")
    if metrics is not None:
        print(f"total: {metrics.total_processing_duration.total_seconds() * 1000:.0f} ms")
        if metrics.api_call_duration is not None:
            print(f"api call: {metrics.api_call_duration.total_seconds() * 1000:.0f} ms")


def print_metrics(gateway: ModelGateway) -> None:
    entries = gateway.all_metrics()
    print(f"\nMETRICS ({len(entries)} requests):")
    for request_id, m in sorted(entries.items(), key=lambda item: item[1].request_timestamp):
        status = "ok" if m.success else f"failed: {m.error_message}"
        print(f"  {request_id}  {m.total_processing_duration.total_seconds() * 1000:7.0f} ms  "
              f"{m.response_length:6d} chars  {status}")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LLM sentiment, chat analysis and report pipeline.")
    parser.add_argument("--output-dir", type=Path, default=Path("data/output"), help="Where results are written.")
    parser.add_argument("--show-metrics", action="store_true", help="Print the request metrics ledger at the end.")
    parser.add_argument("--log-level", default=None, help="Override INSIGHT_LOG_LEVEL.")
    sub = parser.add_subparsers(dest="command", required=True)

    sentiment = sub.add_parser("sentiment", help="Batch sentiment over a CSV of texts.")
    sentiment.add_argument("csv", type=Path)
    sentiment.add_argument("--text-column", default="text", help="Column holding the text.")
    sentiment.add_argument("--concurrency", type=_positive_int, default=10, help="Max in-flight model calls.")
    sentiment.set_defaults(handler=run_sentiment)

    chat = sub.add_parser("chat", help="Analyze a transcript CSV (role, content[, timestamp]).")
    chat.add_argument("csv", type=Path)
    chat.set_defaults(handler=run_chat)

    report = sub.add_parser("report", help="Generate a report from a JSON request file.")
    report.add_argument("request", type=Path)
    report.set_defaults(handler=run_report)

    prompt = sub.add_parser("prompt", help="Send a raw prompt and show its timings.")
    prompt.add_argument("text")
    prompt.set_defaults(handler=run_prompt)

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    configure_logging(args.log_level or settings.log_level)

    gateway = ModelGateway(settings, MetricsStore())
    args.handler(gateway, args)

    if args.show_metrics:
        print_metrics(gateway)
    return 0


if __name__ == "__main__":
    sys.exit(main())
