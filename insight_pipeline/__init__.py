"""LLM-backed sentiment, chat analysis and report generation pipeline."""
from .client import ModelGateway, extract_json
from .config import Settings, load_settings
from .metrics import MetricsStore
from .orchestrator import ChatAnalyzer, ReportGenerator, SentimentAnalyzer

__all__ = [
    "ChatAnalyzer",
    "MetricsStore",
    "ModelGateway",
    "ReportGenerator",
    "SentimentAnalyzer",
    "Settings",
    "extract_json",
    "load_settings",
]
