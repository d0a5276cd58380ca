"""CSV loading for batch sentiment and chat transcripts."""
from pathlib import Path

import pandas as pd

from .models import ChatMessage, SentimentRequest


def _optional(row, column: str | None) -> str | None:
    if not column or column not in row or pd.isna(row[column]):
        return None
    value = str(row[column]).strip()
    return value or None


def load_sentiment_requests(
    csv_path: Path,
    text_column: str = "text",
    context_column: str | None = "context",
    source_column: str | None = "source",
) -> list[SentimentRequest]:
    """Load one SentimentRequest per row with non-blank text.

    Context and source columns are optional; missing columns or empty
    cells become None.
    """
    df = pd.read_csv(csv_path)
    if text_column not in df.columns:
        raise ValueError(f"Column '{text_column}' not found in {csv_path}")

    requests = []
    for _, row in df.iterrows():
        text = row[text_column]
        if pd.isna(text) or not str(text).strip():
            continue
        requests.append(
            SentimentRequest(
                text=str(text),
                context=_optional(row, context_column),
                source=_optional(row, source_column),
            )
        )
    return requests


def load_chat_messages(csv_path: Path) -> list[ChatMessage]:
    """Load a transcript with role and content columns, plus optional timestamp."""
    df = pd.read_csv(csv_path)
    missing = {"role", "content"} - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns in {csv_path}: {', '.join(sorted(missing))}")

    messages = []
    for _, row in df.iterrows():
        if pd.isna(row["role"]):
            continue
        content = row["content"]
        if pd.isna(content):
            content = ""
        messages.append(
            ChatMessage(
                role=str(row["role"]),
                content=str(content),
                timestamp=_optional(row, "timestamp"),
            )
        )
    return messages
