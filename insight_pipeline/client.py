"""Anthropic API gateway with per-request metrics capture."""
import asyncio
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone

from anthropic import Anthropic

from .config import Settings
from .metrics import MetricsStore
from .models import Completion, RequestMetrics


logger = logging.getLogger(__name__)

APOLOGY_TEXT = "Sorry, I couldn't generate a response at this time."
INVALID_RESPONSE = "Invalid response format"


def generate_request_id() -> str:
    """Mint a metrics key: epoch milliseconds plus a random uuid4 suffix."""
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


class ModelGateway:
    """Single-attempt wrapper around the Anthropic Messages API.

    Every call records exactly one RequestMetrics entry in the shared store
    and returns text; backend failures come back as an error string instead
    of an exception.
    """

    def __init__(
        self,
        settings: Settings,
        store: MetricsStore | None = None,
        client: Anthropic | None = None,
    ):
        self.settings = settings
        self.model = settings.model
        self.store = store if store is not None else MetricsStore()
        # Retries are disabled: one attempt per call.
        self.client = client or Anthropic(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            max_retries=0,
        )

    def invoke(self, prompt: str) -> str:
        """Send a prompt and return the model text (or an error string)."""
        return self.complete(prompt).text

    def complete(self, prompt: str) -> Completion:
        """Send a prompt and return the text together with its request id."""
        request_id = generate_request_id()
        requested_at = datetime.now(timezone.utc)
        started = time.perf_counter()
        api_call_duration = None

        logger.info("Generating response (request_id=%s, model=%s)", request_id, self.model)
        logger.debug("Prompt for %s: %s", request_id, prompt)

        try:
            api_started = time.perf_counter()
            try:
                response = self.client.messages.create(
                    model=self.model,
                    max_tokens=self.settings.max_tokens,
                    temperature=self.settings.temperature,
                    system=self.settings.system_prompt,
                    messages=[
                        {"role": "user", "content": [{"type": "text", "text": prompt}]}
                    ],
                )
            finally:
                api_call_duration = timedelta(seconds=time.perf_counter() - api_started)
            text = _first_text(response)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.exception("Error calling model backend (request_id=%s)", request_id)
            self._record_failure(request_id, prompt, requested_at, started, api_call_duration, error)
            return Completion(text=f"Error: {error}", request_id=request_id, success=False)

        if text is None:
            logger.error("Invalid response format from model backend (request_id=%s)", request_id)
            self._record_failure(
                request_id, prompt, requested_at, started, api_call_duration, INVALID_RESPONSE
            )
            return Completion(text=APOLOGY_TEXT, request_id=request_id, success=False)

        total = timedelta(seconds=time.perf_counter() - started)
        self.store.put(
            request_id,
            RequestMetrics(
                request_id=request_id,
                prompt=prompt,
                model=self.model,
                request_timestamp=requested_at,
                response_timestamp=datetime.now(timezone.utc),
                api_call_duration=api_call_duration,
                total_processing_duration=total,
                response_length=len(text),
            ),
        )
        logger.info(
            "Request metrics - id: %s, api call: %.0fms, total: %.0fms, response length: %d chars",
            request_id,
            api_call_duration.total_seconds() * 1000,
            total.total_seconds() * 1000,
            len(text),
        )
        return Completion(text=text, request_id=request_id, success=True)

    async def invoke_async(self, prompt: str) -> str:
        """Run invoke() on a worker thread."""
        return await asyncio.to_thread(self.invoke, prompt)

    async def complete_async(self, prompt: str) -> Completion:
        """Run complete() on a worker thread."""
        return await asyncio.to_thread(self.complete, prompt)

    def get_metrics(self, request_id: str) -> RequestMetrics | None:
        """Return the metrics recorded for a request id, or None."""
        return self.store.get(request_id)

    def all_metrics(self) -> dict[str, RequestMetrics]:
        """Return a snapshot of every recorded request."""
        return self.store.list()

    def clear_metrics(self) -> None:
        """Clear the shared metrics store."""
        self.store.clear()

    def _record_failure(
        self,
        request_id: str,
        prompt: str,
        requested_at: datetime,
        started: float,
        api_call_duration: timedelta | None,
        error: str,
    ) -> None:
        total = timedelta(seconds=time.perf_counter() - started)
        self.store.put(
            request_id,
            RequestMetrics(
                request_id=request_id,
                prompt=prompt,
                model=self.model,
                request_timestamp=requested_at,
                response_timestamp=datetime.now(timezone.utc),
                api_call_duration=api_call_duration,
                total_processing_duration=total,
                success=False,
                error_message=error,
            ),
        )
        logger.info(
            "Failed request metrics - id: %s, total: %.0fms, error: %s",
            request_id,
            total.total_seconds() * 1000,
            error,
        )


def _first_text(response) -> str | None:
    """Return content[0].text, or None when the response carries no text block."""
    content = getattr(response, "content", None)
    if not content:
        return None
    text = getattr(content[0], "text", None)
    return text if isinstance(text, str) else None


def extract_json(text: str) -> str:
    """Return the span from the first '{' to the last '}' inclusive.

    Not a balanced-brace parser: when no such span exists the text comes
    back unchanged and the JSON parser is left to reject it.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return text[start:end + 1]
    return text
