"""OpenAI vision helper that reads bets off a slate screenshot."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from openai import OpenAI, OpenAIError
from pydantic import ValidationError
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from commissioner.bets.schemas import RawBetCandidate
from commissioner.config import get_openai_api_key, get_settings

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,")

SLATE_SYSTEM_PROMPT = """
You are an expert sports betting assistant specialized in Table Tennis.
Analyze an image of a betting slate and extract the structured betting data.

Rows usually contain a start time (e.g. 1:45 p.m.), two player names, a bet
type ("UNDER", "OVER" or "SPLIT") and confidence icons.

Rules:
1. Units: hammer icon = 1.5, nuclear/radioactive icon = 2, star or no icon = 1.
2. Bet type: use UNDER, OVER or SPLIT when written; if no bet type text is
   next to the players, use "OVER".
3. League: take the league header and drop a leading "International: " or
   "<Country>: " (e.g. "Czech: Czech Liga Pro" -> "Czech Liga Pro").

Respond with JSON of the form {"bets": [{"league": str, "playerA": str,
"playerB": str, "time": str, "type": str, "units": number}, ...]} keeping the
order the rows appear in the image.
""".strip()


class ExtractionError(RuntimeError):
    """The vision model could not be reached or returned something unusable."""


def _retry_log(retry_state: RetryCallState) -> None:  # pragma: no cover - logging helper
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("Slate extraction retry attempt %d due to %s", retry_state.attempt_number, exception)


def strip_data_uri(image_b64: str) -> str:
    return DATA_URI_PREFIX.sub("", image_b64.strip())


def parse_candidates(raw: str) -> list[RawBetCandidate]:
    """Parse the model's JSON reply into candidates, all or nothing."""

    try:
        data: Any = json.loads(raw or "[]")
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Vision model returned invalid JSON: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("bets", [])
    if not isinstance(data, list):
        raise ExtractionError("Vision model returned an unexpected payload shape.")
    try:
        return [RawBetCandidate.model_validate(item) for item in data]
    except ValidationError as exc:
        raise ExtractionError(f"Vision model returned malformed bets: {exc}") from exc


class VisionClient:
    """Send a slate image to the OpenAI chat completions API."""

    def __init__(self, client: OpenAI | None = None, model: str | None = None) -> None:
        settings = get_settings()
        self.model = model or settings.openai_vision_model
        self._client = client
        self.attempts = settings.extraction_attempts
        self.wait_seconds = 1.0

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=get_openai_api_key())
        return self._client

    def _complete(self, image_b64: str, mime_type: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            temperature=0,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SLATE_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "Extract the table tennis bets from this image."},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                        },
                    ],
                },
            ],
        )
        return response.choices[0].message.content or ""

    def extract(self, image_b64: str, mime_type: str = "image/png") -> list[RawBetCandidate]:
        """Return the bets visible on a slate image, in on-screen order."""

        clean = strip_data_uri(image_b64)
        call = retry(
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(self.wait_seconds),
            retry=retry_if_exception_type(OpenAIError),
            after=_retry_log,
            reraise=True,
        )(self._complete)
        try:
            raw = call(clean, mime_type)
        except OpenAIError as exc:
            raise ExtractionError(f"Vision model request failed: {exc}") from exc
        candidates = parse_candidates(raw)
        logger.info("Extracted %d bet(s) from slate image", len(candidates))
        return candidates
