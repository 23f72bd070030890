"""Consensus judge: ask a model whether the debate converged, recover its JSON verdict."""

import asyncio
import logging
import re
from collections.abc import Callable

from openai.types.chat import ChatCompletionMessageParam
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tenthman.errors import RunCancelled
from tenthman.models import Transcript, Verdict
from tenthman.providers.base import ChatClient, first_choice_content

logger = logging.getLogger(__name__)

MAX_JUDGE_ATTEMPTS = 3

JUDGE_INSTRUCTION = (
    "You are a consensus judge. Analyze the debate transcript and return ONLY valid JSON "
    "in this exact format:\n"
    '{"consensus_detected": bool, "consensus_position": "...", '
    '"agreement_score": 1-10, "dissenting_agents": ["..."]}\n'
    "Do NOT include any other text, explanation, or markdown formatting. "
    "Return ONLY the JSON object."
)

CORRECTION = (
    "Your previous response was not valid JSON. "
    "Return ONLY a JSON object, no markdown, no explanation."
)

_FENCE_RE = re.compile(r"```[\w+-]*[ \t]*\n?(.*?)\n?```", re.DOTALL)


class VerdictPayload(BaseModel):
    """Wire shape of the judge's reply.

    Types are strict (no "8" for 8, no "true" for true). A field that is
    missing or null takes its zero value.
    """

    model_config = ConfigDict(strict=True)

    consensus_detected: bool | None = None
    consensus_position: str | None = None
    agreement_score: int | None = Field(default=None, ge=0, le=10)
    dissenting_agents: list[str] | None = None

    def to_verdict(self) -> Verdict:
        return Verdict(
            converged=bool(self.consensus_detected),
            position=self.consensus_position or "",
            strength=self.agreement_score or 0,
            dissenters=tuple(self.dissenting_agents or ()),
        )


def _parse(candidate: str) -> Verdict | None:
    try:
        return VerdictPayload.model_validate_json(candidate.strip()).to_verdict()
    except ValidationError:
        return None


def parse_direct(raw: str) -> Verdict | None:
    """Parse the whole reply as JSON."""
    return _parse(raw)


def parse_fenced(raw: str) -> Verdict | None:
    """Parse the first ``` fenced block, with or without a language tag."""
    match = _FENCE_RE.search(raw)
    if match is None:
        return None
    return _parse(match.group(1))


def parse_braces(raw: str) -> Verdict | None:
    """Parse the span from the first "{" to the last "}"."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start < 0 or end <= start:
        return None
    return _parse(raw[start:end + 1])


EXTRACTION_STRATEGIES: tuple[Callable[[str], Verdict | None], ...] = (
    parse_direct,
    parse_fenced,
    parse_braces,
)


def extract_verdict(raw: str) -> Verdict | None:
    """Apply each extraction strategy in order; first success wins."""
    for strategy in EXTRACTION_STRATEGIES:
        verdict = strategy(raw)
        if verdict is not None:
            return verdict
    return None


def format_transcript(transcript: Transcript) -> str:
    """One "name: content" line per turn."""
    return "".join(f"{turn.participant.name}: {turn.content}\n" for turn in transcript.turns)


class ConsensusJudge:
    """Classifies a transcript as converged or not via a remote model."""

    def __init__(self, client: ChatClient, model: str) -> None:
        self._client = client
        self.model = model

    async def evaluate(self, transcript: Transcript, cancel: asyncio.Event | None = None) -> Verdict:
        """Return the model's verdict on the transcript.

        Unparseable replies are retried with a corrective message; after
        MAX_JUDGE_ATTEMPTS the empty verdict is returned instead of raising.

        Raises:
            ProviderError: If a completion call fails.
            RunCancelled: If `cancel` is set before an attempt.
        """
        base: list[ChatCompletionMessageParam] = [
            {"role": "system", "content": JUDGE_INSTRUCTION},
            {"role": "user", "content": format_transcript(transcript)},
        ]

        for attempt in range(MAX_JUDGE_ATTEMPTS):
            if cancel is not None and cancel.is_set():
                raise RunCancelled("consensus judge", "cancelled")

            messages = list(base)
            if attempt > 0:
                messages.append({"role": "user", "content": CORRECTION})

            response = await self._client.chat_completion(self.model, messages, cancel)
            raw = first_choice_content(response)
            verdict = extract_verdict(raw)
            if verdict is not None:
                logger.debug("Judge verdict on attempt %d: %s", attempt + 1, verdict)
                return verdict

            logger.warning(
                "Judge reply %d/%d was not a valid verdict: %.120s",
                attempt + 1, MAX_JUDGE_ATTEMPTS, raw,
            )

        return Verdict.empty()
