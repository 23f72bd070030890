"""Debate orchestration: sequential rounds, consensus checkpoints, contrarian phase."""

import asyncio
import logging
from typing import Protocol

from tenthman.consensus import ConsensusJudge
from tenthman.errors import DebateError, RunCancelled
from tenthman.models import (
    Contrarian,
    Participant,
    Phase,
    RunResult,
    Transcript,
    Turn,
    Verdict,
)
from tenthman.prompts import build_messages
from tenthman.providers.base import ChatClient, ProviderError, first_choice_content

logger = logging.getLogger(__name__)

# Rounds run after the contrarian joins
CONTRARIAN_ROUNDS = 3

CONTRARIAN_NAME = "The Tenth Man"


class DebateObserver(Protocol):
    """Receives engine notifications synchronously, in the order they happen."""

    def on_turn(self, turn: Turn) -> None: ...

    def on_phase(self, phase: Phase) -> None: ...


class DebateEngine:
    """Runs one debate and owns its transcript.

    Usage:
        engine = DebateEngine(client, judge, participants, min_rounds=5, max_rounds=15)
        result = await engine.run("Should cities ban cars?", cancel=event)

    After a failed run `engine.transcript` still holds every turn appended
    before the failure.
    """

    def __init__(
        self,
        client: ChatClient,
        judge: ConsensusJudge,
        participants: list[Participant],
        min_rounds: int,
        max_rounds: int,
        contrarian_model: str | None = None,
        observer: DebateObserver | None = None,
    ) -> None:
        self._client = client
        self._judge = judge
        self._initial = list(participants)
        self.participants = list(participants)
        self.min_rounds = min_rounds
        self.max_rounds = max_rounds
        self._contrarian_model = contrarian_model
        self._observer = observer
        self.transcript: Transcript | None = None

    async def run(self, topic: str, cancel: asyncio.Event | None = None) -> RunResult:
        """Run both phases and return the final transcript and verdict.

        Raises:
            DebateError: If a turn or a judge call fails.
            RunCancelled: If `cancel` is set before a turn or during a backoff wait.
        """
        self.participants = list(self._initial)
        transcript = Transcript(topic=topic)
        self.transcript = transcript
        self._notify_phase(Phase.FREE_DEBATE)

        verdict: Verdict | None = None
        for round_num in range(1, self.max_rounds + 1):
            await self._run_round(round_num, cancel)
            if round_num >= self.min_rounds:
                verdict = await self._evaluate(cancel)
                logger.info(
                    "Round %d verdict: converged=%s strength=%d",
                    round_num, verdict.converged, verdict.strength,
                )
                if verdict.is_strong:
                    break

        if verdict is None or not verdict.is_strong:
            return RunResult(transcript=transcript, verdict=verdict)

        contrarian = Participant(
            id=len(self.participants) + 1,
            name=CONTRARIAN_NAME,
            model=self._contrarian_model or self.participants[0].model,
            role=Contrarian(position=verdict.position),
        )
        self.participants.append(contrarian)
        transcript.phase = Phase.CONTRARIAN
        logger.info(
            "Consensus reached after round %d (strength %d); contrarian joins on %s",
            transcript.rounds, verdict.strength, contrarian.model,
        )
        self._notify_phase(Phase.CONTRARIAN)

        start = transcript.rounds + 1
        for round_num in range(start, start + CONTRARIAN_ROUNDS):
            await self._run_round(round_num, cancel)

        verdict = await self._evaluate(cancel)
        logger.info(
            "Final verdict: converged=%s strength=%d", verdict.converged, verdict.strength,
        )
        return RunResult(transcript=transcript, verdict=verdict)

    async def _run_round(self, round_num: int, cancel: asyncio.Event | None) -> None:
        transcript = self.transcript
        logger.info("Starting round %d with %d participants", round_num, len(self.participants))

        for participant in self.participants:
            if cancel is not None and cancel.is_set():
                raise RunCancelled(participant.name, f"cancelled before round {round_num} turn")

            messages = build_messages(participant, transcript)
            try:
                response = await self._client.chat_completion(participant.model, messages, cancel)
            except ProviderError as exc:
                raise DebateError(participant.name, str(exc)) from exc

            turn = Turn(round=round_num, participant=participant, content=first_choice_content(response))
            transcript.append(turn)
            if self._observer is not None:
                self._observer.on_turn(turn)

        transcript.rounds = round_num
        logger.debug("Round %d complete", round_num)

    async def _evaluate(self, cancel: asyncio.Event | None) -> Verdict:
        try:
            return await self._judge.evaluate(self.transcript, cancel)
        except ProviderError as exc:
            raise DebateError("consensus judge", str(exc)) from exc

    def _notify_phase(self, phase: Phase) -> None:
        if self._observer is not None:
            self._observer.on_phase(phase)
