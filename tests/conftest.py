"""Shared pytest fixtures."""

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest
from openai.types.chat import ChatCompletion, ChatCompletionMessage, ChatCompletionMessageParam
from openai.types.chat.chat_completion import Choice

from config.config_loader import AppConfig, DefaultsConfig, OpenRouterConfig
from tenthman.models import Participant, Phase, Transcript, Turn, Verdict
from tenthman.providers.base import ChatClient


def make_completion(content: str | None, with_choice: bool = True) -> ChatCompletion:
    choices = []
    if with_choice:
        choices.append(
            Choice(
                index=0,
                finish_reason="stop",
                message=ChatCompletionMessage(role="assistant", content=content),
            )
        )
    return ChatCompletion(
        id="gen-test",
        object="chat.completion",
        created=0,
        model="mock-model",
        choices=choices,
    )


class MockChatClient(ChatClient):
    """Test double ChatClient. Records every call; replies via `reply(model, messages)`."""

    def __init__(self, reply: Callable[[str, list], str] | None = None) -> None:
        self._reply = reply or (lambda model, messages: "Mock turn")
        self.calls: list[tuple[str, list[ChatCompletionMessageParam]]] = []

    async def chat_completion(
        self,
        model: str,
        messages: list[ChatCompletionMessageParam],
        cancel: asyncio.Event | None = None,
    ) -> ChatCompletion:
        self.calls.append((model, messages))
        return make_completion(self._reply(model, messages))


class ScriptedJudge:
    """Test double judge: `decide(transcript)` returns the verdict for each call."""

    def __init__(self, decide: Callable[[Transcript], Verdict]) -> None:
        self._decide = decide
        self.evaluated_rounds: list[int] = []

    async def evaluate(self, transcript: Transcript, cancel: asyncio.Event | None = None) -> Verdict:
        self.evaluated_rounds.append(transcript.rounds)
        return self._decide(transcript)


class RecordingObserver:
    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def on_turn(self, turn: Turn) -> None:
        self.events.append(("turn", turn))

    def on_phase(self, phase: Phase) -> None:
        self.events.append(("phase", phase))


@pytest.fixture
def participants() -> list[Participant]:
    return [
        Participant(id=1, name="Alice", model="model-a"),
        Participant(id=2, name="Bob", model="model-b"),
        Participant(id=3, name="Carol", model="model-c"),
    ]


@pytest.fixture
def mock_client() -> MockChatClient:
    return MockChatClient()


@pytest.fixture
def sample_transcript(participants) -> Transcript:
    transcript = Transcript(topic="Should cities ban private cars?")
    transcript.append(Turn(1, participants[0], "Yes, congestion costs too much."))
    transcript.append(Turn(1, participants[1], "Only in dense centres."))
    transcript.rounds = 1
    return transcript


@pytest.fixture
def strong_verdict() -> Verdict:
    return Verdict(converged=True, position="Ban cars in city centres", strength=8, dissenters=())


@pytest.fixture
def sample_app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(agents=3, min_rounds=1, max_rounds=2, output_dir=tmp_path / "output"),
        openrouter=OpenRouterConfig(
            base_url="http://test/api/v1",
            api_key_env="OPENROUTER_API_KEY",
            timeout_sec=30,
        ),
        participant_names=["Alice", "Bob", "Carol"],
        api_key="sk-test",
    )
