"""Tests for tenthman/cli.py: participant building, model selection, and the debate command."""

import dataclasses
import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

import tenthman.cli as cli_module
from tenthman.cli import _build_participants, _select_models, main
from tenthman.consensus import JUDGE_INSTRUCTION
from tenthman.models import ModelInfo
from tenthman.providers.base import ProviderError
from tenthman.registry import DEFAULT_FREE_MODELS
from tests.conftest import MockChatClient

STRONG = (
    '{"consensus_detected": true, "consensus_position": "Ban cars downtown", '
    '"agreement_score": 9, "dissenting_agents": []}'
)

MODELS = [ModelInfo(f"m-{i}", f"M{i}", "0", "0") for i in range(4)]


class FakeOpenRouter(MockChatClient):
    """Stands in for OpenRouterClient inside the CLI run."""

    def __init__(self, api_key: str, base_url: str, timeout_sec: float, reply=None) -> None:
        super().__init__(reply or self._default_reply)
        self.api_key = api_key
        self.list_models = AsyncMock(return_value=MODELS)

    @staticmethod
    def _default_reply(model, messages):
        if messages[0]["content"] == JUDGE_INSTRUCTION:
            return STRONG
        return f"Turn from {model}"


@pytest.fixture
def patched_cli(monkeypatch, sample_app_config):
    monkeypatch.setattr(cli_module, "load_config", lambda: sample_app_config)
    monkeypatch.setattr(cli_module, "OpenRouterClient", FakeOpenRouter)
    return sample_app_config


def _only_run_dir(base: Path) -> Path:
    (run_dir,) = list(base.iterdir())
    return run_dir


def test_build_participants_uses_configured_names():
    participants = _build_participants(MODELS, ["Alice", "Bob", "Carol"], 3)
    assert [p.name for p in participants] == ["Alice", "Bob", "Carol"]
    assert [p.id for p in participants] == [1, 2, 3]
    assert [p.model for p in participants] == ["m-0", "m-1", "m-2"]


def test_build_participants_falls_back_to_agent_n():
    participants = _build_participants(MODELS, ["Alice"], 3)
    assert [p.name for p in participants] == ["Alice", "Agent-2", "Agent-3"]


async def test_select_models_from_catalogue():
    client = FakeOpenRouter("k", "u", 1)
    selected = await _select_models(client, 6)
    assert [m.id for m in selected] == ["m-0", "m-1", "m-2", "m-3", "m-0", "m-1"]


async def test_select_models_falls_back_when_listing_fails():
    client = FakeOpenRouter("k", "u", 1)
    client.list_models = AsyncMock(side_effect=ProviderError("models", "transport error: refused"))
    selected = await _select_models(client, 2)
    assert selected == DEFAULT_FREE_MODELS[:2]


async def test_select_models_falls_back_when_nothing_free():
    client = FakeOpenRouter("k", "u", 1)
    client.list_models = AsyncMock(return_value=[ModelInfo("paid", "Paid", "0.01", "0.02")])
    selected = await _select_models(client, 1)
    assert selected == DEFAULT_FREE_MODELS[:1]


def test_debate_requires_api_key(monkeypatch, sample_app_config, tmp_path):
    no_key = dataclasses.replace(sample_app_config, api_key="")
    monkeypatch.setattr(cli_module, "load_config", lambda: no_key)

    result = CliRunner().invoke(main, ["--output-dir", str(tmp_path), "debate", "--topic", "Cars?"])

    assert result.exit_code == 1
    assert "API key required" in result.output
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize(
    "args,message",
    [
        (["--agents", "2"], "Agent count"),
        (["--min-rounds", "0"], "min_rounds"),
        (["--min-rounds", "4", "--max-rounds", "2"], "max_rounds"),
    ],
)
def test_debate_rejects_invalid_settings(patched_cli, tmp_path, args, message):
    result = CliRunner().invoke(
        main, ["--output-dir", str(tmp_path), *args, "debate", "--topic", "Cars?"]
    )
    assert result.exit_code == 1
    assert message in result.output


def test_debate_full_run_writes_outputs(patched_cli, tmp_path):
    result = CliRunner().invoke(
        main,
        ["--output-dir", str(tmp_path), "debate", "--topic", "Should cities ban private cars?"],
    )

    assert result.exit_code == 0, result.output
    run_dir = _only_run_dir(tmp_path)
    assert run_dir.name.startswith("should-cities-ban-private-cars-")

    data = json.loads((run_dir / "transcript.json").read_text(encoding="utf-8"))
    assert data["phase"] == "contrarian"
    # One free round of three, then three rounds of four
    assert len(data["turns"]) == 3 + 3 * 4
    contrarian_turns = [t for t in data["turns"] if t["participant"]["role"] == "contrarian"]
    assert len(contrarian_turns) == 3
    tenth = contrarian_turns[0]["participant"]
    assert tenth["name"] == "The Tenth Man"
    # Contrarian takes the slot after the debaters
    assert tenth["model"] == "m-3"

    report = (run_dir / "report.md").read_text(encoding="utf-8")
    assert "- **Position:** Ban cars downtown" in report

    log = (run_dir / "debate.log").read_text(encoding="utf-8")
    assert "Phase transition: contrarian" in log
    assert "Alice (m-0): Turn from m-0" in log
    assert "Agreement Score: 9/10" in result.output


def test_debate_name_overrides_folder(patched_cli, tmp_path):
    result = CliRunner().invoke(
        main, ["--output-dir", str(tmp_path), "debate", "--topic", "Cars?", "--name", "cars-run"]
    )
    assert result.exit_code == 0, result.output
    assert _only_run_dir(tmp_path).name.startswith("cars-run-")


def test_debate_failure_exits_nonzero(monkeypatch, patched_cli, tmp_path):
    def failing(api_key, base_url, timeout_sec):
        def reply(model, messages):
            raise ProviderError(model, "unexpected status 401: unauthorized", 401)

        return FakeOpenRouter(api_key, base_url, timeout_sec, reply=reply)

    monkeypatch.setattr(cli_module, "OpenRouterClient", failing)

    result = CliRunner().invoke(main, ["--output-dir", str(tmp_path), "debate", "--topic", "Cars?"])

    assert result.exit_code == 1
    assert "Debate failed" in result.output
    run_dir = _only_run_dir(tmp_path)
    assert "Failed: [Alice]" in (run_dir / "debate.log").read_text(encoding="utf-8")
    assert not (run_dir / "transcript.json").exists()
