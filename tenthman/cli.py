"""Click CLI: config loading, model selection, debate run, and output."""

import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, ConfigError, load_config, validate_run_settings
from tenthman.consensus import ConsensusJudge
from tenthman.debate import DebateEngine
from tenthman.errors import DebateError, RunCancelled
from tenthman.models import ModelInfo, Participant, Phase, Turn, Verdict
from tenthman.output import (
    TranscriptWriter,
    create_output_dir,
    generate_slug,
    print_phase,
    print_turn,
    print_verdict,
)
from tenthman.providers.base import ProviderError
from tenthman.providers.openrouter import OpenRouterClient
from tenthman.registry import DEFAULT_FREE_MODELS, ModelRegistry

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_participants(models: list[ModelInfo], names: list[str], count: int) -> list[Participant]:
    """Name debaters from the configured list, falling back to Agent-N."""
    participants: list[Participant] = []
    for i in range(count):
        name = names[i] if i < len(names) else f"Agent-{i + 1}"
        participants.append(Participant(id=i + 1, name=name, model=models[i].id))
    return participants


async def _select_models(client: OpenRouterClient, count: int) -> list[ModelInfo]:
    """Pick `count` free models from the live catalogue, or the built-in list."""
    try:
        catalogue = await client.list_models()
    except ProviderError as exc:
        logger.warning("Could not fetch models: %s. Using defaults.", exc)
        catalogue = DEFAULT_FREE_MODELS

    registry = ModelRegistry(catalogue)
    if not registry.free_models():
        logger.warning("No free models listed; using defaults.")
        registry = ModelRegistry(DEFAULT_FREE_MODELS)
    return registry.select(count)


class _ConsoleObserver:
    """Prints each turn and phase, and mirrors them into debate.log."""

    def __init__(self, writer: TranscriptWriter) -> None:
        self._writer = writer

    def on_turn(self, turn: Turn) -> None:
        print_turn(turn)
        self._writer.log(
            f"[Round {turn.round}] {turn.participant.name} ({turn.participant.model}): {turn.content}"
        )

    def on_phase(self, phase: Phase) -> None:
        print_phase(phase)
        self._writer.log(f"Phase transition: {phase.value}")


async def _run_debate(
    topic: str,
    api_key: str,
    config: AppConfig,
    agents: int,
    min_rounds: int,
    max_rounds: int,
    out_dir: Path,
) -> int:
    """Run one debate and write its outputs. Returns the process exit code."""
    client = OpenRouterClient(
        api_key=api_key,
        base_url=config.openrouter.base_url,
        timeout_sec=config.openrouter.timeout_sec,
    )

    # One extra slot for the contrarian
    selected = await _select_models(client, agents + 1)
    participants = _build_participants(selected, config.participant_names, agents)
    judge = ConsensusJudge(client, selected[0].id)

    writer = TranscriptWriter(out_dir)
    engine = DebateEngine(
        client=client,
        judge=judge,
        participants=participants,
        min_rounds=min_rounds,
        max_rounds=max_rounds,
        contrarian_model=selected[agents].id,
        observer=_ConsoleObserver(writer),
    )

    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    # add_signal_handler is unavailable on Windows event loops
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel.set)

    try:
        result = await engine.run(topic, cancel=cancel)
    except RunCancelled as exc:
        writer.log(f"Cancelled: {exc}")
        console.print(f"\n[bold yellow]Debate cancelled:[/bold yellow] {exc}")
        return 130
    except DebateError as exc:
        writer.log(f"Failed: {exc}")
        console.print(f"\n[bold red]Debate failed:[/bold red] {exc}")
        return 1
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)

    verdict = result.verdict or Verdict.empty()
    writer.write_json(result.transcript)
    writer.write_markdown(result.transcript, verdict)

    console.print()
    print_verdict(verdict)
    console.print(f"\n[dim]Debate complete. Output saved to: {out_dir}[/dim]")
    return 0


@click.group()
@click.option("--api-key", default=None, help="OpenRouter API key (overrides OPENROUTER_API_KEY)")
@click.option("--output-dir", default=None, help="Output directory for results (default: from config)")
@click.option("--agents", default=None, type=int, help="Number of debate agents, minimum 3 (default: from config)")
@click.option("--min-rounds", default=None, type=int, help="Rounds before the first consensus check (default: from config)")
@click.option("--max-rounds", default=None, type=int, help="Maximum free-debate rounds (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(
    ctx: click.Context,
    api_key: str | None,
    output_dir: str | None,
    agents: int | None,
    min_rounds: int | None,
    max_rounds: int | None,
    verbose: bool,
) -> None:
    """tenthman -- multi-agent debate orchestrator using the Tenth Man Rule.

    If nine agree, the tenth is obligated to argue the contrary position.
    """
    load_dotenv()
    _setup_logging(verbose)
    ctx.obj = {
        "api_key": api_key,
        "output_dir": output_dir,
        "agents": agents,
        "min_rounds": min_rounds,
        "max_rounds": max_rounds,
    }


@main.command()
@click.option("--topic", required=True, help="Debate topic")
@click.option("--name", default=None, help="Override output folder name (default: slug of the topic)")
@click.pass_obj
def debate(opts: dict, topic: str, name: str | None) -> None:
    """Run a multi-agent debate on a topic.

    \b
    Examples:
      tenthman debate --topic "Should cities ban private cars?"
      tenthman --agents 5 --min-rounds 2 --max-rounds 4 debate --topic "Is Rust worth it?"
    """
    try:
        config = load_config()
    except (FileNotFoundError, ConfigError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    api_key = opts["api_key"] or config.api_key
    if not api_key:
        console.print(
            f"[bold red]Error:[/bold red] API key required: set --api-key or {config.openrouter.api_key_env}."
        )
        sys.exit(1)

    agents = opts["agents"] if opts["agents"] is not None else config.defaults.agents
    min_rounds = opts["min_rounds"] if opts["min_rounds"] is not None else config.defaults.min_rounds
    max_rounds = opts["max_rounds"] if opts["max_rounds"] is not None else config.defaults.max_rounds
    try:
        validate_run_settings(agents, min_rounds, max_rounds)
    except ConfigError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    base_dir = Path(opts["output_dir"]) if opts["output_dir"] else config.defaults.output_dir
    out_dir = create_output_dir(base_dir, name or generate_slug(topic))

    console.print(f"\n[bold cyan]Debate:[/bold cyan] {topic}")
    console.print(f"Agents: {agents} | Rounds: {min_rounds}-{max_rounds} | Output: {out_dir}\n")

    exit_code = asyncio.run(
        _run_debate(
            topic=topic,
            api_key=api_key,
            config=config,
            agents=agents,
            min_rounds=min_rounds,
            max_rounds=max_rounds,
            out_dir=out_dir,
        )
    )
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
