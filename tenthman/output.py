"""Rich console output and transcript/report/log files for debate runs."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.text import Text

from tenthman.models import Phase, Transcript, Turn, Verdict

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_SLUG_MAX_LEN = 50

PHASE_TITLES = {
    Phase.FREE_DEBATE: ("Free Debate", "cyan"),
    Phase.CONTRARIAN: ("Tenth Man", "red"),
}


def generate_slug(text: str, max_len: int = _SLUG_MAX_LEN) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len].rstrip("-")


def create_output_dir(base: Path, slug: str) -> Path:
    """Create base/<slug>-YYYYMMDD-HHMMSS and return it."""
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    out_dir = base / f"{slug}-{timestamp}"
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir


def print_turn(turn: Turn) -> None:
    """Print a turn with its full content."""
    line = Text()
    line.append(f"[Round {turn.round}] ", style="yellow")
    line.append(turn.participant.name, style="bold")
    line.append(f": {turn.content}")
    console.print(line)


def print_phase(phase: Phase) -> None:
    """Print a colored banner for the phase."""
    title, color = PHASE_TITLES[phase]
    console.print()
    console.print(Rule(f"[bold {color}]Phase: {title}[/bold {color}]", style=color))
    console.print()


def print_verdict(verdict: Verdict) -> None:
    """Print the consensus summary."""
    if verdict.converged:
        console.print("Consensus Detected: [bold green]Yes[/bold green]")
    else:
        console.print("Consensus Detected: [bold red]No[/bold red]")
    console.print(f"Position: {escape(verdict.position)}")
    console.print(f"Agreement Score: [yellow]{verdict.strength}/10[/yellow]")
    if verdict.dissenters:
        console.print(f"Dissenters: {escape(', '.join(verdict.dissenters))}")


def transcript_to_dict(transcript: Transcript) -> dict:
    """Serialize a transcript for transcript.json."""
    return {
        "topic": transcript.topic,
        "phase": transcript.phase.value,
        "rounds": transcript.rounds,
        "turns": [
            {
                "round": t.round,
                "participant": {
                    "id": t.participant.id,
                    "name": t.participant.name,
                    "model": t.participant.model,
                    "role": t.participant.role_tag,
                },
                "content": t.content,
            }
            for t in transcript.turns
        ],
    }


def verdict_to_dict(verdict: Verdict) -> dict:
    """Serialize a verdict using the judge's JSON field names."""
    return {
        "consensus_detected": verdict.converged,
        "consensus_position": verdict.position,
        "agreement_score": verdict.strength,
        "dissenting_agents": list(verdict.dissenters),
    }


class TranscriptWriter:
    """Writes debate.log incrementally, and transcript.json / report.md at the end."""

    def __init__(self, out_dir: Path) -> None:
        self.out_dir = out_dir
        self.log_path = out_dir / "debate.log"

    def log(self, message: str) -> None:
        """Append one timestamped line to debate.log immediately."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with self.log_path.open("a", encoding="utf-8") as f:
            f.write(f"{timestamp} {message}\n")

    def write_json(self, transcript: Transcript) -> Path:
        path = self.out_dir / "transcript.json"
        path.write_text(json.dumps(transcript_to_dict(transcript), indent=2), encoding="utf-8")
        logger.info("Transcript saved to: %s", path)
        return path

    def write_markdown(self, transcript: Transcript, verdict: Verdict) -> Path:
        """Write a human-readable report grouped by round."""
        path = self.out_dir / "report.md"
        participants = sorted(
            {(t.participant.id, t.participant.name, t.participant.model) for t in transcript.turns}
        )

        lines: list[str] = [
            f"# Debate: {transcript.topic}",
            "",
            f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"**Rounds:** {transcript.rounds}",
            f"**Final phase:** {PHASE_TITLES[transcript.phase][0]}",
            "**Participants:** " + ", ".join(f"{name} ({model})" for _, name, model in participants),
            "",
            "---",
            "",
        ]

        current_round = None
        for turn in transcript.turns:
            if turn.round != current_round:
                current_round = turn.round
                lines.append(f"## Round {current_round}")
                lines.append("")
            lines.append(f"### {turn.participant.name} ({turn.participant.model})")
            lines.append("")
            lines.append(turn.content)
            lines.append("")

        lines += [
            "## Consensus",
            "",
            f"- **Detected:** {'Yes' if verdict.converged else 'No'}",
            f"- **Position:** {verdict.position or '(none)'}",
            f"- **Agreement score:** {verdict.strength}/10",
            f"- **Dissenters:** {', '.join(verdict.dissenters) or '(none)'}",
            "",
        ]

        path.write_text("\n".join(lines), encoding="utf-8")
        logger.info("Report saved to: %s", path)
        return path
