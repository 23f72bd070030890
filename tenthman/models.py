"""Pure dataclasses for the tenthman debate pipeline. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum

# Minimum agreement strength that counts as convergence
CONVERGENCE_THRESHOLD = 7


@dataclass(frozen=True)
class Debater:
    pass


@dataclass(frozen=True)
class Contrarian:
    position: str  # converged position the contrarian must argue against


Role = Debater | Contrarian


@dataclass(frozen=True)
class Participant:
    id: int
    name: str
    model: str             # remote model identifier, opaque
    role: Role = field(default_factory=Debater)

    @property
    def role_tag(self) -> str:
        return "contrarian" if isinstance(self.role, Contrarian) else "debater"


class Phase(str, Enum):
    FREE_DEBATE = "free_debate"
    CONTRARIAN = "contrarian"


@dataclass(frozen=True)
class Turn:
    round: int
    participant: Participant
    content: str


@dataclass
class Transcript:
    topic: str
    turns: list[Turn] = field(default_factory=list)
    phase: Phase = Phase.FREE_DEBATE
    rounds: int = 0        # highest completed round

    def append(self, turn: Turn) -> None:
        self.turns.append(turn)


@dataclass(frozen=True)
class Verdict:
    converged: bool
    position: str
    strength: int          # 1-10, 0 for the empty verdict
    dissenters: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "Verdict":
        return cls(converged=False, position="", strength=0, dissenters=())

    @property
    def is_strong(self) -> bool:
        return self.converged and self.strength >= CONVERGENCE_THRESHOLD


@dataclass
class RunResult:
    transcript: Transcript
    verdict: Verdict | None  # None only if the judge never ran


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str
    prompt_price: str | None = None      # OpenRouter reports prices as strings
    completion_price: str | None = None

    @property
    def is_free(self) -> bool:
        return self.prompt_price == "0" and self.completion_price == "0"
