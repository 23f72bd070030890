"""Prompt templates and message assembly for debate turns."""

from openai.types.chat import ChatCompletionMessageParam

from tenthman.models import Contrarian, Debater, Participant, Phase, Transcript

DEBATER_PROMPT = (
    "You are {name}, a debate participant. The topic is: {topic}. "
    "Provide your analysis and perspective. Be concise but thorough."
)

ENGAGE_CONTRARIAN_PROMPT = (
    "You are {name}, a debate participant. The topic is: {topic}. "
    "The Tenth Man has been activated and is arguing against the group consensus. "
    "You MUST directly engage with the Tenth Man's arguments: address them specifically, "
    "refute or acknowledge them. Be concise but thorough."
)

CONTRARIAN_PROMPT = (
    "You are The Tenth Man. The group has reached consensus on the following position: {position}. "
    "You are OBLIGATED to argue the contrary position, not as token opposition, "
    "but with genuine analytical rigor. "
    "Build the strongest possible case AGAINST the consensus. "
    "Investigate, find evidence, construct scenarios where the majority is wrong. "
    "Be thorough but concise."
)

TURN_DIRECTIVE = "It is now your turn to contribute. Provide your perspective on the topic."


def system_prompt(participant: Participant, topic: str, phase: Phase) -> str:
    role = participant.role
    if isinstance(role, Contrarian):
        return CONTRARIAN_PROMPT.format(position=role.position)
    if isinstance(role, Debater):
        if phase is Phase.CONTRARIAN:
            return ENGAGE_CONTRARIAN_PROMPT.format(name=participant.name, topic=topic)
        return DEBATER_PROMPT.format(name=participant.name, topic=topic)
    raise TypeError(f"Unknown participant role: {role!r}")


def build_messages(participant: Participant, transcript: Transcript) -> list[ChatCompletionMessageParam]:
    """Build the request for one turn: instruction, every prior turn, then the directive."""
    messages: list[ChatCompletionMessageParam] = [
        {"role": "system", "content": system_prompt(participant, transcript.topic, transcript.phase)},
    ]
    for turn in transcript.turns:
        messages.append({"role": "user", "content": f"{turn.participant.name}: {turn.content}"})
    messages.append({"role": "user", "content": TURN_DIRECTIVE})
    return messages
