"""
Chat history normalization.

Gemini chat sessions accept only "user" and "model" turns, must open with a
user turn, and reject empty parts. Clients send whatever their UI kept, so the
history is normalized before every chat call.
"""
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Optional

MODEL_ROLES = frozenset({"assistant", "model"})


@dataclass(frozen=True)
class HistoryTurn:
    role: Literal["user", "model"]
    text: str


def _turn_fields(turn: Any) -> tuple[Optional[str], Any]:
    if isinstance(turn, HistoryTurn):
        return turn.role, turn.text
    if isinstance(turn, dict):
        return turn.get("role"), turn.get("content", turn.get("text"))
    return getattr(turn, "role", None), getattr(turn, "content", None)


def normalize_history(turns: Optional[Iterable[Any]]) -> list[HistoryTurn]:
    """Turn client chat messages into a history a chat session will accept.

    Turns without content are dropped, assistant turns become model turns,
    anything else is treated as user-origin, and leading model turns are
    removed so the history starts with the user. Never raises; unusable input
    yields an empty history.
    """
    normalized = []
    for turn in turns or ():
        role, content = _turn_fields(turn)
        if not isinstance(content, str) or not content:
            continue
        mapped = "model" if role in MODEL_ROLES else "user"
        normalized.append(HistoryTurn(role=mapped, text=content))

    start = 0
    while start < len(normalized) and normalized[start].role != "user":
        start += 1
    return normalized[start:]
