from typing import Iterator

from voice_assistant.models import Turn


class HistoryStore:
    """
    Append-only, ordered conversation history.

    The orchestrator is the only writer. Readers get snapshots (tuples), so a
    snapshot taken before an append never sees the later turn.
    """

    def __init__(self) -> None:
        self._turns: list[Turn] = []

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def snapshot(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def clear(self) -> None:
        """Session reset. The only operation that removes turns."""
        self._turns = []

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.snapshot())
