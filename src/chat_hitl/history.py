"""Per-workspace dialog history and counters."""

from collections import defaultdict

from .core import HistoryEntry
from .workspace import normalize_workspace


class HistoryLedger:
    """Append-only history plus a monotonic dialog counter per workspace.

    Keys are normalized workspace paths, so "C:\\Proj" and "c:/proj/" share
    one sequence.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[HistoryEntry]] = defaultdict(list)
        self._counters: dict[str, int] = defaultdict(int)

    def next_sequence(self, workspace: str) -> int:
        key = normalize_workspace(workspace)
        self._counters[key] += 1
        return self._counters[key]

    def count(self, workspace: str) -> int:
        return self._counters.get(normalize_workspace(workspace), 0)

    def total_count(self) -> int:
        return sum(self._counters.values())

    def append(self, workspace: str, entry: HistoryEntry) -> None:
        self._entries[normalize_workspace(workspace)].append(entry)

    def entries(self, workspace: str) -> list[HistoryEntry]:
        return list(self._entries.get(normalize_workspace(workspace), []))

    def all_entries(self) -> list[HistoryEntry]:
        merged = [e for entries in self._entries.values() for e in entries]
        merged.sort(key=lambda e: e.timestamp)
        return merged
