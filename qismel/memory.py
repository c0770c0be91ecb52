from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ConfigError


@dataclass
class MemoryStore:
    """Keyed working memory split into short-term and long-term maps.

    `store` always writes short-term. Once `short_term_capacity` is exceeded
    the oldest short-term entry is consolidated into long-term memory, where
    it stays until overwritten. `retrieve` looks in short-term first.
    """

    short_term: Dict[str, Any] = field(default_factory=dict)
    long_term: Dict[str, Any] = field(default_factory=dict)
    short_term_capacity: Optional[int] = None

    def __post_init__(self) -> None:
        if self.short_term_capacity is not None and self.short_term_capacity <= 0:
            raise ConfigError(f"short_term_capacity must be positive, got {self.short_term_capacity}")

    def __contains__(self, key: object) -> bool:
        return key in self.short_term or key in self.long_term

    def store(self, key: str, value: Any) -> None:
        # Re-inserting moves the key to the newest position.
        self.short_term.pop(key, None)
        self.short_term[key] = value
        cap = self.short_term_capacity
        while cap is not None and len(self.short_term) > cap:
            oldest = next(iter(self.short_term))
            self.long_term[oldest] = self.short_term.pop(oldest)

    def retrieve(self, key: str, default: Any = None) -> Any:
        if key in self.short_term:
            return self.short_term[key]
        return self.long_term.get(key, default)

    def consolidate(self) -> int:
        """Move every short-term entry into long-term memory; returns how many moved."""
        moved = len(self.short_term)
        self.long_term.update(self.short_term)
        self.short_term.clear()
        return moved


@dataclass
class NarrativeLog:
    """Append-only record of agent events (one dict per event, keyed by "type")."""

    events: List[Dict[str, Any]] = field(default_factory=list)
    max_events: Optional[int] = None

    def record(self, event: Dict[str, Any]) -> None:
        self.events.append(dict(event))
        if self.max_events is not None and len(self.events) > self.max_events:
            del self.events[: len(self.events) - self.max_events]

    def of_type(self, kind: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("type") == kind]

    def summarize(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for e in self.events:
            k = e.get("type", "unknown")
            counts[k] = counts.get(k, 0) + 1
        return counts

    def total_reward(self) -> float:
        return float(sum(e.get("reward", 0.0) for e in self.of_type("cycle")))

    def action_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for e in self.of_type("cycle"):
            a = e.get("action")
            counts[a] = counts.get(a, 0) + 1
        return counts
