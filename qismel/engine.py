from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence
import logging

from .config import QismelConfig
from .errors import ConfigError
from .fingerprint import compute_state_action_fingerprint
from .signals import SignalProviders, SignalValues
from .state import StateTensor
from .value_table import ValueTable

logger = logging.getLogger(__name__)

Policy = Callable[[StateTensor, Sequence[str]], Awaitable[Optional[str]]]


class EnginePhase(Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    UPDATING = "updating"


@dataclass(frozen=True)
class UpdateRecord:
    key: str
    previous: float
    value: float
    td_error: float
    max_next: float
    signals: SignalValues


@dataclass
class QISMELEngine:
    """Greedy action selection and the weighted multi-signal value update.

        Q(s,a) <- Q(s,a)
                  + alpha * (r + gamma * max_a' Q(s',a') - Q(s,a))
                  + beta * intrinsic(s,a) + delta * symbolic(s)
                  + epsilon * meta_learning(task, env)
                  + zeta * evolutionary(population) + eta * latent(s)

    The value table is the only state the engine mutates. States are read,
    never modified.
    """

    config: QismelConfig = field(default_factory=QismelConfig)
    table: Optional[ValueTable] = None
    policy: Optional[Policy] = None
    phase: EnginePhase = EnginePhase.IDLE

    def __post_init__(self) -> None:
        if self.table is None:
            self.table = ValueTable(max_entries=self.config.max_entries)

    # -------------------- Lookup --------------------

    def q_value(self, state: StateTensor, action: str) -> float:
        return self.table.get(compute_state_action_fingerprint(state, action))

    def max_q(self, state: StateTensor, action_set: Sequence[str]) -> float:
        _require_actions(action_set)
        return self.table.max_over(compute_state_action_fingerprint(state, a) for a in action_set)

    # -------------------- Selection --------------------

    def select_action(self, state: StateTensor, action_set: Sequence[str]) -> str:
        """Return the highest-valued action; ties go to the earliest action in `action_set`."""
        _require_actions(action_set)
        self.phase = EnginePhase.SELECTING
        try:
            best_action = action_set[0]
            best_value = float("-inf")
            for action in action_set:
                value = self.q_value(state, action)
                if value > best_value:
                    best_action, best_value = action, value
            logger.debug("selected %s (value %.6f) from %d actions", best_action, best_value, len(action_set))
            return best_action
        finally:
            self.phase = EnginePhase.IDLE

    async def select_action_async(self, state: StateTensor, action_set: Sequence[str]) -> str:
        """Consult the external policy, if any, then fall back to the greedy scan.

        A policy answer outside `action_set` (or None) is ignored.
        """
        _require_actions(action_set)
        if self.policy is not None:
            self.phase = EnginePhase.SELECTING
            try:
                suggestion = await self.policy(state, action_set)
            finally:
                self.phase = EnginePhase.IDLE
            if suggestion is not None and suggestion in action_set:
                return suggestion
            if suggestion is not None:
                logger.warning("policy suggested unknown action %r, using greedy selection", suggestion)
        return self.select_action(state, action_set)

    # -------------------- Update --------------------

    def update(
        self,
        state: StateTensor,
        action: str,
        reward: float,
        next_state: StateTensor,
        action_set: Sequence[str],
        signals: SignalProviders,
    ) -> UpdateRecord:
        """Apply one weighted update to Q(state, action).

        Everything that can fail (signal providers, the next-state lookup)
        runs before the single table write, so a raised error leaves the
        table unchanged.
        """
        _require_actions(action_set)
        reward = float(reward)
        cfg = self.config
        self.phase = EnginePhase.UPDATING
        try:
            key = compute_state_action_fingerprint(state, action)
            max_next = self.max_q(next_state, action_set)
            values = signals.evaluate(state, action)
            auxiliary = (
                _weighted(cfg.intrinsic_weight, values.intrinsic)
                + _weighted(cfg.symbolic_weight, values.symbolic)
                + _weighted(cfg.meta_learning_weight, values.meta_learning)
                + _weighted(cfg.evolutionary_weight, values.evolutionary)
                + _weighted(cfg.latent_weight, values.latent)
            )
            seen: List[float] = []

            def apply(current: float) -> float:
                seen.append(current)
                td_error = reward + cfg.discount * max_next - current
                return current + cfg.learning_rate * td_error + auxiliary

            new_value = self.table.update(key, apply)
            previous = seen[0]
            record = UpdateRecord(
                key=key,
                previous=previous,
                value=new_value,
                td_error=reward + cfg.discount * max_next - previous,
                max_next=max_next,
                signals=values,
            )
            logger.debug(
                "update %s: %.6f -> %.6f (td_error=%.6f, max_next=%.6f, %s)",
                action, previous, new_value, record.td_error, max_next, values,
            )
            return record
        finally:
            self.phase = EnginePhase.IDLE


def _require_actions(action_set: Sequence[str]) -> None:
    if len(action_set) == 0:
        raise ConfigError("action set must not be empty")


def _weighted(weight: float, value: float) -> float:
    # A zero weight contributes exactly nothing, even for inf or nan signals.
    if weight == 0.0:
        return 0.0
    return weight * value
