from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, Union
import asyncio
import inspect
import logging
import numpy as np

from .config import AgentConfig
from .engine import QISMELEngine
from .errors import QismelError
from .memory import MemoryStore, NarrativeLog
from .perception import PerceptionModel
from .signals import SignalProviders
from .state import StateTensor

logger = logging.getLogger(__name__)

Perceive = Callable[[], Union[StateTensor, Awaitable[StateTensor]]]
Transition = Tuple[float, StateTensor]


class Environment(Protocol):
    def step(self, action: str) -> Union[Transition, Awaitable[Transition]]:
        ...


@dataclass
class PerceptionEnvironment:
    """Environment stub: uniform random reward, next state from a PerceptionModel."""

    perception: PerceptionModel
    seed: Optional[int] = None
    rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.rng = np.random.default_rng(self.seed)

    def step(self, action: str) -> Transition:
        logger.info("executing action: %s", action)
        return float(self.rng.random()), self.perception.perceive()


@dataclass
class Agent:
    """Bounded perceive -> select -> act -> update loop around a QISMELEngine.

    The loop runs for at most `config.max_cycles` cycles and checks the
    optional stop event between cycles. Any core error is logged and
    re-raised, halting the loop; the value table keeps every update that
    completed before it.
    """

    perceive: Perceive
    environment: Environment
    engine: QISMELEngine
    signals: SignalProviders
    config: AgentConfig = field(default_factory=AgentConfig)
    narrative: NarrativeLog = field(default_factory=NarrativeLog)
    memory: MemoryStore = field(default_factory=MemoryStore)

    async def run(self, stop: Optional[asyncio.Event] = None) -> List[Dict[str, Any]]:
        cfg = self.config
        history: List[Dict[str, Any]] = []
        cycle = 0
        try:
            state = self._with_context(await _resolve(self.perceive()))
            for cycle in range(1, cfg.max_cycles + 1):
                if stop is not None and stop.is_set():
                    logger.info("stop requested, ending after %d cycles", cycle - 1)
                    self.narrative.record({"type": "stopped", "cycle": cycle - 1})
                    break
                action = await self.engine.select_action_async(state, cfg.action_set)
                self.memory.store("current_state", state)
                self.memory.store("selected_action", action)
                reward, next_state = await _resolve(self.environment.step(action))
                next_state = self._with_context(next_state)
                record = self.engine.update(state, action, reward, next_state, cfg.action_set, self.signals)
                event = {
                    "type": "cycle",
                    "cycle": cycle,
                    "action": action,
                    "reward": float(reward),
                    "value": record.value,
                }
                self.narrative.record(event)
                history.append(event)
                state = next_state
                if cfg.cycle_delay > 0 and cycle < cfg.max_cycles:
                    await asyncio.sleep(cfg.cycle_delay)
        except QismelError as exc:
            logger.error("halting at cycle %d: %s", cycle, exc)
            self.narrative.record({"type": "halt", "cycle": cycle, "error": str(exc)})
            raise
        return history

    def run_sync(self) -> List[Dict[str, Any]]:
        return asyncio.run(self.run())

    def _with_context(self, state: StateTensor) -> StateTensor:
        if state.task_context is not None or state.environment_context is not None:
            return state
        return state.with_context(self.config.task_context, self.config.environment_context)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
