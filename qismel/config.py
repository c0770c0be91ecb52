from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import math
import yaml

from .errors import ConfigError

DEFAULT_ACTIONS = ["move", "grab", "drop", "use"]


@dataclass
class QismelConfig:
    """Weights of the value update.

    learning_rate (alpha) and discount (gamma) drive the temporal-difference
    term; the other five scale the auxiliary signals. Values conventionally
    lie in [0, 1] but only finiteness is checked.
    """

    learning_rate: float = 0.1
    discount: float = 0.9
    intrinsic_weight: float = 0.1
    symbolic_weight: float = 0.1
    meta_learning_weight: float = 0.1
    evolutionary_weight: float = 0.1
    latent_weight: float = 0.1
    max_entries: Optional[int] = None

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name == "max_entries":
                continue
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigError(f"{f.name} must be a finite number, got {value!r}")
            setattr(self, f.name, float(value))
        if self.max_entries is not None and (
            isinstance(self.max_entries, bool) or not isinstance(self.max_entries, int) or self.max_entries <= 0
        ):
            raise ConfigError(f"max_entries must be a positive integer or null, got {self.max_entries!r}")

    @staticmethod
    def q_learning(learning_rate: float = 0.1, discount: float = 0.9) -> "QismelConfig":
        return QismelConfig(
            learning_rate=learning_rate,
            discount=discount,
            intrinsic_weight=0.0,
            symbolic_weight=0.0,
            meta_learning_weight=0.0,
            evolutionary_weight=0.0,
            latent_weight=0.0,
        )


@dataclass
class AgentConfig:
    action_set: List[str] = field(default_factory=lambda: list(DEFAULT_ACTIONS))
    max_cycles: int = 100
    cycle_delay: float = 0.1
    task_context: str = "Improve general intelligence capabilities"
    environment_context: str = "current_environment"
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        self.action_set = [str(a) for a in self.action_set]
        if not self.action_set:
            raise ConfigError("action_set must not be empty")
        if len(set(self.action_set)) != len(self.action_set):
            raise ConfigError(f"action_set has duplicate actions: {self.action_set}")
        if isinstance(self.max_cycles, bool) or not isinstance(self.max_cycles, int) or self.max_cycles <= 0:
            raise ConfigError(f"max_cycles must be a positive integer, got {self.max_cycles!r}")
        if not isinstance(self.cycle_delay, (int, float)) or self.cycle_delay < 0:
            raise ConfigError(f"cycle_delay must be a non-negative number, got {self.cycle_delay!r}")


@dataclass
class Config:
    engine: QismelConfig = field(default_factory=QismelConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)


def load_config(path: Union[str, Path]) -> Config:
    with open(path, "r") as f:
        raw = yaml.safe_load(f)
    return config_from_dict(raw or {})


def config_from_dict(raw: Dict[str, Any]) -> Config:
    if not isinstance(raw, dict):
        raise ConfigError(f"config must be a mapping, got {type(raw).__name__}")
    unknown = set(raw) - {"engine", "agent"}
    if unknown:
        raise ConfigError(f"unknown config sections: {sorted(unknown)}")
    return Config(
        engine=_build(QismelConfig, raw.get("engine") or {}),
        agent=_build(AgentConfig, raw.get("agent") or {}),
    )


def _build(cls, section: Dict[str, Any]):
    if not isinstance(section, dict):
        raise ConfigError(f"{cls.__name__} section must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(section) - known
    if unknown:
        raise ConfigError(f"unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**section)
