from __future__ import annotations

from typing import Any, List
import json

from .state import StateTensor


def compute_state_action_fingerprint(state: StateTensor, action: str) -> str:
    """Exact key for a (state, action) pair.

    Encodes the shape, every element of the numeric payload, the action
    label, each embedding (sorted by modality) and the sensor map (sorted by
    name) as compact JSON. Floats are written in shortest round-trip form,
    so two pairs share a key only when all of those parts are equal. Key
    length grows linearly with the payload size.
    """
    parts: List[Any] = [
        list(state.shape),
        state.data.tolist(),
        str(action),
    ]
    if state.embeddings:
        parts.append([[name, state.embeddings[name].tolist()] for name in sorted(state.embeddings)])
    else:
        parts.append(None)
    if state.sensors:
        parts.append([[name, state.sensors[name]] for name in sorted(state.sensors)])
    else:
        parts.append(None)
    return json.dumps(parts, separators=(",", ":"))
