"""
Router request-lifecycle stages and the stage payload shape.

The router posts one JSON payload per stage:

    {
        "version": 1,
        "stage": "SubgraphRequest",
        "control": "continue",
        "headers": {"authorization": ["Bearer ..."]},
        "body": ...
    }

and continues with whatever the coprocessor returns. Fields not listed here
are carried through untouched.
"""

from __future__ import annotations

import enum
from typing import Any, Optional, Union


Payload = dict[str, Any]

CONTINUE = "continue"

# "continue" or {"break": <http status>}
Control = Union[str, dict[str, int]]


class CoprocessorStage(str, enum.Enum):
    ROUTER_REQUEST = "RouterRequest"
    ROUTER_RESPONSE = "RouterResponse"
    SUPERGRAPH_REQUEST = "SupergraphRequest"
    SUPERGRAPH_RESPONSE = "SupergraphResponse"
    EXECUTION_REQUEST = "ExecutionRequest"
    EXECUTION_RESPONSE = "ExecutionResponse"
    SUBGRAPH_REQUEST = "SubgraphRequest"
    SUBGRAPH_RESPONSE = "SubgraphResponse"

    @classmethod
    def parse(cls, value: Any) -> Optional["CoprocessorStage"]:
        """Stage for a payload's ``stage`` value; None for anything unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


def break_with(status: int) -> dict[str, int]:
    """Control value that stops the request with ``status``."""
    return {"break": status}


def stage_label(payload: Any) -> str:
    """Stage name for logs and metric labels."""
    if isinstance(payload, dict):
        stage = CoprocessorStage.parse(payload.get("stage"))
        if stage is not None:
            return stage.value
    return "unknown"
