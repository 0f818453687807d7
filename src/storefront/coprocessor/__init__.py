"""
Coprocessor module - router stage hooks.

Provides:
- CoprocessorStage: the router's request-lifecycle stages
- StagePipeline: stage -> handler dispatch
- create_coprocessor_app: FastAPI app serving the pipeline
"""

from __future__ import annotations

from .app import create_coprocessor_app
from .metrics import CoprocessorMetrics
from .pipeline import StagePipeline, pass_through, tag_subgraph_request
from .stages import CONTINUE, CoprocessorStage, Payload, break_with

__all__ = [
    "CoprocessorStage",
    "Payload",
    "CONTINUE",
    "break_with",
    "StagePipeline",
    "pass_through",
    "tag_subgraph_request",
    "CoprocessorMetrics",
    "create_coprocessor_app",
]
