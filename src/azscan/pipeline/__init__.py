"""
Pipeline Module

End-to-end cough screening orchestration.
"""

from azscan.pipeline.pipeline import Pipeline, ScreeningOutcome, ScreeningStatus
from azscan.pipeline.config import PipelineConfig, load_config

__all__ = [
    "Pipeline",
    "PipelineConfig",
    "ScreeningOutcome",
    "ScreeningStatus",
    "load_config",
]
