"""
AzScan

Cough recording and respiratory screening client.

Usage:
    from azscan import Pipeline, PipelineConfig

    pipeline = Pipeline(PipelineConfig())
    outcome = pipeline.process_file("cough.wav")
    print(outcome.status, outcome.prediction)

Author: Cleansheet LLC
License: CC BY 4.0
"""

from azscan.pipeline.pipeline import Pipeline, ScreeningOutcome, ScreeningStatus
from azscan.pipeline.config import PipelineConfig

__version__ = "0.1.0"
__author__ = "Cleansheet LLC"
__license__ = "CC BY 4.0"

__all__ = [
    "Pipeline",
    "PipelineConfig",
    "ScreeningOutcome",
    "ScreeningStatus",
    "__version__",
]
