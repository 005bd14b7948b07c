from silo_pipeline.models.application import Application
from silo_pipeline.models.stage_transition import StageTransition

__all__ = [
    "Application",
    "StageTransition",
]
