"""
Core module for configuration, logging and grading logic.

Grading and scoring modules import the models package, which in turn
imports datetime_utils and grade_scale from here, so only settings is
exposed at package level. Import the rest directly:
from assessment.core.scoring import ...
"""
from .config import settings

__all__ = ["settings"]
