from __future__ import annotations  # Workflow agents exported for node wiring

from .compactor import CompactionResult, ContextCompactor
from .instance_writer import GenerationOutcome, InstanceWriter
from .interviewer import InterviewerAgent, focus_areas, session_progress
from .threshold_advisor import ThresholdAdvisor, parse_recommendation

__all__ = [
    "CompactionResult",
    "ContextCompactor",
    "GenerationOutcome",
    "InstanceWriter",
    "InterviewerAgent",
    "ThresholdAdvisor",
    "focus_areas",
    "parse_recommendation",
    "session_progress",
]
