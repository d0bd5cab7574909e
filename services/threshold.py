"""Deterministic saturation scoring for interview sessions."""
from __future__ import annotations

from typing import Optional, Sequence

from config import WorkflowSettings
from workflow.models import AdvisoryRecommendation, Exchange, ThresholdMetrics

DEPTH_MAX = 30.0
DIVERSITY_MAX = 25.0
COMPLEXITY_MAX = 25.0
RICHNESS_MAX = 20.0

DEPTH_REFERENCE_CHARS = 200
DIVERSITY_REFERENCE_SKILLS = 5
COMPLEXITY_REFERENCE_WORKFLOWS = 3
RICHNESS_REFERENCE_CHARS = 3000


def average_answer_length(exchanges: Sequence[Exchange]) -> float:
    """Return the mean answer length in characters, 0 for an empty history."""

    if not exchanges:
        return 0.0
    return sum(len(item.answer) for item in exchanges) / len(exchanges)


def compute_metrics(
    exchanges: Sequence[Exchange],
    *,
    skill_count: int,
    workflow_count: int,
    context_length: int,
) -> ThresholdMetrics:
    """Score a conversation across depth, diversity, complexity and richness.

    Each component is capped at its maximum and ``overall_score`` is their sum,
    so identical inputs always produce identical metrics.
    """

    depth = min(DEPTH_MAX, DEPTH_MAX * average_answer_length(exchanges) / DEPTH_REFERENCE_CHARS)
    diversity = min(DIVERSITY_MAX, DIVERSITY_MAX * skill_count / DIVERSITY_REFERENCE_SKILLS)
    complexity = min(COMPLEXITY_MAX, COMPLEXITY_MAX * workflow_count / COMPLEXITY_REFERENCE_WORKFLOWS)
    richness = min(RICHNESS_MAX, RICHNESS_MAX * context_length / RICHNESS_REFERENCE_CHARS)
    return ThresholdMetrics(
        conversation_depth=depth,
        skill_diversity=diversity,
        workflow_complexity=complexity,
        context_richness=richness,
        overall_score=depth + diversity + complexity + richness,
    )


def should_generate(metrics: ThresholdMetrics, exchange_count: int, cfg: WorkflowSettings) -> bool:
    """Generation starts once saturated or when the exchange cap is reached."""

    return metrics.overall_score >= cfg.saturation_score or exchange_count >= cfg.max_exchanges


def in_advisory_band(metrics: ThresholdMetrics, cfg: WorkflowSettings) -> bool:
    return cfg.advisory_min_score <= metrics.overall_score < cfg.advisory_max_score


def apply_advisory(
    metrics: ThresholdMetrics,
    recommendation: Optional[AdvisoryRecommendation],
    cfg: WorkflowSettings,
) -> ThresholdMetrics:
    """Record the advisory recommendation; only ``override`` mode may change the score."""

    update = {"advisory_recommendation": recommendation}
    if cfg.advisory_mode == "override" and recommendation == "ready":
        update["overall_score"] = max(metrics.overall_score, cfg.advisory_override_score)
        update["advisory_override"] = True
    return metrics.model_copy(update=update)


__all__ = [
    "apply_advisory",
    "average_answer_length",
    "compute_metrics",
    "in_advisory_band",
    "should_generate",
]
