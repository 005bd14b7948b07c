from __future__ import annotations

from silo_pipeline.core.settings import Settings, settings
from silo_pipeline.schemas.pipeline import (
    CATEGORY_INITIAL_STAGE,
    CATEGORY_STAGES,
    Stage,
)


PIPELINE_ORDER: tuple[str, ...] = tuple(stage.value for stage in Stage)

TERMINAL_STAGES = frozenset({Stage.ACCEPTED.value, Stage.DECLINED.value})

LEGAL_STAGES = CATEGORY_STAGES

INITIAL_STAGES = CATEGORY_INITIAL_STAGE

# Adjacency used only by the "ordered" policy. Targets outside a category's
# legal set are still rejected by the membership check.
ORDERED_TRANSITIONS: dict[str, frozenset[str]] = {
    Stage.RECEIVED.value: frozenset(
        {Stage.REQUIRES_DOCS.value, Stage.IN_REVIEW.value, Stage.DECLINED.value}
    ),
    Stage.STARTUP_PIPELINE.value: frozenset(
        {
            Stage.REQUIRES_DOCS.value,
            Stage.IN_REVIEW.value,
            Stage.OFF_TO_LENDER.value,
            Stage.DECLINED.value,
        }
    ),
    Stage.REQUIRES_DOCS.value: frozenset({Stage.IN_REVIEW.value, Stage.DECLINED.value}),
    Stage.IN_REVIEW.value: frozenset(
        {
            Stage.REQUIRES_DOCS.value,
            Stage.READY_FOR_SIGNING.value,
            Stage.OFF_TO_LENDER.value,
            Stage.DECLINED.value,
        }
    ),
    Stage.READY_FOR_SIGNING.value: frozenset(
        {Stage.REQUIRES_DOCS.value, Stage.OFF_TO_LENDER.value, Stage.DECLINED.value}
    ),
    Stage.OFF_TO_LENDER.value: frozenset({Stage.OFFER.value, Stage.DECLINED.value}),
    Stage.OFFER.value: frozenset({Stage.ACCEPTED.value, Stage.DECLINED.value}),
}




def normalize_category(product_category: str | None) -> str:
    return (product_category or "").strip().lower()


def legal_stages(product_category: str | None, *, config: Settings | None = None) -> frozenset[str]:
    """Stage set of the category; unknown categories use the configured default category."""
    category = normalize_category(product_category)
    if category not in LEGAL_STAGES:
        category = (config or settings).pipeline_default_category
    return LEGAL_STAGES[category]


def initial_stage(product_category: str | None, *, config: Settings | None = None) -> str:
    category = normalize_category(product_category)
    if category in INITIAL_STAGES:
        return INITIAL_STAGES[category]
    return (config or settings).pipeline_default_initial_stage


def is_terminal(stage: str) -> bool:
    return stage in TERMINAL_STAGES


def stage_order_index(stage: str) -> int:
    try:
        return PIPELINE_ORDER.index(stage)
    except ValueError:
        return len(PIPELINE_ORDER)


def can_transition(
    current: str,
    requested: str,
    product_category: str | None,
    *,
    policy: str | None = None,
    config: Settings | None = None,
) -> bool:
    """Whether ``current -> requested`` is legal for the product category.

    Terminal origins and targets outside the category's stage set are always
    refused. ``requested == current`` is allowed and means "no change". The
    default "permissive" policy lets any other legal stage follow; "ordered"
    additionally requires an edge in ORDERED_TRANSITIONS.
    """
    config = config or settings
    if is_terminal(current):
        return False
    if requested not in legal_stages(product_category, config=config):
        return False
    if requested == current:
        return True
    if (policy or config.pipeline_transition_policy) == "ordered":
        return requested in ORDERED_TRANSITIONS.get(current, frozenset())
    return True


def rejection_reason(
    current: str,
    requested: str,
    product_category: str | None,
    *,
    config: Settings | None = None,
) -> str:
    if is_terminal(current):
        return "terminal_stage"
    if requested not in legal_stages(product_category, config=config):
        return "illegal_stage"
    return "not_adjacent"


def normalize_status(current: str, requested: str, product_category: str | None) -> str:
    """Requested stage when legal, otherwise the current one.

    Bookkeeping helper only; the transition flow raises instead of reverting.
    """
    if can_transition(current, requested, product_category):
        return requested
    return current
