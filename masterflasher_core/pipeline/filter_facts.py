"""Local filtering of scored facts down to a high-value subset."""

from masterflasher_core.schemas.facts import Fact, ScoredFact
from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

SCORE_THRESHOLD = 9
MAX_FACTS_TO_PASS = 40


def _sort_key(fact: ScoredFact) -> tuple[float, str]:
    # Unscored facts rank as 0; ties break on id so the kept set does not
    # depend on input order.
    return (-(fact.score_total or 0), fact.id)


def filter_scored_facts(
    scored_facts: list[ScoredFact],
    threshold: float = SCORE_THRESHOLD,
    max_facts: int = MAX_FACTS_TO_PASS,
) -> list[Fact]:
    """Keep facts scoring above ``threshold``, capped at ``max_facts``.

    Rules:
        1. A lone fact always passes, whatever its score.
        2. Otherwise a fact passes when it is unscored (scoring failed, so it
           is kept rather than lost) or its total is strictly above the
           threshold.
        3. If more than ``max_facts`` pass, the highest totals win.

    Args:
        scored_facts: Facts joined with their scores
        threshold: Exclusive minimum total
        max_facts: Cap on the number of facts returned

    Returns:
        Plain facts with the score stripped
    """
    if len(scored_facts) == 1:
        logger.debug("Single fact, passing regardless of score")
        return [scored_facts[0].to_fact()]

    passing = [
        fact
        for fact in scored_facts
        if fact.score is None or fact.score.score_total > threshold
    ]
    unscored = sum(1 for fact in passing if fact.score is None)
    logger.info(
        f"{len(passing)}/{len(scored_facts)} facts passed threshold (> {threshold}); "
        f"{unscored} unscored kept"
    )

    if len(passing) > max_facts:
        passing = sorted(passing, key=_sort_key)[:max_facts]
        logger.info(f"Capped to top {max_facts} facts by score")

    return [fact.to_fact() for fact in passing]
