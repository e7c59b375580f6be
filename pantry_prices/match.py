from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .models import Candidate, NormalizedQuery, ScoredCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    """Hand-tuned lexical weights. Keep them stable; results depend on parity."""

    head_prefix: float = 10.0       # name starts with the head root
    head_substring: float = 3.0     # head root appears elsewhere in the name
    token_exact: float = 1.0
    token_root: float = 0.5
    min_root_length: int = 3
    min_score: float = 0.0          # winners must score strictly above this


DEFAULT_WEIGHTS = ScoringWeights()


def score_candidate(
    query: NormalizedQuery,
    name: str | None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    if not name or not query.tokens:
        return 0.0

    title = name.lower()
    score = 0.0

    head_root = query.head_root
    if head_root:
        if title.startswith(head_root):
            score += weights.head_prefix
        elif head_root in title:
            score += weights.head_substring

    for token, root in query.rest:
        if token in title:
            score += weights.token_exact
        elif len(root) >= weights.min_root_length and root in title:
            score += weights.token_root

    return score


def rank(
    query: NormalizedQuery,
    candidates: Sequence[Candidate],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ScoredCandidate]:
    return [
        ScoredCandidate(candidate=c, score=score_candidate(query, c.name, weights), index=i)
        for i, c in enumerate(candidates)
    ]


def choose_best(
    query: NormalizedQuery,
    candidates: Sequence[Candidate],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoredCandidate | None:
    if not candidates:
        return None

    # Bare DOM price nodes have no title to score against.
    if all(c.name is None for c in candidates):
        return ScoredCandidate(candidate=candidates[0], score=0.0, index=0)

    best: ScoredCandidate | None = None
    for scored in rank(query, candidates, weights):
        if scored.candidate.name is None:
            continue
        logger.debug(
            "candidate %r score=%.1f price=%s",
            scored.candidate.name, scored.score, scored.candidate.price,
        )
        # Strict comparison keeps the first-extracted candidate on ties.
        if best is None or scored.score > best.score:
            best = scored

    if best is None or best.score <= weights.min_score:
        return None
    return best
