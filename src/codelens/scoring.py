"""Category scorer - folds a MetricSet into the five quality categories."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .metrics import MetricSet

READABILITY = "Readability"
MAINTAINABILITY = "Maintainability"
PERFORMANCE = "Performance"
SECURITY = "Security"
CODE_SMELL = "Code Smell"

CATEGORY_NAMES = (READABILITY, MAINTAINABILITY, PERFORMANCE, SECURITY, CODE_SMELL)

# Category -> MetricSet fields averaged into it
CATEGORY_METRICS = {
    READABILITY: ("line_length", "comment_ratio", "consistency_score"),
    MAINTAINABILITY: ("complexity_score", "comment_ratio"),
    PERFORMANCE: ("complexity_score", "best_practices_score"),
    SECURITY: ("security_score",),
    CODE_SMELL: ("best_practices_score", "consistency_score", "line_length"),
}

CATEGORY_WEIGHTS = {
    READABILITY: 0.25,
    MAINTAINABILITY: 0.25,
    PERFORMANCE: 0.20,
    SECURITY: 0.20,
    CODE_SMELL: 0.10,
}


@dataclass(frozen=True)
class CategoryScore:
    """One quality dimension, scored 0-100."""

    name: str
    score: int

    def to_dict(self) -> dict:
        return {"name": self.name, "score": self.score}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def score_categories(metrics: MetricSet) -> list[CategoryScore]:
    """Score every category, in display order."""
    scores = []
    for name in CATEGORY_NAMES:
        values = [getattr(metrics, attr) for attr in CATEGORY_METRICS[name]]
        scores.append(CategoryScore(name, clamp_score(sum(values) / len(values))))
    return scores


def overall_score(categories: list[CategoryScore]) -> int:
    """Weighted sum of category scores using CATEGORY_WEIGHTS."""
    total = sum(CATEGORY_WEIGHTS.get(c.name, 0.0) * c.score for c in categories)
    return clamp_score(total)


def zero_categories() -> list[CategoryScore]:
    return [CategoryScore(name, 0) for name in CATEGORY_NAMES]
