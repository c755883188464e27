"""
ABC classification by trailing 7-day unit sales.

Classic Pareto cut: walk SKUs from best to worst seller, accumulating
their share of total 7-day sales.
- A: cumulative share <= 20%
- B: cumulative share <= 50%
- C: everything else that sold
- D: no sales in the last 7 days, whatever its position
"""

from typing import Sequence

import structlog

from models.analytics import AbcGrade, SkuMetrics

logger = structlog.get_logger(__name__)

GRADE_A_MAX_SHARE_PCT = 20
GRADE_B_MAX_SHARE_PCT = 50


def grade_for_share(running_sum: int, total: int) -> AbcGrade:
    """Grade for a cumulative share expressed as running_sum / total."""
    # Integer cross-multiplication keeps the boundaries exact
    if running_sum * 100 <= GRADE_A_MAX_SHARE_PCT * total:
        return AbcGrade.A
    if running_sum * 100 <= GRADE_B_MAX_SHARE_PCT * total:
        return AbcGrade.B
    return AbcGrade.C


def classify_abc(metrics: Sequence[SkuMetrics]) -> list[SkuMetrics]:
    """
    Assign ABC grades across all SKUs.

    Args:
        metrics: Per-SKU metrics (any order)

    Returns:
        New SkuMetrics list in the input order, with abc_grade set
    """
    total = sum(m.sales_7d for m in metrics)
    grades: dict[int, AbcGrade] = {}

    if total > 0:
        # sorted() is stable, so equal sellers keep input order
        ranked = sorted(range(len(metrics)), key=lambda i: metrics[i].sales_7d, reverse=True)
        running_sum = 0
        for index in ranked:
            sales_7d = metrics[index].sales_7d
            if sales_7d == 0:
                break
            running_sum += sales_7d
            grades[index] = grade_for_share(running_sum, total)

    graded = [
        m.model_copy(update={"abc_grade": grades.get(i, AbcGrade.D)})
        for i, m in enumerate(metrics)
    ]

    logger.debug(
        "abc_classified",
        skus=len(graded),
        total_sales_7d=total,
        grade_a=sum(1 for m in graded if m.abc_grade == AbcGrade.A),
        grade_d=sum(1 for m in graded if m.abc_grade == AbcGrade.D),
    )
    return graded
