# /liquidator/strategies/selector.py
from typing import Iterable, List

from liquidator.core.models import Opportunity


def select_opportunities(opportunities: Iterable[Opportunity], min_profit_wei: int, max_count: int) -> List[Opportunity]:
    """
    The execution batch for a run: opportunities at or above the profit
    floor, most profitable first, at most ``max_count`` of them. Equal
    profits keep scan order (``sorted`` is stable).
    """
    eligible = [o for o in opportunities if o.estimated_profit >= min_profit_wei]
    ranked = sorted(eligible, key=lambda o: o.estimated_profit, reverse=True)
    return ranked[:max(max_count, 0)]
