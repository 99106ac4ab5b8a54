"""Credit accounting for the paid secondary source."""

from collections import defaultdict
from enum import Enum

from adintel.config import COST_PER_CREDIT


class CostOperation(str, Enum):
    BRAND_SEARCH = "brand_search"
    AD_SEARCH = "ad_search"
    AD_DETAILS = "ad_details"
    ANALYTICS = "analytics"


class CostLedger:
    """
    Running credit totals per operation for one aggregation session.

    Create one per session; never share a ledger between concurrent sessions.
    """

    def __init__(self, cost_per_credit: float = None):
        self.cost_per_credit = COST_PER_CREDIT if cost_per_credit is None else cost_per_credit
        self._credits: dict[CostOperation, float] = defaultdict(float)

    def record(self, operation: CostOperation, credits: float = 1):
        if credits < 0:
            raise ValueError(f"credits must be non-negative, got {credits}")
        self._credits[CostOperation(operation)] += credits

    @property
    def total_credits(self) -> float:
        return sum(self._credits.values())

    def credits_by_operation(self) -> dict[str, float]:
        return {op.value: self._credits.get(op, 0.0) for op in CostOperation}

    def breakdown(self) -> dict[str, float]:
        """USD per operation plus `total`."""
        costs = {
            op: credits * self.cost_per_credit
            for op, credits in self.credits_by_operation().items()
        }
        costs["total"] = self.total_credits * self.cost_per_credit
        return costs

    @property
    def total_cost(self) -> float:
        return self.total_credits * self.cost_per_credit

    def reset(self):
        self._credits.clear()
