import math
import logging
from typing import Dict, List, NamedTuple, Optional, Tuple

from utils import constants


class EliminationDecision(NamedTuple):
    stop: bool
    reason: str
    candidate: Optional[str] = None
    p_value: Optional[float] = None


class StoppingCriteria:
    """
    Evaluates whether the backward elimination loop should terminate.

    Rules:
    - empty: no p-values reported (or only the constant column).
    - significance: the worst remaining p-value is <= a_out.
    - exhausted: no feature columns left after a removal.

    Tie-break: among features sharing the maximum p-value, the one appearing
    first in the dataset's column order is chosen. Keys missing from the column
    order rank after all known columns, by name. NaN p-values count as 1.0.
    """

    def __init__(self, a_out: float, logger: Optional[logging.Logger] = None):
        self.a_out = a_out
        self.logger = logger or logging.getLogger(__name__)

    def evaluate(self, pvalues: Dict[str, float], column_order: List[str]) -> EliminationDecision:
        """
        Decides on one iteration's significance map.

        Args:
            pvalues: Feature -> p-value as reported by the delegate.
            column_order: Current feature columns in dataset order.
        """
        if not pvalues:
            return EliminationDecision(True, "No p-values reported")

        candidates = {k: v for k, v in pvalues.items() if k != constants.CONSTANT_COLUMN}
        if not candidates:
            return EliminationDecision(True, "No candidate features left to evaluate")

        candidate, p_value = self.select_worst(candidates, column_order)
        if p_value <= self.a_out:
            return EliminationDecision(
                True,
                f"All features significant: max p-value {p_value:.4g} <= a_out {self.a_out:.4g}",
                candidate,
                p_value,
            )

        return EliminationDecision(False, "", candidate, p_value)

    def select_worst(self, candidates: Dict[str, float], column_order: List[str]) -> Tuple[str, float]:
        """Feature with the highest p-value under the deterministic tie-break."""
        position = {name: i for i, name in enumerate(column_order)}

        def rank(key):
            return (position.get(key, len(position)), str(key))

        worst_key, worst_p = None, -math.inf
        for key in sorted(candidates, key=rank):
            p = self._clean(key, candidates[key])
            if p > worst_p:
                worst_key, worst_p = key, p
        return worst_key, worst_p

    def features_exhausted(self, n_features: int) -> Tuple[bool, str]:
        if n_features == 0:
            return True, "No feature columns left"
        return False, ""

    def _clean(self, key: str, p: float) -> float:
        if p is None or math.isnan(p):
            self.logger.warning(f"p-value for '{key}' is undefined; treating it as 1.0")
            return 1.0
        return float(p)
