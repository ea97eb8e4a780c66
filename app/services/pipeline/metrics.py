"""Timing and cost accounting for pipeline runs."""

import time
from dataclasses import dataclass

from app.models.pipeline_models import StageMetrics


@dataclass(frozen=True)
class CostModel:
    """USD prices per 1k tokens."""

    input_price_per_1k: float = 0.0
    output_price_per_1k: float = 0.0

    def estimate(self, input_tokens: int, output_tokens: int) -> float:
        cost = input_tokens / 1000 * self.input_price_per_1k + output_tokens / 1000 * self.output_price_per_1k
        return round(cost, 6)


class StageTimer:
    """Measures one stage and builds its metrics."""

    def __init__(self, cost_model: CostModel):
        self.cost_model = cost_model
        self._started = time.perf_counter()

    def finish(self, input_tokens: int = 0, output_tokens: int = 0) -> StageMetrics:
        return StageMetrics(
            elapsed_ms=int((time.perf_counter() - self._started) * 1000),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost_usd=self.cost_model.estimate(input_tokens, output_tokens),
        )
