# src/tracking/cost_calculator.py — v1
"""Cost calculation from LLM responses.

Converts provider token counts into estimated USD cost and into the
TokenUsage / ExecutionMetadata shapes carried by execution results.
"""

from __future__ import annotations

from pydantic import BaseModel

from stratagent.core.models import ExecutionMetadata, TokenUsage
from stratagent.llm.models import LLMResponse


class ModelPricing(BaseModel):
    """LLM model pricing configuration."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float
    cache_read_per_1m: float = 0.0
    cache_write_per_1m: float = 0.0


# Default pricing per 1M tokens
DEFAULT_PRICING: dict[str, ModelPricing] = {
    "claude-sonnet-4-20250514": ModelPricing(
        model="claude-sonnet-4-20250514",
        input_price_per_1m=3.0, output_price_per_1m=15.0,
        cache_read_per_1m=0.3, cache_write_per_1m=3.75,
    ),
    "claude-haiku-4-5-20251001": ModelPricing(
        model="claude-haiku-4-5-20251001",
        input_price_per_1m=0.80, output_price_per_1m=4.0,
        cache_read_per_1m=0.08, cache_write_per_1m=1.0,
    ),
    "gpt-4o": ModelPricing(
        model="gpt-4o",
        input_price_per_1m=2.50, output_price_per_1m=10.0,
    ),
    "gpt-4o-mini": ModelPricing(
        model="gpt-4o-mini",
        input_price_per_1m=0.15, output_price_per_1m=0.60,
    ),
}


def compute_response_cost(
    response: LLMResponse,
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Compute estimated cost for a single LLM response in USD.

    Unknown models cost 0.0.
    """
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(response.model)
    if p is None:
        return 0.0

    return (response.input_tokens * p.input_price_per_1m / 1_000_000
            + response.output_tokens * p.output_price_per_1m / 1_000_000
            + response.cache_read_tokens * p.cache_read_per_1m / 1_000_000
            + response.cache_write_tokens * p.cache_write_per_1m / 1_000_000)


def usage_from_response(response: LLMResponse) -> TokenUsage:
    return TokenUsage(
        prompt_tokens=response.input_tokens,
        completion_tokens=response.output_tokens,
        total_tokens=response.total_tokens,
    )


def metadata_from_responses(
    responses: list[LLMResponse],
    stage: str = "execution",
    pricing: dict[str, ModelPricing] | None = None,
) -> ExecutionMetadata:
    """Aggregate one or more responses into ExecutionMetadata.

    The model of the last response wins; usage, cost and latency are summed.
    """
    if not responses:
        return ExecutionMetadata(model="unknown", stage=stage)

    usage = TokenUsage()
    for r in responses:
        usage = usage.add(usage_from_response(r))

    return ExecutionMetadata(
        model=responses[-1].model,
        usage=usage,
        cost=sum(compute_response_cost(r, pricing) for r in responses),
        duration_ms=float(sum(r.latency_ms for r in responses)),
        stage=stage,
        extra={"llm_calls": len(responses), "provider": responses[-1].provider},
    )
