from campaign_backend.app.domains.regeneration.schemas import CostBreakdown, TokenUsage

FALLBACK_PRICING_MODEL = "gpt-4o"

# USD per 1M tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "gpt-5.1": (1.25, 10.0),
    "gpt-5.1-chat-latest": (1.25, 10.0),
    "gpt-5": (1.25, 10.0),
    "gpt-5-mini": (0.25, 2.0),
    "gpt-5-nano": (0.05, 0.40),
    "gpt-4o": (2.50, 10.0),
    "gpt-4o-2024-11-20": (2.50, 10.0),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o-mini-2024-07-18": (0.15, 0.60),
    "o1-pro": (150.0, 600.0),
    "o1-2024-12-17": (15.0, 60.0),
    "o1-mini-2024-09-12": (1.10, 4.40),
    "o3-mini-2025-01-31": (1.10, 4.40),
    "o4-mini-2025-04-16": (1.10, 4.40),
    "gpt-4-turbo-2024-04-09": (10.0, 30.0),
    "gpt-4": (30.0, 60.0),
    "gpt-3.5-turbo-0125": (0.50, 1.50),
}


def calculate_cost(usage: TokenUsage, model: str) -> CostBreakdown:
    """Price token usage; unknown models are priced as ``gpt-4o``."""
    input_price, output_price = MODEL_PRICING.get(model, MODEL_PRICING[FALLBACK_PRICING_MODEL])
    input_cost = usage.prompt_tokens / 1_000_000 * input_price
    output_cost = usage.completion_tokens / 1_000_000 * output_price
    return CostBreakdown(
        input_tokens=usage.prompt_tokens,
        output_tokens=usage.completion_tokens,
        total_tokens=usage.total_tokens,
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
        model=model,
    )


def format_cost(cost: float) -> str:
    return f"${cost:.4f}"
