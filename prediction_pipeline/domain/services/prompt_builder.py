"""Domain service that renders the prediction prompt for a market."""

from typing import Optional

from prediction_pipeline.domain.entities.market import Market
from prediction_pipeline.domain.entities.prediction import PredictionPrompt

SYSTEM_MESSAGE = """You are a prediction analysis expert. Analyze the given market and provide a structured prediction with probability, reasoning, and confidence level.

Format your response as a JSON object with the following structure:
{
  "outcomes": ["Yes", "No"],
  "outcomesProbabilities": [0.75, 0.25],
  "reasoning": "detailed explanation of your reasoning",
  "confidence_level": "High/Medium/Low"
}

IMPORTANT: Return ONLY a valid JSON object. Do NOT wrap your response in markdown code blocks, backticks, or any other formatting. Return pure JSON.
IMPORTANT: The outcomesProbabilities values must be decimal values between 0 and 1. Do not use percentages, text, or any other format.
IMPORTANT: the sum total of the outcomesProbabilities must equal 1
"""


def build_prediction_prompt(
    market: Market, additional_context: Optional[str] = None
) -> PredictionPrompt:
    """Build the system and user messages for a single market."""

    first_outcome = market.outcomes[0] if market.outcomes else "Yes"
    lines = [
        f'Analyze this market and provide a comprehensive prediction for the outcome: "{first_outcome}":',
        "",
        f'Market: "{market.question}"',
        "",
        "Please consider the market context, timing, and any relevant factors "
        "when making your prediction.",
    ]
    if market.outcomes:
        lines.append(f"Market Outcomes: {', '.join(market.outcomes)}")
    if market.description:
        lines.append(f"Market Description: {market.description}")
    if market.end_date:
        lines.append(f"Market End Date: {market.end_date.date().isoformat()}")
    if additional_context:
        lines.extend(["", f"Additional context: {additional_context}"])

    return PredictionPrompt(
        system_message=SYSTEM_MESSAGE, user_message="\n".join(lines)
    )
