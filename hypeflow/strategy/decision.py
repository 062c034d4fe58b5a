import math

from hypeflow.types import Action, Decision, DecisionConfig

NEUTRAL_CONFIDENCE = 0.5


def round_half_up(x: float) -> float:
    return float(math.floor(x + 0.5))


def _clamp(x: float) -> float:
    return max(0.0, min(1.0, x))


def _ratio(distance: float, span: float) -> float:
    # A threshold sitting on the edge of the range leaves no room to scale into.
    if span <= 0:
        return 1.0
    return _clamp(distance / span)


def decide(sentiment: float, sample_count: int, config: DecisionConfig) -> Decision:
    """Classify an aggregate sentiment score into a trading decision.

    Pure function of its inputs. The neutral band is closed on both ends, and
    a HOLD in that band carries a fixed moderate confidence rather than zero.
    """
    if sample_count < config.min_sample_volume:
        return Decision(
            action=Action.HOLD,
            confidence=0.0,
            rationale=(
                f"Insufficient data: only {sample_count} samples "
                f"(minimum required: {config.min_sample_volume})"
            ),
        )

    if sentiment > config.bullish_threshold:
        confidence = _ratio(
            sentiment - config.bullish_threshold, 1 - config.bullish_threshold
        )
        if config.currently_invested:
            action = Action.DEPOSIT
            rationale = (
                f"Positive sentiment ({sentiment:.2f}) above threshold "
                f"({config.bullish_threshold}). Already invested, so deposit more into yield."
            )
        else:
            action = Action.BUY
            rationale = (
                f"Positive sentiment ({sentiment:.2f}) above threshold "
                f"({config.bullish_threshold}). Recommend buying."
            )
    elif sentiment < config.bearish_threshold:
        confidence = _ratio(
            config.bearish_threshold - sentiment, config.bearish_threshold + 1
        )
        if config.currently_invested:
            action = Action.WITHDRAW
            rationale = (
                f"Negative sentiment ({sentiment:.2f}) below threshold "
                f"({config.bearish_threshold}). Recommend withdrawing funds."
            )
        else:
            action = Action.SELL
            rationale = (
                f"Negative sentiment ({sentiment:.2f}) below threshold "
                f"({config.bearish_threshold}). Recommend selling if holding."
            )
    else:
        return Decision(
            action=Action.HOLD,
            confidence=NEUTRAL_CONFIDENCE,
            rationale=(
                f"Neutral sentiment ({sentiment:.2f}) within thresholds "
                f"({config.bearish_threshold} to {config.bullish_threshold}). No action needed."
            ),
        )

    return Decision(
        action=action,
        confidence=confidence,
        suggested_amount=round_half_up(config.max_position_size * confidence),
        rationale=rationale,
    )
