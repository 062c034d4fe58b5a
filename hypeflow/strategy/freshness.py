from hypeflow.types import Action, Decision
from hypeflow.strategy.decision import round_half_up

ACTIVATION_FLOOR = 0.2


def age_factor(age_minutes: float, max_fresh_age_minutes: float) -> float:
    if age_minutes <= max_fresh_age_minutes:
        return 1.0
    stale = age_minutes - max_fresh_age_minutes
    return max(0.0, 1.0 - stale / (3 * max_fresh_age_minutes))


def adjust_for_age(
    decision: Decision, age_minutes: float, max_fresh_age_minutes: float
) -> Decision:
    """Decay confidence and size of a decision built on old data.

    Past the floor an actionable decision is forced to HOLD; decayed data
    is not traded on.
    """
    if age_minutes <= max_fresh_age_minutes:
        return decision

    factor = age_factor(age_minutes, max_fresh_age_minutes)
    confidence = decision.confidence * factor
    amount = round_half_up(decision.suggested_amount * factor)

    if confidence < ACTIVATION_FLOOR and decision.action != Action.HOLD:
        return Decision(
            action=Action.HOLD,
            confidence=confidence,
            suggested_amount=0.0,
            rationale=(
                f"{decision.rationale} However, data is {age_minutes:g} minutes old, "
                f"which exceeds the freshness threshold of {max_fresh_age_minutes:g} "
                f"minutes. Action changed to HOLD."
            ),
        )

    return decision.model_copy(
        update={
            "confidence": confidence,
            "suggested_amount": amount,
            "rationale": f"{decision.rationale} (Note: data is {age_minutes:g} minutes old)",
        }
    )
