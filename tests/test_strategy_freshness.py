import pytest

from hypeflow.strategy.freshness import adjust_for_age, age_factor
from hypeflow.types import Action, Decision


def make_decision(action=Action.BUY, confidence=0.9, amount=90):
    return Decision(
        action=action, confidence=confidence, suggested_amount=amount, rationale="base."
    )


@pytest.mark.parametrize("age", [0, 10, 30])
def test_fresh_data_is_identity(age):
    d = make_decision()
    assert adjust_for_age(d, age, 30) is d


def test_age_factor():
    assert age_factor(30, 30) == 1.0
    assert age_factor(60, 30) == pytest.approx(2 / 3)
    assert age_factor(120, 30) == 0.0
    assert age_factor(500, 30) == 0.0


def test_partial_decay_keeps_action():
    d = adjust_for_age(make_decision(), 60, 30)
    assert d.action == Action.BUY
    assert d.confidence == pytest.approx(0.6)
    assert d.suggested_amount == 60
    assert "60 minutes old" in d.rationale


def test_fully_stale_forces_hold():
    d = adjust_for_age(make_decision(confidence=0.3, amount=30), 120, 30)
    assert d.action == Action.HOLD
    assert d.confidence == 0.0
    assert d.suggested_amount == 0
    assert "Action changed to HOLD" in d.rationale


def test_decay_below_floor_forces_hold():
    # factor 1/3 takes 0.5 to ~0.167, under the 0.2 floor
    d = adjust_for_age(make_decision(action=Action.SELL, confidence=0.5, amount=50), 90, 30)
    assert d.action == Action.HOLD
    assert d.suggested_amount == 0


def test_hold_is_decayed_but_stays_hold():
    hold = make_decision(action=Action.HOLD, confidence=0.5, amount=0)
    d = adjust_for_age(hold, 120, 30)
    assert d.action == Action.HOLD
    assert d.confidence == 0.0
    assert "Action changed" not in d.rationale
