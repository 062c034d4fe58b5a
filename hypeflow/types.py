from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"  # BUY while already invested
    WITHDRAW = "WITHDRAW"  # SELL while already invested
    HOLD = "HOLD"

    @property
    def enters(self) -> bool:
        return self in (Action.BUY, Action.DEPOSIT)

    @property
    def exits(self) -> bool:
        return self in (Action.SELL, Action.WITHDRAW)


class SentimentObservation(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(0.0, ge=-1.0, le=1.0)
    sample_count: int = Field(0, ge=0)
    observed_at_age_minutes: float = Field(0.0, ge=0.0)


class DecisionConfig(BaseModel):
    bullish_threshold: float = 0.4
    bearish_threshold: float = -0.2
    min_sample_volume: int = Field(2, ge=0)
    max_position_size: float = Field(100.0, ge=0.0)
    currently_invested: bool = False

    @model_validator(mode="after")
    def check_thresholds(self):
        if self.bearish_threshold >= self.bullish_threshold:
            raise ValueError("bearish_threshold must be below bullish_threshold")
        return self


class Decision(BaseModel):
    action: Action
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    suggested_amount: float = Field(0.0, ge=0.0)
    rationale: str = ""


class HoldingsSnapshot(BaseModel):
    base_balance: float = Field(0.0, ge=0.0)
    quote_balance: float = Field(0.0, ge=0.0)


class TradeRecord(BaseModel):
    id: int
    timestamp: float
    action: Action
    amount: float
    confidence: float
    tx_ref: str


class SentimentRecord(BaseModel):
    id: int
    timestamp: float
    sentiment_score: int  # round((score + 1) * 100), 100 is neutral
    confidence: int  # round(confidence * 100)
    sample_count: int = 0


class InvestmentState(BaseModel):
    model_config = ConfigDict(frozen=True)

    invested: bool = False
