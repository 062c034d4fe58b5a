# hypeflow/config/settings.py

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator

from hypeflow.types import DecisionConfig


class Settings(BaseSettings):
    # --- Core ---
    network: str = Field(default="aptos-testnet")
    mock_swaps: bool = Field(default=True)
    data_dir: str = Field(default="./data")

    # --- Decision ---
    bullish_threshold: float = Field(default=0.4)
    bearish_threshold: float = Field(default=-0.2)
    min_sample_volume: int = Field(default=2, ge=0)
    max_position_size: float = Field(default=100.0, ge=0.0)
    max_data_age_minutes: float = Field(default=30.0, gt=0.0)
    check_interval_minutes: float = Field(default=10.0, gt=0.0)
    weighted_sentiment: bool = Field(default=False)

    # --- Trading ---
    base_asset: str = Field(default="APT")
    quote_asset: str = Field(default="USDC")
    slippage_bps: int = Field(default=50, ge=0, le=10_000)
    mock_price: float = Field(default=15.75, gt=0.0)
    mock_base_balance: float = Field(default=50.0, ge=0.0)
    mock_quote_balance: float = Field(default=2500.0, ge=0.0)

    # --- Chain ---
    eth_http: Optional[str] = None
    request_timeout_sec: float = Field(default=20.0, gt=0.0)
    private_key: Optional[str] = None
    base_token: Optional[str] = None
    quote_token: Optional[str] = None
    router_v2: Optional[str] = None
    sentiment_trader_address: Optional[str] = None

    # --- Collaborators ---
    price_api_url: Optional[str] = None
    price_api_id: str = Field(default="aptos")
    feedback_webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None

    # --- Helpers ---
    def decision_config(self, invested: bool) -> DecisionConfig:
        """Build the per-cycle decision config for the given investment state."""
        return DecisionConfig(
            bullish_threshold=self.bullish_threshold,
            bearish_threshold=self.bearish_threshold,
            min_sample_volume=self.min_sample_volume,
            max_position_size=self.max_position_size,
            currently_invested=invested,
        )

    # --- Validators ---
    @model_validator(mode="after")
    def check_thresholds(self):
        if self.bearish_threshold >= self.bullish_threshold:
            raise ValueError(
                f"bearish_threshold ({self.bearish_threshold}) must be below "
                f"bullish_threshold ({self.bullish_threshold})"
            )
        return self


# Global settings instance
settings = Settings()
