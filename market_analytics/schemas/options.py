"""
CONTRACT 4: Options Analytics

Input:  underlying symbol + contract parameters
Output: OptionPricing, OptionsChain, UnusualScan

Greeks follow the usual reporting units:
- theta per calendar day
- vega per 1 volatility point
- rho per 1% change in the risk-free rate
"""

from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class OptionKind(str, Enum):
    CALL = "CALL"
    PUT = "PUT"


class ChainSide(str, Enum):
    CALL = "call"
    PUT = "put"
    BOTH = "both"


class Moneyness(str, Enum):
    ITM = "itm"
    ATM = "atm"
    OTM = "otm"
    ALL = "all"


class FlowSentiment(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


class ActivityType(str, Enum):
    BLOCK_TRADE = "BLOCK_TRADE"
    HIGH_VOLUME = "HIGH_VOLUME"


# =============================================================================
# PRICING
# =============================================================================


class Greeks(BaseModel):
    model_config = ConfigDict(frozen=True)

    delta: float = Field(..., ge=-1, le=1)
    gamma: float = Field(..., ge=0)
    theta: float
    vega: float = Field(..., ge=0)
    rho: float


class OptionPricing(BaseModel):
    """Black-Scholes price and Greeks for one contract."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    strike: float = Field(..., gt=0)
    expiration: date
    kind: OptionKind
    underlying_price: float = Field(..., gt=0)
    days_to_expiration: int = Field(..., ge=1)
    risk_free_rate: float
    volatility: float = Field(..., gt=0)
    theoretical_price: float = Field(..., ge=0)
    greeks: Greeks
    interpretation: tuple[str, ...]


# =============================================================================
# CHAIN
# =============================================================================


class OptionContract(BaseModel):
    """Single option contract (bid <= last <= ask, bid >= 0)."""

    model_config = ConfigDict(frozen=True)

    underlying_symbol: str
    strike: float = Field(..., gt=0)
    expiration: date
    kind: OptionKind
    bid: float = Field(..., ge=0)
    ask: float = Field(..., ge=0)
    last: float = Field(..., ge=0)
    volume: int = Field(..., ge=0)
    open_interest: int = Field(..., ge=0)
    implied_volatility: float = Field(..., ge=0)
    delta: float = Field(..., ge=-1, le=1)
    gamma: float = Field(..., ge=0)
    theta: float
    vega: float = Field(..., ge=0)
    rho: float

    @model_validator(mode="after")
    def _check_quote(self) -> "OptionContract":
        if not (self.bid <= self.last <= self.ask):
            raise ValueError(
                f"contract quote violates bid <= last <= ask "
                f"(bid={self.bid}, last={self.last}, ask={self.ask})"
            )
        return self


class UnusualActivity(BaseModel):
    """Chain contract trading more than twice its open interest."""

    model_config = ConfigDict(frozen=True)

    strike: float
    kind: OptionKind
    volume: int
    open_interest: int
    ratio: float


class ChainSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_contracts: int
    total_volume: int
    total_open_interest: int
    put_call_ratio: Optional[float] = None
    max_pain: Optional[float] = None
    unusual_activity: tuple[UnusualActivity, ...] = ()


class OptionsChain(BaseModel):
    """Synthesized chain keyed by expiration date (YYYY-MM-DD)."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    underlying_price: float = Field(..., gt=0)
    expirations: tuple[date, ...]
    chains: dict[str, tuple[OptionContract, ...]]
    summary: ChainSummary


# =============================================================================
# UNUSUAL ACTIVITY SCAN
# =============================================================================


class UnusualContract(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    strike: float
    expiration: date
    kind: OptionKind
    volume: int = Field(..., ge=0)
    open_interest: int = Field(..., ge=0)
    volume_oi_ratio: float
    price: float
    premium: float
    sentiment: FlowSentiment
    activity_type: ActivityType


class UnusualScan(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_volume_ratio: float
    min_premium: float
    total_found: int
    contracts: tuple[UnusualContract, ...]
    bullish_flow: int
    bearish_flow: int
    total_premium: float
    avg_volume_ratio: Optional[float] = None


# =============================================================================
# INPUT
# =============================================================================


class OptionPricingRequest(BaseModel):
    """One contract to price against a known underlying price."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    underlying_price: float = Field(..., gt=0)
    strike: float = Field(..., gt=0)
    expiration: date
    kind: OptionKind
