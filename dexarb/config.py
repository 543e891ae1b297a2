"""Configuration management for the round-trip DEX arbitrage monitor."""

import os
import re
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .core.errors import ConfigurationError


class ChainConfig(BaseModel):
    """Network connection configuration."""
    rpc_url: str = ""
    chain_id: int = 1
    native_symbol: str = "ETH"
    native_decimals: int = 18
    request_timeout_sec: float = 8.0


class VenueConfig(BaseModel):
    """One DEX quoting endpoint."""
    name: str
    quoter: str
    router: str
    fee_tiers: List[int] = Field(default_factory=lambda: [500, 3000, 10000])
    connectors: List[str] = Field(default_factory=list)  # intermediate tokens for two-hop paths

    @field_validator("fee_tiers")
    @classmethod
    def _check_fee_tiers(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("at least one fee tier is required")
        for fee in value:
            if not 0 < fee < 1_000_000:
                raise ValueError(f"invalid fee tier {fee}")
        return value


def _default_venues() -> Dict[str, VenueConfig]:
    return {
        "VENUE_A": VenueConfig(
            name="UNISWAP_V3",
            quoter="0x61fFE014bA17989E743c5F6cB21bF9697530B21e",
            router="0xE592427A0AEce92De3Edee1F18E0157C05861564",
        ),
        "VENUE_B": VenueConfig(
            name="SUSHISWAP_V3",
            quoter="0x64e8802FE490fa7cc61d3463958199161Bb608A7",
            router="0x1b02dA8Cb0d097eB8D57A175b88c7D8b47997506",
        ),
    }


class GasConfig(BaseModel):
    """Gas pricing configuration."""
    price_multiplier: Decimal = Decimal("1.2")
    max_gas_price_gwei: Decimal = Decimal("100")

    @field_validator("price_multiplier", "max_gas_price_gwei")
    @classmethod
    def _positive(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value <= 0:
            raise ValueError("must be a positive number")
        return value

    @field_validator("max_gas_price_gwei")
    @classmethod
    def _at_least_one_wei(cls, value: Decimal) -> Decimal:
        if value.scaleb(9) < 1:
            raise ValueError("max_gas_price_gwei must be at least 1 wei (0.000000001 gwei)")
        return value


class EvaluatorConfig(BaseModel):
    """Opportunity evaluation configuration."""
    venue_a: str = "VENUE_A"
    venue_b: str = "VENUE_B"
    # Compared as roi > min_profit_threshold / 100 (30 -> 0.3%)
    min_profit_threshold: Decimal = Decimal("30")
    quote_timeout_sec: float = 10.0
    slippage_tolerance_bps: int = 50

    @field_validator("min_profit_threshold")
    @classmethod
    def _non_negative(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value < 0:
            raise ValueError("min_profit_threshold must be a non-negative number")
        return value


class PriceOracleConfig(BaseModel):
    """Native asset fiat price source."""
    source: str = "chainlink"  # chainlink | static
    static_price: Optional[Decimal] = None
    feed_address: str = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"  # ETH/USD mainnet
    max_age_sec: float = 3600.0  # answers older than this are stale; the ETH/USD heartbeat is 1h

    @model_validator(mode="after")
    def _check_source(self) -> "PriceOracleConfig":
        if self.max_age_sec <= 0:
            raise ValueError("max_age_sec must be positive")
        if self.source not in ("chainlink", "static"):
            raise ValueError(f"unknown price oracle source {self.source!r}")
        if self.source == "static" and (self.static_price is None or self.static_price <= 0):
            raise ValueError("static price oracle requires a positive static_price")
        return self


class TargetConfig(BaseModel):
    """One round trip to evaluate every tick."""
    token_in: str
    token_out: str
    amount_in: Decimal

    @field_validator("amount_in")
    @classmethod
    def _positive_amount(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value <= 0:
            raise ValueError("amount_in must be positive")
        return value

    @property
    def label(self) -> str:
        return f"{self.token_in[:8]}->{self.token_out[:8]}@{self.amount_in}"


def _default_targets() -> List[TargetConfig]:
    # 1 WETH against USDC
    return [
        TargetConfig(
            token_in="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
            token_out="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            amount_in=Decimal("1"),
        )
    ]


class MonitorConfig(BaseModel):
    """Monitor loop configuration."""
    interval_sec: float = 30.0
    cycle_timeout_sec: float = 20.0
    targets: List[TargetConfig] = Field(default_factory=_default_targets)

    @model_validator(mode="after")
    def _check_timing(self) -> "MonitorConfig":
        if self.interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        if not 0 < self.cycle_timeout_sec < self.interval_sec:
            raise ValueError("cycle_timeout_sec must be positive and shorter than interval_sec")
        return self


class StorageConfig(BaseModel):
    """Storage configuration."""
    db_path: str = "arb.sqlite"


class BroadcastConfig(BaseModel):
    """Realtime websocket push configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8765
    send_timeout_sec: float = 2.0  # slower clients are dropped

    @field_validator("send_timeout_sec")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("send_timeout_sec must be positive")
        return value


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    enable_status_http: bool = True
    host: str = "0.0.0.0"
    port: int = 3000


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = "logs/combined.log"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return value


class Config(BaseModel):
    """Main configuration model."""
    chain: ChainConfig = Field(default_factory=ChainConfig)
    venues: Dict[str, VenueConfig] = Field(default_factory=_default_venues)
    gas: GasConfig = Field(default_factory=GasConfig)
    evaluator: EvaluatorConfig = Field(default_factory=EvaluatorConfig)
    price_oracle: PriceOracleConfig = Field(default_factory=PriceOracleConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_venues(self) -> "Config":
        for venue in (self.evaluator.venue_a, self.evaluator.venue_b):
            if venue not in self.venues:
                raise ValueError(f"unknown venue {venue!r}; configured: {sorted(self.venues)}")
        return self

    def get_venue(self, venue: str) -> VenueConfig:
        """Get venue configuration, failing loudly for unknown ids."""
        if venue not in self.venues:
            raise ConfigurationError(f"Unknown venue: {venue}")
        return self.venues[venue]

    @classmethod
    def load_from_file(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config_str = f.read()

        # Substitute environment variables
        for key, value in os.environ.items():
            config_str = config_str.replace(f"${{{key}}}", value)

        try:
            config_data = yaml.safe_load(config_str) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        unresolved = sorted(set(_unresolved_env_refs(config_data)))
        if unresolved:
            raise ConfigurationError(f"Environment variables not set: {', '.join(unresolved)}")

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict) -> "Config":
        """Build and validate a configuration from plain data."""
        if not isinstance(config_data, dict):
            raise ConfigurationError("Configuration root must be a mapping")
        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


_ENV_REF = re.compile(r"\$\{([^}]*)\}")


def _unresolved_env_refs(data):
    """Yield names of ``${VAR}`` references left in loaded values (comments are ignored)."""
    if isinstance(data, str):
        yield from _ENV_REF.findall(data)
    elif isinstance(data, dict):
        for value in data.values():
            yield from _unresolved_env_refs(value)
    elif isinstance(data, list):
        for value in data:
            yield from _unresolved_env_refs(value)


def get_config(config_path: str = "config.yaml") -> Config:
    """Get configuration instance."""
    return Config.load_from_file(config_path)
