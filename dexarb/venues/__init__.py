"""Venue integrations: quoting, gas pricing, token metadata and price feeds."""

from .base import BaseQuoteProvider, TokenRef
from .client import ChainClient
from .gas import GasPricer, adjust_gas_price
from .price_oracle import PriceOracle, StaticPriceOracle, ChainlinkPriceOracle, create_price_oracle
from .tokens import TokenRegistry, KNOWN_TOKENS, known_tokens
from .uniswap_v3 import UniswapV3QuoteProvider, encode_path

__all__ = [
    'BaseQuoteProvider',
    'TokenRef',
    'ChainClient',
    'GasPricer',
    'adjust_gas_price',
    'PriceOracle',
    'StaticPriceOracle',
    'ChainlinkPriceOracle',
    'create_price_oracle',
    'TokenRegistry',
    'KNOWN_TOKENS',
    'known_tokens',
    'UniswapV3QuoteProvider',
    'encode_path',
]
