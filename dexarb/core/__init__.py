"""Core types, errors and helpers.

The evaluator and monitor live in ``dexarb.core.evaluator`` and
``dexarb.core.monitor`` and are imported from there directly.
"""

from .errors import (
    ArbitrageError,
    TokenResolutionError,
    NoRouteError,
    UpstreamError,
    ConfigurationError,
    CYCLE_ERRORS,
)
from .types import (
    TokenDescriptor,
    Quote,
    GasEstimate,
    Opportunity,
    OpportunityStatus,
    MonitorState,
    CycleStatus,
    CycleResult,
    CycleReport,
)

__all__ = [
    'ArbitrageError',
    'TokenResolutionError',
    'NoRouteError',
    'UpstreamError',
    'ConfigurationError',
    'CYCLE_ERRORS',
    'TokenDescriptor',
    'Quote',
    'GasEstimate',
    'Opportunity',
    'OpportunityStatus',
    'MonitorState',
    'CycleStatus',
    'CycleResult',
    'CycleReport',
]
