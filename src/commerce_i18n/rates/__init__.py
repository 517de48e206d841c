"""
Rates — хранилище курсов, провайдеры и цикл обновления.
"""

from .circuit_breaker import CircuitBreaker, CircuitState, CircuitStatus, CircuitTransitionResult
from .orchestrator import (
    AttemptOutcome,
    ProviderAttempt,
    RateProviderOrchestrator,
    RefreshResult,
    RefreshStatus,
)
from .providers import (
    HttpRateProvider,
    RateProvider,
    StaticRateProvider,
    build_providers,
    frankfurter_provider,
    open_er_api_provider,
    parse_rate_map,
)
from .scheduler import RateRefreshScheduler
from .store import RateSnapshot, RateStore, RateTrend, TrendDirection

__all__ = [
    # Store
    "RateStore",
    "RateSnapshot",
    "RateTrend",
    "TrendDirection",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitState",
    "CircuitStatus",
    "CircuitTransitionResult",
    # Providers
    "RateProvider",
    "HttpRateProvider",
    "StaticRateProvider",
    "build_providers",
    "frankfurter_provider",
    "open_er_api_provider",
    "parse_rate_map",
    # Orchestrator
    "RateProviderOrchestrator",
    "RefreshResult",
    "RefreshStatus",
    "ProviderAttempt",
    "AttemptOutcome",
    "RateRefreshScheduler",
]
