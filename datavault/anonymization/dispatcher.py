"""Strategy dispatch: strategy tag -> strategy library function.

The async and sync entry points share one handler table; only the hash
strategy differs (cryptographic digest vs. the non-cryptographic fallback).
"""

from collections.abc import Callable, Mapping
from dataclasses import replace
from types import MappingProxyType

from datavault.anonymization import strategies
from datavault.anonymization.models import AnonymizationStrategy, PIIMatch, StrategyResult
from datavault.anonymization.strategies import StrategyConfig

Handler = Callable[[str, PIIMatch, StrategyConfig], StrategyResult]

S = AnonymizationStrategy


def _coarsest_generalization(text: str, match: PIIMatch, config: StrategyConfig) -> StrategyResult:
    coarsest = replace(config.generalize, level=None)
    return strategies.generalize(text, match, coarsest)


_PURE_HANDLERS: Mapping[AnonymizationStrategy, Handler] = MappingProxyType(
    {
        S.MASK: lambda text, match, config: strategies.mask(text, match, config.mask),
        S.REDACT: lambda text, match, config: strategies.redact(text, match),
        S.SUPPRESS: lambda text, match, config: strategies.redact(text, match),
        S.GENERALIZE: lambda text, match, config: strategies.generalize(
            text, match, config.generalize
        ),
        S.NOISE: lambda text, match, config: strategies.synthesize(text, match, config.synthesize),
        S.PSEUDONYMIZE: lambda text, match, config: strategies.synthesize(
            text, match, config.synthesize
        ),
        S.TOKENIZE: lambda text, match, config: strategies.tokenize(text, match),
        S.ENCRYPT: lambda text, match, config: strategies.encrypt(text, match),
        S.K_ANONYMITY: _coarsest_generalization,
        S.L_DIVERSITY: _coarsest_generalization,
        S.T_CLOSENESS: _coarsest_generalization,
        S.DIFFERENTIAL_PRIVACY: _coarsest_generalization,
    }
)

# Strategy each tag is actually carried out as.
EFFECTIVE_STRATEGY: Mapping[AnonymizationStrategy, AnonymizationStrategy] = MappingProxyType(
    {
        S.SUPPRESS: S.REDACT,
        S.NOISE: S.PSEUDONYMIZE,
        S.K_ANONYMITY: S.GENERALIZE,
        S.L_DIVERSITY: S.GENERALIZE,
        S.T_CLOSENESS: S.GENERALIZE,
        S.DIFFERENTIAL_PRIVACY: S.GENERALIZE,
    }
)


def resolve_strategy(strategy: AnonymizationStrategy | str | None) -> AnonymizationStrategy:
    """Map a requested strategy name to a known tag; anything unknown becomes redact."""
    if strategy is None:
        return S.REDACT
    return AnonymizationStrategy.parse(strategy) or S.REDACT


def effective_strategy(strategy: AnonymizationStrategy | str | None) -> AnonymizationStrategy:
    resolved = resolve_strategy(strategy)
    return EFFECTIVE_STRATEGY.get(resolved, resolved)


async def apply_strategy(
    strategy: AnonymizationStrategy | str | None,
    text: str,
    match: PIIMatch,
    config: StrategyConfig | None = None,
) -> StrategyResult:
    """Apply the named strategy to *match* within *text*.

    Never raises for an unknown strategy name: it is treated as redact.
    """
    config = config or StrategyConfig()
    resolved = resolve_strategy(strategy)
    if resolved is S.HASH:
        return await strategies.hash_value(text, match, config.hash)
    return _PURE_HANDLERS[resolved](text, match, config)


def apply_strategy_sync(
    strategy: AnonymizationStrategy | str | None,
    text: str,
    match: PIIMatch,
    config: StrategyConfig | None = None,
) -> StrategyResult:
    """Synchronous variant of apply_strategy.

    Hash uses the NON-cryptographic fallback digest; every other strategy is
    routed exactly as in apply_strategy.
    """
    config = config or StrategyConfig()
    resolved = resolve_strategy(strategy)
    if resolved is S.HASH:
        return strategies.hash_value_sync(text, match, config.hash)
    return _PURE_HANDLERS[resolved](text, match, config)
