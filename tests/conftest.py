from collections.abc import Callable

import pytest

from datavault.anonymization.base import BaseDetector
from datavault.anonymization.detector import PatternDetector
from datavault.anonymization.engine import AnonymizationEngine
from datavault.anonymization.models import Policy
from datavault.anonymization.strategies import StrategyConfig
from datavault.anonymization.traverser import ContentTraverser


@pytest.fixture()
def detector() -> PatternDetector:
    return PatternDetector()


@pytest.fixture()
def make_engine() -> Callable[..., AnonymizationEngine]:
    def _make(
        detector: BaseDetector | None = None,
        policy: Policy | None = None,
        config: StrategyConfig | None = None,
        **limits: int,
    ) -> AnonymizationEngine:
        traverser = ContentTraverser(detector or PatternDetector(), config, **limits)
        return AnonymizationEngine(traverser, default_policy=policy)

    return _make
