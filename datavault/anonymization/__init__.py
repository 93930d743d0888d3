from datavault.anonymization.base import BaseDetector
from datavault.anonymization.detector import PatternDetector
from datavault.anonymization.engine import AnonymizationEngine
from datavault.anonymization.traverser import ContentTraverser

__all__ = [
    "AnonymizationEngine",
    "BaseDetector",
    "ContentTraverser",
    "PatternDetector",
]
