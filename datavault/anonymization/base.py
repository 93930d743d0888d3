from abc import ABC, abstractmethod

from datavault.anonymization.models import PIIMatch


class BaseDetector(ABC):
    """Contract for all PII detection adapters."""

    @abstractmethod
    def detect(self, text: str) -> list[PIIMatch]:
        """Locate PII spans in text.

        Args:
            text: Any string leaf taken from the content being anonymized.

        Returns:
            Matches ordered by start offset. Matches from different categories
            may overlap; no deduplication or confidence filtering is applied.
            An empty list is a normal result.
        """
