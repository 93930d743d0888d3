from datavault.anonymization.base import BaseDetector
from datavault.anonymization.detector import PatternDetector
from datavault.anonymization.engine import AnonymizationEngine
from datavault.anonymization.models import Policy
from datavault.anonymization.policy_validator import build_policy
from datavault.anonymization.strategies import (
    GeneralizeConfig,
    HashConfig,
    MaskConfig,
    StrategyConfig,
    SynthesizeConfig,
)
from datavault.anonymization.traverser import ContentTraverser
from datavault.config.settings import Settings


class AnonymizationEngineFactory:
    """Builds a fully wired AnonymizationEngine from settings."""

    @classmethod
    def create(cls, settings: Settings) -> AnonymizationEngine:
        traverser = ContentTraverser(
            cls.create_detector(settings),
            cls.create_strategy_config(settings),
            max_depth=settings.max_traversal_depth,
            max_text_length=settings.max_text_length,
            audit_key=settings.audit_hash_key,
        )
        return AnonymizationEngine(traverser, default_policy=cls.create_default_policy(settings))

    @classmethod
    def create_detector(cls, settings: Settings) -> BaseDetector:
        return PatternDetector(
            context_window=settings.detection_context_window,
            enable_validation=settings.detection_enable_validation,
            sensitive_words=settings.sensitive_words,
        )

    @classmethod
    def create_strategy_config(cls, settings: Settings) -> StrategyConfig:
        return StrategyConfig(
            mask=MaskConfig(
                mask_char=settings.mask_char,
                preserve_length=settings.mask_preserve_length,
                show_partial=settings.mask_show_partial,
                partial_chars=settings.mask_partial_chars,
                use_category_labels=settings.mask_use_category_labels,
            ),
            hash=HashConfig(
                salt=settings.hash_salt,
                algorithm=settings.hash_algorithm,
                truncate_length=settings.hash_truncate_length,
            ),
            generalize=GeneralizeConfig(level=settings.generalize_level),
            synthesize=SynthesizeConfig(
                maintain_format=settings.synthesize_maintain_format,
                seed=settings.synthesize_seed,
            ),
        )

    @classmethod
    def create_default_policy(cls, settings: Settings) -> Policy:
        return build_policy(
            {
                "default_strategy": settings.default_strategy,
                "compliance_frameworks": settings.compliance_frameworks,
                "min_detection_confidence": settings.min_detection_confidence,
            }
        )
