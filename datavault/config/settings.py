from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    List fields (``COMPLIANCE_FRAMEWORKS``, ``SENSITIVE_WORDS``) are read as JSON
    arrays, e.g. ``COMPLIANCE_FRAMEWORKS='["gdpr", "hipaa"]'``.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    # Policy defaults
    default_strategy: str = Field(default="redact", min_length=1)
    min_detection_confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    compliance_frameworks: list[str] = Field(default_factory=list)
    include_detection_details: bool = False

    # Detector
    detection_context_window: int = Field(default=50, ge=0)
    detection_enable_validation: bool = True
    sensitive_words: list[str] = Field(default_factory=list)

    # Traversal limits
    max_traversal_depth: int = Field(default=64, ge=1)
    max_text_length: int = Field(default=1_000_000, ge=1)

    # Key for the per-field original_hash; a random per-engine key when empty
    audit_hash_key: str = ""

    # Strategies
    mask_char: str = Field(default="*", min_length=1, max_length=1)
    mask_preserve_length: bool = True
    mask_show_partial: bool = False
    mask_partial_chars: int = Field(default=4, ge=0)
    mask_use_category_labels: bool = False

    hash_salt: str = ""
    hash_algorithm: Literal["sha256", "sha512"] = "sha256"
    hash_truncate_length: int = Field(default=16, ge=0)

    generalize_level: int = Field(default=1, ge=0)

    synthesize_seed: str = ""
    synthesize_maintain_format: bool = True
