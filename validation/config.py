"""
Configuration validation for the drift reconciliation engine.

Provides a pydantic v2 model for validating engine configuration
with fail-fast behavior and sensible defaults.
"""

from pydantic import BaseModel, Field, field_validator, ValidationError
from typing import Optional
import logging

log = logging.getLogger('esl_drift.config')

# Identity fields the vendor platform has used for an article's primary id,
# in resolution order.
DEFAULT_REMOTE_ID_ALIASES = ("articleId", "article_id", "ARTICLE_ID", "id")

ENTITY_TYPES = ('space', 'person', 'conference', 'list')
MANUAL_VERIFY_MODES = ('concurrent', 'exclusive')


class DriftConfig(BaseModel):
    """
    Drift reconciliation configuration with validation.

    All fields are optional tunables:
        enabled: Master on/off switch for the scheduled job (default: True)
        interval: Seconds between the end of one run and the start of the next
            (default: 300, range: 10-86400)
        warmup_delay: Seconds before the one-off warm-up run after start
            (default: 10, range: 0-600)
        max_records_per_store: Local SYNCED records compared per store per run
            (default: 100, range: 1-10000)
        max_resync_per_store: Corrective jobs queued per store per run
            (default: 10, range: 1-1000)
        entity_type: Local entity family to verify (default: person)
        remote_id_aliases: Ordered identity field names on remote records
        manual_verify_mode: "concurrent" lets verify_now() overlap a scheduled
            run; "exclusive" refuses it while a run is in flight
    """

    enabled: bool = True
    interval: float = Field(default=300.0, ge=10.0, le=86400.0)
    warmup_delay: float = Field(default=10.0, ge=0.0, le=600.0)

    max_records_per_store: int = Field(default=100, ge=1, le=10000)
    max_resync_per_store: int = Field(default=10, ge=1, le=1000)

    entity_type: str = Field(
        default="person",
        description="Entity family to verify: space, person, conference, list"
    )
    remote_id_aliases: tuple[str, ...] = Field(
        default=DEFAULT_REMOTE_ID_ALIASES,
        description="Remote record identity fields, first populated one wins"
    )
    manual_verify_mode: str = Field(
        default="concurrent",
        description="concurrent: manual checks bypass the in-flight guard; "
                    "exclusive: manual checks are refused while a scheduled run is in flight"
    )

    @field_validator('entity_type', mode='before')
    @classmethod
    def validate_entity_type(cls, v):
        """Validate entity_type is one of the known entity families."""
        if isinstance(v, str) and v.lower() in ENTITY_TYPES:
            return v.lower()
        raise ValueError(f"entity_type must be one of {ENTITY_TYPES}, got: {v}")

    @field_validator('manual_verify_mode', mode='before')
    @classmethod
    def validate_manual_verify_mode(cls, v):
        """Validate manual_verify_mode is concurrent or exclusive."""
        if isinstance(v, str) and v.lower() in MANUAL_VERIFY_MODES:
            return v.lower()
        raise ValueError(f"manual_verify_mode must be one of {MANUAL_VERIFY_MODES}, got: {v}")

    @field_validator('remote_id_aliases', mode='before')
    @classmethod
    def validate_remote_id_aliases(cls, v):
        """Accept a comma-separated string or a sequence; reject empty chains."""
        if isinstance(v, str):
            v = [name.strip() for name in v.split(',')]
        aliases = tuple(name for name in v if name)
        if not aliases:
            raise ValueError('remote_id_aliases must name at least one field')
        return aliases

    @field_validator('enabled', mode='before')
    @classmethod
    def validate_booleans(cls, v):
        """Ensure boolean fields are actual booleans, not truthy strings."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            lower = v.lower()
            if lower in ('true', '1', 'yes'):
                return True
            if lower in ('false', '0', 'no'):
                return False
            raise ValueError(f"Invalid boolean value: {v}")
        raise ValueError(f"Expected boolean, got {type(v).__name__}")

    def log_config(self) -> None:
        """Log the effective configuration."""
        log.info(
            f"Drift config: enabled={self.enabled}, interval={self.interval}s, "
            f"warmup_delay={self.warmup_delay}s, entity_type={self.entity_type}, "
            f"max_records_per_store={self.max_records_per_store}, "
            f"max_resync_per_store={self.max_resync_per_store}, "
            f"remote_id_aliases={list(self.remote_id_aliases)}, "
            f"manual_verify_mode={self.manual_verify_mode}"
        )
        if self.manual_verify_mode == 'concurrent':
            log.info("Manual verification may overlap a scheduled run; "
                     "duplicate resync submissions are deduplicated by the queue")


def validate_config(config_dict: dict) -> tuple[Optional[DriftConfig], Optional[str]]:
    """
    Validate configuration dictionary and return DriftConfig or error message.

    Args:
        config_dict: Dictionary containing configuration values

    Returns:
        Tuple of (DriftConfig, None) on success,
        or (None, error_message) on validation failure
    """
    try:
        config = DriftConfig(**config_dict)
        return (config, None)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            msg = error['msg']
            errors.append(f"{field}: {msg}")
        error_message = '; '.join(errors)
        return (None, error_message)


# Re-export ValidationError for external use
__all__ = ['DriftConfig', 'validate_config', 'ValidationError', 'DEFAULT_REMOTE_ID_ALIASES']
