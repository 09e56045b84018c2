"""Configuration validation for startup checks.

Validates that required configuration is present and consistent before the
application starts accepting uploads.

Usage:
    from tempshare.config.validation import validate_or_raise

    # During startup
    validate_or_raise(settings)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from tempshare.config.settings import BlobBackend, QuotaPolicySettings, Settings, get_settings
from tempshare.db.models.share import TITLE_COLUMN_LENGTH
from tempshare.utils.exceptions import ConfigurationError

logger = structlog.get_logger("tempshare.config")


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, app cannot start
    WARNING = "warning"  # Should be fixed, app can start but may have issues


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate application configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_database(settings))
    results.extend(_validate_lifecycle(settings))
    results.extend(_validate_blob_storage(settings))
    results.extend(_validate_quotas(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Args:
        settings: Settings to validate

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in (r for r in results if r.severity == ValidationSeverity.WARNING):
        logger.warning("configuration_warning", detail=str(warning))


# =============================================================================
# Validators
# =============================================================================


def _validate_database(settings: Settings) -> list[ValidationResult]:
    """Validate database configuration."""
    results: list[ValidationResult] = []

    if not settings.DATABASE_URL:
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.ERROR,
                message="Database URL is not configured",
                suggestion="Set DATABASE_URL environment variable",
            )
        )
    elif not settings.DATABASE_URL.startswith(("postgresql", "sqlite")):
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.WARNING,
                message=f"Unexpected database type in URL: {settings.DATABASE_URL[:20]}...",
                suggestion="tempshare is designed for PostgreSQL or SQLite",
            )
        )

    return results


def _validate_lifecycle(settings: Settings) -> list[ValidationResult]:
    """Validate share lifetime and reaper settings."""
    results: list[ValidationResult] = []

    if settings.SHARE_TTL_SECONDS <= 0:
        results.append(
            ValidationResult(
                field="SHARE_TTL_SECONDS",
                severity=ValidationSeverity.ERROR,
                message="Share TTL must be positive",
            )
        )

    if settings.REAPER_INTERVAL_MINUTES <= 0:
        results.append(
            ValidationResult(
                field="REAPER_INTERVAL_MINUTES",
                severity=ValidationSeverity.ERROR,
                message="Reaper interval must be positive",
            )
        )
    elif settings.reaper_interval_seconds > settings.SHARE_TTL_SECONDS:
        results.append(
            ValidationResult(
                field="REAPER_INTERVAL_MINUTES",
                severity=ValidationSeverity.WARNING,
                message="Reaper runs less often than shares expire",
                suggestion="Expired blobs may linger for more than one TTL",
            )
        )

    if not 1 <= settings.MAX_TITLE_LENGTH <= TITLE_COLUMN_LENGTH:
        results.append(
            ValidationResult(
                field="MAX_TITLE_LENGTH",
                severity=ValidationSeverity.ERROR,
                message=f"Maximum title length must be between 1 and {TITLE_COLUMN_LENGTH}",
                suggestion="Longer titles need a migration widening shares.title",
            )
        )

    if settings.MAX_UPLOAD_BYTES <= 0:
        results.append(
            ValidationResult(
                field="MAX_UPLOAD_BYTES",
                severity=ValidationSeverity.ERROR,
                message="Maximum upload size must be positive",
            )
        )

    return results


def _validate_blob_storage(settings: Settings) -> list[ValidationResult]:
    """Validate blob storage backend configuration."""
    results: list[ValidationResult] = []

    if settings.BLOB_BACKEND == BlobBackend.SUPABASE:
        if not settings.SUPABASE_URL:
            results.append(
                ValidationResult(
                    field="SUPABASE_URL",
                    severity=ValidationSeverity.ERROR,
                    message="Supabase backend selected but SUPABASE_URL is not set",
                    suggestion="Set SUPABASE_URL in your environment or .env file",
                )
            )
        if settings.get_supabase_key() is None:
            results.append(
                ValidationResult(
                    field="SUPABASE_SERVICE_ROLE_KEY",
                    severity=ValidationSeverity.ERROR,
                    message="Missing Supabase keys",
                    suggestion="Set SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY",
                )
            )
        elif settings.SUPABASE_SERVICE_ROLE_KEY is None:
            results.append(
                ValidationResult(
                    field="SUPABASE_SERVICE_ROLE_KEY",
                    severity=ValidationSeverity.WARNING,
                    message="Using the anon key for storage operations",
                    suggestion="Deletes may be refused by row level security",
                )
            )

    if settings.BLOB_BACKEND == BlobBackend.MEMORY and settings.ENVIRONMENT == "production":
        results.append(
            ValidationResult(
                field="BLOB_BACKEND",
                severity=ValidationSeverity.ERROR,
                message="In-memory blob storage is not allowed in production",
            )
        )

    return results


def _validate_quotas(settings: Settings) -> list[ValidationResult]:
    """Validate quota tier parameters."""
    results: list[ValidationResult] = []

    tiers: dict[str, QuotaPolicySettings] = dict(settings.quota)
    for name, policy in tiers.items():
        field = f"quota.{name}"
        if policy.window_ms <= 0 or policy.max <= 0:
            results.append(
                ValidationResult(
                    field=field,
                    severity=ValidationSeverity.ERROR,
                    message="Quota window and max must be positive",
                )
            )
        if policy.delay_after is not None and policy.delay_after >= policy.max:
            results.append(
                ValidationResult(
                    field=field,
                    severity=ValidationSeverity.WARNING,
                    message="delay_after is not below max, graduated delay never applies",
                )
            )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    """Validate environment-specific settings."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        results.append(
            ValidationResult(
                field="DEBUG",
                severity=ValidationSeverity.ERROR,
                message="Debug mode must be disabled in production",
                suggestion="Set DEBUG=false for production",
            )
        )

    if settings.ENVIRONMENT == "production" and "*" in settings.CORS_ORIGINS:
        results.append(
            ValidationResult(
                field="CORS_ORIGINS",
                severity=ValidationSeverity.ERROR,
                message="Wildcard CORS origin not allowed in production",
                suggestion="Specify exact allowed origins",
            )
        )

    if settings.TRUST_PROXY_HEADERS and not settings.TRUSTED_PROXIES:
        results.append(
            ValidationResult(
                field="TRUSTED_PROXIES",
                severity=ValidationSeverity.WARNING,
                message="Forwarded client address headers are trusted from any peer",
                suggestion="List your reverse proxies in TRUSTED_PROXIES",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging).

    Args:
        settings: Settings to summarize

    Returns:
        Dictionary with configuration summary
    """
    if settings is None:
        settings = get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "log_level": settings.log_level,
        "share_ttl_seconds": settings.SHARE_TTL_SECONDS,
        "max_upload_bytes": settings.MAX_UPLOAD_BYTES,
        "blob_backend": settings.BLOB_BACKEND.value,
        "scheduled_cleanup": settings.ENABLE_SCHEDULED_CLEANUP,
        "reaper_interval_minutes": settings.REAPER_INTERVAL_MINUTES,
        "rate_limit_enabled": settings.RATE_LIMIT_ENABLED,
        "supabase_configured": settings.get_supabase_key() is not None,
    }
