"""Auth configuration validation run at startup."""

import logging
from typing import Any

from courseforge.config.settings import Settings, get_settings


logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("none", "supabase")


class AuthConfigurationError(Exception):
    """Exception raised when auth configuration is invalid or inconsistent."""


def validate_backend_config(settings: Settings | None = None) -> dict[str, Any]:
    """Validate backend authentication configuration.

    Returns
    -------
        Dict with the provider, blocking issues and non-blocking warnings
    """
    settings = settings or get_settings()
    issues: list[str] = []
    warnings: list[str] = []

    auth_provider = settings.AUTH_PROVIDER.lower()

    if auth_provider not in SUPPORTED_PROVIDERS:
        issues.append(f"Invalid AUTH_PROVIDER: {auth_provider}. Must be one of {', '.join(SUPPORTED_PROVIDERS)}")

    if auth_provider == "none" and settings.ENVIRONMENT == "production":
        issues.append("AUTH_PROVIDER=none is not allowed when ENVIRONMENT=production")

    if auth_provider == "supabase":
        if not settings.SUPABASE_URL:
            issues.append("SUPABASE_URL is required when AUTH_PROVIDER=supabase")
        elif not settings.SUPABASE_URL.startswith("https://"):
            issues.append("SUPABASE_URL must start with https://")

        if not settings.SUPABASE_PUBLISHABLE_KEY:
            issues.append("SUPABASE_PUBLISHABLE_KEY is required when AUTH_PROVIDER=supabase")

    if not settings.MUX_TOKEN_ID or not settings.MUX_TOKEN_SECRET:
        warnings.append("MUX_TOKEN_ID and MUX_TOKEN_SECRET are not set; chapter video uploads will fail")

    return {
        "valid": not issues,
        "auth_provider": auth_provider,
        "issues": issues,
        "warnings": warnings,
    }


def validate_auth_on_startup() -> None:
    """Entry point for startup auth validation."""
    result = validate_backend_config()

    for warning in result["warnings"]:
        logger.warning("Auth configuration warning: %s", warning)

    if not result["valid"]:
        for issue in result["issues"]:
            logger.error("Auth configuration issue: %s", issue)
        msg = f"Invalid auth configuration: {'; '.join(result['issues'])}"
        raise AuthConfigurationError(msg)

    logger.info("Auth configuration valid (provider: %s)", result["auth_provider"])
