"""Quota enforcement configuration.

Turns the quota section of the application settings into immutable
policies, one per tier, plus the request classification rules used by the
quota middleware.
"""

from dataclasses import dataclass, field

from tempshare.config.settings import QuotaPolicySettings, Settings
from tempshare.security.quota import QuotaPolicy, QuotaTier

# Settings attribute holding each tier
_TIER_FIELDS: dict[QuotaTier, str] = {
    QuotaTier.UPLOAD: "upload",
    QuotaTier.DOWNLOAD: "download",
    QuotaTier.LISTING: "listing",
    QuotaTier.ADMIN: "admin",
    QuotaTier.HEALTH: "health",
    QuotaTier.GLOBAL: "global_ceiling",
}


def policy_from_settings(tier: QuotaTier, tier_settings: QuotaPolicySettings) -> QuotaPolicy:
    """Build a QuotaPolicy from its settings model."""
    return QuotaPolicy(
        name=tier.value,
        window_ms=tier_settings.window_ms,
        max=tier_settings.max,
        delay_after=tier_settings.delay_after,
        base_delay_ms=tier_settings.base_delay_ms,
        max_delay_ms=tier_settings.max_delay_ms,
        skip_successful=tier_settings.skip_successful,
        skip_failed=tier_settings.skip_failed,
        message=tier_settings.message,
    )


@dataclass(frozen=True, slots=True)
class QuotaConfig:
    """Configuration for quota enforcement.

    Attributes:
        enabled: Whether quotas are enforced
        policies: Policy per tier, the global tier included
        exempt_paths: Paths that bypass quotas entirely
        api_prefix: Prefix under which the share API is mounted
        trust_proxy_headers: Resolve client addresses from forwarding headers
        trusted_proxies: Peers allowed to set forwarding headers (empty = any)
        include_in_headers: Add X-RateLimit-* headers to admitted responses
    """

    policies: dict[QuotaTier, QuotaPolicy]
    enabled: bool = True
    exempt_paths: frozenset[str] = field(
        default_factory=lambda: frozenset({"/metrics", "/docs", "/redoc", "/openapi.json"})
    )
    api_prefix: str = "/api"
    trust_proxy_headers: bool = True
    trusted_proxies: frozenset[str] = field(default_factory=frozenset)
    include_in_headers: bool = True

    def policy(self, tier: QuotaTier) -> QuotaPolicy:
        return self.policies[tier]

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuotaConfig":
        """Create the quota configuration from application settings."""
        policies = {
            tier: policy_from_settings(tier, getattr(settings.quota, attr))
            for tier, attr in _TIER_FIELDS.items()
        }
        return cls(
            policies=policies,
            enabled=settings.RATE_LIMIT_ENABLED,
            trust_proxy_headers=settings.TRUST_PROXY_HEADERS,
            trusted_proxies=frozenset(settings.TRUSTED_PROXIES),
        )
