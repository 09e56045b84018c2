"""Device fingerprinting for anonymous clients.

Derives a stable pseudo-identity from the connection address and a fixed set
of request headers. The rate limit key combines the resolved client address
with a prefix of the fingerprint, so devices sharing an address behind a NAT
are still told apart.

Example:
    traits = RequestTraits.from_request(request)
    fingerprinter = Fingerprinter(trust_proxy_headers=True)
    key = fingerprinter.rate_limit_key(traits)
    # "203.0.113.7:9f86d081884c"
"""

import hashlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.requests import Request

UNKNOWN = "unknown"

FINGERPRINT_HEADERS: tuple[str, ...] = (
    "user-agent",
    "accept-language",
    "accept-encoding",
    "connection",
    "dnt",
    "upgrade-insecure-requests",
    "sec-fetch-site",
    "sec-fetch-mode",
    "sec-fetch-dest",
    "x-screen-resolution",
    "x-timezone",
)

# Consulted in order when proxy headers are trusted
CLIENT_ADDRESS_HEADERS: tuple[str, ...] = (
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
    "x-client-ip",
)

FINGERPRINT_PREFIX_LENGTH = 12


@dataclass(frozen=True)
class RequestTraits:
    """The parts of a request that identify its sender.

    Attributes:
        client_host: Transport level peer address, if known
        headers: Request headers with lowercased names
    """

    client_host: str | None
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {name.lower(): value for name, value in self.headers.items()}
        object.__setattr__(self, "headers", normalized)

    @classmethod
    def from_request(cls, request: "Request") -> "RequestTraits":
        """Capture traits from a Starlette request."""
        host = request.client.host if request.client else None
        return cls(client_host=host, headers=dict(request.headers.items()))

    def header(self, name: str) -> str | None:
        value = self.headers.get(name)
        return value if value else None


def generate_device_fingerprint(traits: RequestTraits) -> str:
    """Compute the SHA-256 fingerprint of a request.

    Missing components are replaced by ``"unknown"`` so the function
    always produces a value.

    Args:
        traits: Address and headers of the request

    Returns:
        Hex encoded SHA-256 digest
    """
    components = [traits.client_host or UNKNOWN]
    components.extend(traits.header(name) or UNKNOWN for name in FINGERPRINT_HEADERS)
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()


def resolve_client_address(
    traits: RequestTraits,
    trust_proxy_headers: bool = True,
    trusted_proxies: Iterable[str] = (),
) -> str:
    """Resolve the real client address of a request.

    Forwarding headers are used only when ``trust_proxy_headers`` is set and
    the transport peer is listed in ``trusted_proxies``. An empty allowlist
    trusts every peer.

    Returns:
        Client address, or ``"unknown"`` if none can be determined
    """
    proxies = frozenset(trusted_proxies)
    peer_trusted = not proxies or traits.client_host in proxies

    if trust_proxy_headers and peer_trusted:
        for name in CLIENT_ADDRESS_HEADERS:
            value = traits.header(name)
            if not value:
                continue
            if name == "x-forwarded-for":
                # First entry is the originating client
                value = value.split(",")[0].strip()
            if value:
                return value

    return traits.client_host or UNKNOWN


class Fingerprinter:
    """Builds rate limit keys for incoming requests."""

    def __init__(
        self,
        trust_proxy_headers: bool = True,
        trusted_proxies: Iterable[str] = (),
    ) -> None:
        self.trust_proxy_headers = trust_proxy_headers
        self.trusted_proxies = frozenset(trusted_proxies)

    def rate_limit_key(self, traits: RequestTraits) -> str:
        """Return ``<client address>:<fingerprint prefix>`` for a request."""
        address = resolve_client_address(traits, self.trust_proxy_headers, self.trusted_proxies)
        fingerprint = generate_device_fingerprint(traits)
        return f"{address}:{fingerprint[:FINGERPRINT_PREFIX_LENGTH]}"
