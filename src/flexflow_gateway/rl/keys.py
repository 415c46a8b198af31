"""Rate limiting key utilities."""

import ipaddress
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .exceptions import KeyExtractionError

logger = logging.getLogger(__name__)

# Shared bucket for requests whose client cannot be identified
ANONYMOUS_KEY = "anonymous"

DEFAULT_IPV6_SUBNET = 56


@dataclass(frozen=True)
class RequestDescriptor:
    """The parts of an inbound request the limiter needs."""
    client_address: Optional[str]
    route_class: str = "global"
    path: str = "/"


KeyExtractor = Callable[[RequestDescriptor], Optional[str]]


def normalize_address(address: Optional[str], ipv6_subnet: int = DEFAULT_IPV6_SUBNET) -> str:
    """
    Turn a raw client address into a stable client key.

    IPv4 addresses are returned as-is. IPv6 addresses are collapsed to their
    `ipv6_subnet` prefix, since one host usually controls a whole block.
    IPv4-mapped IPv6 addresses are treated as IPv4.

    Raises:
        KeyExtractionError: if the address is missing or not an IP address
    """
    if address is None or not address.strip():
        raise KeyExtractionError("client address missing", attribute="client_address")

    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        raise KeyExtractionError(
            f"client address is not an IP address: {address!r}",
            attribute="client_address"
        ) from None

    if isinstance(ip, ipaddress.IPv6Address):
        if ip.ipv4_mapped is not None:
            return str(ip.ipv4_mapped)
        network = ipaddress.IPv6Network(f"{ip}/{ipv6_subnet}", strict=False)
        return str(network)
    return str(ip)


def client_address_key(descriptor: RequestDescriptor) -> str:
    """Key requests by client address."""
    return normalize_address(descriptor.client_address)


def client_address_and_route_key(descriptor: RequestDescriptor) -> str:
    """Key requests by client address and route class."""
    address = normalize_address(descriptor.client_address)
    return f"{address}@{descriptor.route_class.strip().lower()}"


def extract_client_key(extractor: KeyExtractor, descriptor: RequestDescriptor) -> str:
    """
    Run `extractor`, falling back to the shared anonymous bucket.

    A missing or malformed client attribute never fails the request and never
    bypasses throttling: the request is counted against ANONYMOUS_KEY instead.
    """
    try:
        key = extractor(descriptor)
    except KeyExtractionError as e:
        logger.warning(
            "Client key extraction failed, using anonymous bucket",
            extra={"path": descriptor.path, "route_class": descriptor.route_class, "error": e.message}
        )
        return ANONYMOUS_KEY

    if not key:
        logger.warning(
            "Client key extractor returned no key, using anonymous bucket",
            extra={"path": descriptor.path, "route_class": descriptor.route_class}
        )
        return ANONYMOUS_KEY
    return key


def build_rl_key(*, policy: str, client_key: str) -> str:
    """
    Build a composite key for rate limiting scope (tier + client).
    Format: rl:tier:{policy}|client:{client_key}
    - Normalize inputs: strip, lower the tier name
    - Replace '|' in any input with '_' to avoid delimiter collisions.
    """
    normalized_policy = policy.strip().lower().replace('|', '_')
    normalized_client = client_key.strip().replace('|', '_')

    return f"rl:tier:{normalized_policy}|client:{normalized_client}"
