"""
URL validation: syntax and scheme first, then (optionally) the hostname.

Both checks fail the same way, with InvalidUrl, so the client cannot tell a
typo from a domain that does not exist.
"""

import ipaddress
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import dns.asyncresolver
import dns.exception
import dns.resolver
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from shorturl_app.config import Settings, settings as default_settings
from shorturl_app.exceptions import InvalidUrl

logger = logging.getLogger(__name__)

_http_url = TypeAdapter(AnyHttpUrl)


@dataclass(frozen=True)
class ParsedUrl:
    """A URL that passed validation.

    ``raw`` is the submitted string, untouched; that is what gets stored and
    what the redirect points at.
    """
    raw: str
    scheme: str
    host: str


class HostnameResolver(ABC):
    """Strategy for the name-resolution half of validation"""

    @abstractmethod
    async def resolves(self, hostname: str) -> bool:
        """True if the hostname resolves to at least one address"""
        pass


class DnsHostnameResolver(HostnameResolver):
    """
    Resolve hostnames with dnspython's asyncio resolver.

    Tries A records, then AAAA, applying the host's search domains.
    ``localhost`` never goes to the network. /etc/hosts is not consulted,
    so names that exist only there are rejected.
    """

    def __init__(self, timeout: float = 3.0):
        """
        Args:
            timeout: Total time allowed per lookup, in seconds

        Raises:
            dns.resolver.NoResolverConfiguration: no nameservers on this host
        """
        self.resolver = dns.asyncresolver.Resolver()
        self.resolver.lifetime = timeout

    async def resolves(self, hostname: str) -> bool:
        if hostname == "localhost" or hostname.endswith(".localhost"):
            return True
        for rdtype in ("A", "AAAA"):
            try:
                await self.resolver.resolve(hostname, rdtype, search=True)
                return True
            except dns.resolver.NoAnswer:
                continue
            except dns.exception.DNSException as e:
                logger.debug("DNS lookup for %s failed: %s", hostname, e)
                return False
        return False


class NullHostnameResolver(HostnameResolver):
    """Accepts every hostname (check disabled)"""

    async def resolves(self, hostname: str) -> bool:
        return True


class UrlValidator:
    """Validates submitted URLs for the create endpoint"""

    ALLOWED_SCHEMES = ("http", "https")

    def __init__(self, resolver: HostnameResolver = None):
        self.resolver = resolver or NullHostnameResolver()

    def parse(self, raw: Any) -> ParsedUrl:
        """
        Syntax check only.

        Args:
            raw: Value of the ``url`` field, whatever type the client sent

        Returns:
            ParsedUrl

        Raises:
            InvalidUrl: not a string, not absolute, no host, or scheme not http/https
        """
        if not isinstance(raw, str) or not raw:
            raise InvalidUrl("url must be a non-empty string")
        try:
            url = _http_url.validate_python(raw)
        except ValidationError as e:
            raise InvalidUrl(f"unparseable url {raw!r}") from e
        if url.scheme not in self.ALLOWED_SCHEMES or not url.host:
            raise InvalidUrl(f"unsupported url {raw!r}")
        return ParsedUrl(raw=raw, scheme=url.scheme, host=url.host)

    async def validate(self, raw: Any) -> ParsedUrl:
        """
        Full validation: syntax, then hostname resolution.

        Raises:
            InvalidUrl: either check failed
        """
        parsed = self.parse(raw)
        if _is_ip_literal(parsed.host):
            return parsed
        if not await self.resolver.resolves(parsed.host):
            raise InvalidUrl(f"hostname {parsed.host!r} does not resolve")
        return parsed


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True


def create_validator(config: Settings = None) -> UrlValidator:
    """
    Build the validator described by settings.

    Falls back to skipping the hostname check when the host has no resolver
    configuration at all.
    """
    config = config or default_settings
    if not config.dns_check_enabled:
        return UrlValidator(NullHostnameResolver())
    try:
        return UrlValidator(DnsHostnameResolver(timeout=config.dns_timeout))
    except dns.resolver.NoResolverConfiguration:
        logger.warning("No DNS resolver configured on this host, hostname check disabled")
        return UrlValidator(NullHostnameResolver())
