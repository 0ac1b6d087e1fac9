"""
Valentine Backend: Pinned DNS Resolution
==========================================

What:  Resolves the database host through a fixed set of nameservers.
Why:   Container and host resolvers are not always trusted to answer for
       managed database hostnames; the server decides who it asks.
How:   dnspython's async resolver is built with configure=False so the
       system resolv.conf is ignored, then only the configured servers
       (DNS_SERVERS, default Google public DNS) are queried.
Who:   Database.connect() calls pin_database_url() before creating the engine.
"""

import ipaddress
import logging
from typing import List, Optional, Union

import dns.asyncresolver
import dns.exception
from sqlalchemy.engine import URL, make_url

from valentine.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

# Hosts that never go through DNS
LOCAL_HOSTS = {"localhost", "localhost.localdomain"}

# Driver query options that turn on TLS (asyncpg: ssl, libpq style: sslmode)
TLS_QUERY_KEYS = ("ssl", "sslmode")
TLS_DISABLED_VALUES = {"disable", "false", "0", "off", "no"}


def build_resolver(nameservers: List[str]) -> dns.asyncresolver.Resolver:
    """Create an async resolver that only talks to `nameservers`."""
    resolver = dns.asyncresolver.Resolver(configure=False)
    resolver.nameservers = list(nameservers)
    return resolver


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True


def needs_resolution(host: Optional[str]) -> bool:
    """True for real hostnames; False for IPs, localhost and host-less URLs."""
    if not host:
        return False
    if host.lower() in LOCAL_HOSTS:
        return False
    return not _is_ip_literal(host)


async def resolve_host(host: str, resolver: dns.asyncresolver.Resolver) -> str:
    """
    Return the first IPv4 address for `host` from the pinned resolvers.

    Raises:
        StorageUnavailableError: the name does not resolve or every
            nameserver failed. At startup this aborts the process.
    """
    try:
        answer = await resolver.resolve(host, "A")
    except dns.exception.DNSException as e:
        logger.error("DNS resolution failed for %s via %s: %s", host, resolver.nameservers, e)
        raise StorageUnavailableError(
            message=f"Could not resolve database host '{host}'",
            context={"host": host, "nameservers": list(resolver.nameservers), "error": str(e)},
        )
    address = answer[0].to_text()
    logger.info("Resolved %s -> %s via pinned DNS", host, address)
    return address


def requests_tls(url: URL) -> bool:
    """True when the URL asks the driver for TLS (ssl= or sslmode= other than off)."""
    for key in TLS_QUERY_KEYS:
        value = url.query.get(key)
        if value is None:
            continue
        if isinstance(value, tuple):
            value = value[-1]
        if str(value).strip().lower() not in TLS_DISABLED_VALUES:
            return True
    return False


async def pin_database_url(url: Union[str, URL], nameservers: List[str]) -> URL:
    """
    Substitute the database hostname with an address from the pinned resolvers.

    Returns the URL unchanged when pinning is disabled (no nameservers) or the
    host does not need DNS (IP literal, localhost, SQLite file).

    TLS connections keep their hostname: certificate verification and SNI
    routing need the name, not the address. The host is still resolved
    through the pinned servers so an unknown name fails startup the same way.
    """
    parsed = make_url(url) if isinstance(url, str) else url
    if not nameservers or not needs_resolution(parsed.host):
        return parsed

    address = await resolve_host(parsed.host, build_resolver(nameservers))
    if requests_tls(parsed):
        logger.info("TLS requested for %s; connecting by hostname", parsed.host)
        return parsed
    return parsed.set(host=address)
