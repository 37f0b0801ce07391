"""Crawler collaborator contract and website URL validation."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from typing import List, Optional, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, Field

from .errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = {"http", "https"}
DEFAULT_PORTS = {"http": 80, "https": 443}


class ExtractedPage(BaseModel):
    """Text content of one crawled page."""

    url: str
    title: str = ""
    body_text: str = ""
    headings: List[str] = Field(default_factory=list)
    meta_description: str = ""
    word_count: int = 0
    fetched_at: str


class ArtifactKey(BaseModel):
    url: str
    raw_html: str
    text: str


class CrawlResult(BaseModel):
    origin: str
    pages: List[ExtractedPage] = Field(default_factory=list)
    artifact_keys: List[ArtifactKey] = Field(default_factory=list)
    skipped_urls: List[str] = Field(default_factory=list)


class Crawler(Protocol):
    """Fetches a website and returns page text. Slow and retryable."""

    async def crawl(self, url: str, run_id: str) -> CrawlResult:
        """Crawl the site rooted at ``url``."""


class ValidatedUrl(BaseModel):
    href: str
    hostname: str
    origin: str


def normalize_url(raw: str) -> str:
    """Lower-case scheme and host, drop default ports and fragments, sort the query."""
    parts = urlsplit(raw)
    scheme = parts.scheme.lower()
    hostname = (parts.hostname or "").lower()
    if ":" in hostname:
        hostname = f"[{hostname}]"
    netloc = hostname
    if parts.port is not None and parts.port != DEFAULT_PORTS.get(scheme):
        netloc = f"{hostname}:{parts.port}"
    if parts.username:
        userinfo = parts.username + (f":{parts.password}" if parts.password else "")
        netloc = f"{userinfo}@{netloc}"
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, query, ""))


def is_private_ip(address: str) -> bool:
    """Whether ``address`` is loopback, private, link-local or otherwise reserved."""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_unspecified
        or ip.is_multicast
    )


async def resolve_host(hostname: str) -> str:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    return infos[0][4][0]


async def validate_url(raw: str, resolver=resolve_host) -> ValidatedUrl:
    """Validate a customer-supplied website URL before crawling it.

    Only http(s) on default ports is accepted, and the host must not resolve
    to a private or reserved address.
    """
    try:
        parts = urlsplit(raw.strip())
        port: Optional[int] = parts.port
    except ValueError:
        raise ValidationError(f"Invalid URL: {raw}")

    if not parts.scheme or not parts.hostname:
        raise ValidationError(f"Invalid URL: {raw}")

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise ValidationError(f"Unsupported protocol: {scheme}:")

    if port is not None and port not in (80, 443):
        raise ValidationError(f"Non-standard port not allowed: {port}")

    try:
        address = await resolver(parts.hostname)
    except (OSError, UnicodeError):
        raise ValidationError(f"Cannot resolve hostname: {parts.hostname}")

    if is_private_ip(address):
        raise ValidationError(f"Private/reserved IP address not allowed: {address}")

    href = normalize_url(raw.strip())
    normalized = urlsplit(href)
    return ValidatedUrl(
        href=href,
        hostname=normalized.hostname or "",
        origin=f"{normalized.scheme}://{normalized.netloc.rsplit('@', 1)[-1]}",
    )
