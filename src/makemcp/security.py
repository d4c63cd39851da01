"""Warnings for URLs that reach local or internal infrastructure."""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass
from typing import List, Optional, Union
from urllib.parse import urlparse


logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}
_CLOUD_METADATA_HOSTS = {"169.254.169.254", "metadata.google.internal", "100.100.100.200"}
_PRIVATE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("fc00::/7"),
]


@dataclass(frozen=True)
class URLSecurityIssue:
    type: str
    description: str
    url: str


def check_url_security(raw_url: str) -> List[URLSecurityIssue]:
    if not raw_url.startswith(("http://", "https://")):
        return []
    try:
        hostname = urlparse(raw_url).hostname or ""
    except ValueError:
        return []

    issues: List[URLSecurityIssue] = []
    address = _ip_address(hostname)

    if hostname in _LOOPBACK_HOSTS:
        issues.append(
            URLSecurityIssue("localhost", "URL points to localhost/loopback address", raw_url)
        )
    if address is not None and any(address in network for network in _PRIVATE_NETWORKS):
        issues.append(URLSecurityIssue("private_ip", "URL points to private IP address", raw_url))
    if hostname in _CLOUD_METADATA_HOSTS:
        issues.append(
            URLSecurityIssue("cloud_metadata", "URL points to cloud metadata endpoint", raw_url)
        )
    if address is not None and address.is_link_local:
        issues.append(URLSecurityIssue("link_local", "URL points to link-local address", raw_url))
    return issues


def warn_url_security(raw_url: str, url_type: str, dev_mode: bool = False) -> List[URLSecurityIssue]:
    if dev_mode:
        return []
    issues = check_url_security(raw_url)
    if not issues:
        return issues

    logger.warning("SECURITY WARNING: %s URL has potential security concerns:", url_type)
    for issue in issues:
        logger.warning("   - %s: %s", issue.type, issue.description)
    logger.warning("   URL: %s", raw_url)
    logger.warning("   To suppress these warnings for local development, use the --dev-mode flag")
    return issues


def _ip_address(hostname: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        return None
