"""HTTPS proxy resolution for outbound AWS traffic."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .config import ConnectionSettings
from .errors import BadConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443, "socks5": 1080}


@dataclass(frozen=True)
class ProxyAgent:
    url: str
    host: str
    port: int

    def boto_proxies(self) -> Dict[str, str]:
        return {"https": self.url}

    def transport(self) -> httpx.HTTPTransport:
        return httpx.HTTPTransport(proxy=self.url)


@dataclass(frozen=True)
class RequestHandler:
    """Transport options attached to a connection when a proxy is active."""

    https_agent: ProxyAgent

    def config_options(self) -> Dict[str, Any]:
        return {"proxies": self.https_agent.boto_proxies()}


def parse_proxy_url(value: str) -> ProxyAgent:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as exc:
        raise BadConfigurationError(
            "Invalid URL configuration in aws.proxy.https_proxy",
            {"https_proxy": value, "error": exc},
        ) from exc
    if url.scheme not in DEFAULT_PORTS or not url.host:
        raise BadConfigurationError(
            "Invalid URL configuration in aws.proxy.https_proxy",
            {"https_proxy": value, "error": "proxy URL needs an http, https or socks5 scheme and a host"},
        )
    port = url.port or DEFAULT_PORTS[url.scheme]
    return ProxyAgent(url=str(url), host=url.host, port=port)


def resolve_proxy_agent(settings: Optional[ConnectionSettings] = None) -> Optional[ProxyAgent]:
    """Return a proxy agent for the configured HTTPS proxy, or ``None``.

    Never raises: an invalid proxy URL is logged and treated as no proxy.
    """
    settings = settings or ConnectionSettings.from_env()
    if not settings.https_proxy:
        return None
    try:
        return parse_proxy_url(settings.https_proxy)
    except BadConfigurationError as exc:
        logger.error(exc.message, extra={"error": exc.to_dict()})
        return None


__all__ = ["ProxyAgent", "RequestHandler", "parse_proxy_url", "resolve_proxy_agent"]
