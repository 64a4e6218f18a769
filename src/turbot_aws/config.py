"""Configuration objects for Turbot AWS connections."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

USER_AGENT = "Turbot/5 (APN_137229)"

DEFAULT_MAX_ATTEMPTS = 3
DISCOVERY_MAX_ATTEMPTS = 10

DEFAULT_SIGNING_REGION = "us-east-1"


@dataclass(frozen=True)
class ConnectionSettings:
    default_region: Optional[str] = None
    https_proxy: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConnectionSettings":
        env = os.environ if environ is None else environ
        # Lambda sets AWS_DEFAULT_REGION; it is the first preference.
        region = env.get("AWS_DEFAULT_REGION") or None
        proxy = env.get("https_proxy") or env.get("HTTPS_PROXY") or None
        return cls(default_region=region, https_proxy=proxy)


__all__ = [
    "ConnectionSettings",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_SIGNING_REGION",
    "DISCOVERY_MAX_ATTEMPTS",
    "USER_AGENT",
]
