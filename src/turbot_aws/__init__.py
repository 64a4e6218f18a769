"""Turbot AWS connection helpers."""

from .config import USER_AGENT, ConnectionSettings
from .connection import ConnectionParams, boto_client, connect, connect_discovery, discovery_params
from .errors import BadConfigurationError, SignedRequestError, TurbotAwsError
from .models import AwsCredentials, SignedRequestSpec
from .proxy import ProxyAgent, resolve_proxy_agent
from .retry import default_backoff, discovery_backoff, discovery_retry_strategy, standard_retry_strategy
from .signing import fetch_signed, signed_request

__all__ = [
    "AwsCredentials",
    "BadConfigurationError",
    "ConnectionParams",
    "ConnectionSettings",
    "ProxyAgent",
    "SignedRequestError",
    "SignedRequestSpec",
    "TurbotAwsError",
    "USER_AGENT",
    "boto_client",
    "connect",
    "connect_discovery",
    "default_backoff",
    "discovery_backoff",
    "discovery_params",
    "discovery_retry_strategy",
    "fetch_signed",
    "resolve_proxy_agent",
    "signed_request",
    "standard_retry_strategy",
]
