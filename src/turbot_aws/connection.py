"""Connection factory for AWS service clients."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar, Union

import boto3
from botocore.config import Config

from .config import DEFAULT_MAX_ATTEMPTS, DISCOVERY_MAX_ATTEMPTS, USER_AGENT, ConnectionSettings
from .proxy import RequestHandler, resolve_proxy_agent
from .retry import RetryStrategy, discovery_retry_strategy, standard_retry_strategy

logger = logging.getLogger(__name__)

ClientT = TypeVar("ClientT")


@dataclass
class ConnectionParams:
    region: Optional[str] = None
    request_handler: Optional[RequestHandler] = None
    custom_user_agent: Optional[str] = None
    max_attempts: Optional[int] = None
    retry_strategy: Optional[RetryStrategy] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ConnectionParams":
        known = {f.name for f in fields(cls)} - {"extra"}
        params = cls(**{key: value for key, value in values.items() if key in known})
        params.extra = {key: value for key, value in values.items() if key not in known}
        return params


ParamsInput = Union[ConnectionParams, Mapping[str, Any], None]
ClientConstructor = Callable[[ConnectionParams], ClientT]


def _coerce_params(params: ParamsInput) -> ConnectionParams:
    if params is None:
        return ConnectionParams()
    if isinstance(params, ConnectionParams):
        coerced = replace(params, extra=dict(params.extra))
    else:
        coerced = ConnectionParams.from_mapping(params)
    # boto3 spelling of the region option.
    region_name = coerced.extra.pop("region_name", None)
    if not coerced.region:
        coerced.region = region_name
    return coerced


def normalize_params(params: ParamsInput = None, settings: Optional[ConnectionSettings] = None) -> ConnectionParams:
    """Apply platform defaults to a copy of ``params``."""
    settings = settings or ConnectionSettings.from_env()
    normalized = _coerce_params(params)

    if not normalized.region:
        normalized.region = settings.default_region

    agent = resolve_proxy_agent(settings)
    if agent is not None:
        normalized.request_handler = RequestHandler(https_agent=agent)

    # Any caller supplied agent is replaced, not extended.
    if normalized.custom_user_agent:
        normalized.custom_user_agent = USER_AGENT

    if normalized.retry_strategy is None:
        if not normalized.max_attempts or normalized.max_attempts < 1:
            normalized.max_attempts = DEFAULT_MAX_ATTEMPTS
        normalized.retry_strategy = standard_retry_strategy(normalized.max_attempts)
    else:
        ceiling = normalized.retry_strategy.max_attempts
        if normalized.max_attempts and normalized.max_attempts != ceiling:
            logger.warning(
                "max_attempts=%s disagrees with retry strategy ceiling %s; using the strategy ceiling",
                normalized.max_attempts,
                ceiling,
            )
        normalized.max_attempts = ceiling

    return normalized


def connect(
    client_constructor: ClientConstructor,
    params: ParamsInput = None,
    settings: Optional[ConnectionSettings] = None,
) -> ClientT:
    """Build a service client from ``client_constructor`` with normalized params.

    Exceptions raised by the constructor propagate unchanged.
    """
    normalized = normalize_params(params, settings)
    logger.debug(
        "Connecting client region=%s max_attempts=%s proxy=%s",
        normalized.region,
        normalized.max_attempts,
        normalized.request_handler is not None,
    )
    return client_constructor(normalized)


def discovery_params(region: Optional[str]) -> ConnectionParams:
    return ConnectionParams(
        region=region,
        max_attempts=DISCOVERY_MAX_ATTEMPTS,
        retry_strategy=discovery_retry_strategy(DISCOVERY_MAX_ATTEMPTS),
    )


def connect_discovery(
    client_constructor: ClientConstructor,
    region: Optional[str],
    settings: Optional[ConnectionSettings] = None,
) -> ClientT:
    return connect(client_constructor, discovery_params(region), settings)


class BotoClientConstructor:
    """Client constructor that builds a boto3 client from connection params.

    ``extra`` params are forwarded to ``Session.client``; a ``session`` entry
    overrides the constructor's session and a ``config`` entry is merged
    under the platform options.
    """

    def __init__(self, service_name: str, session: Optional[boto3.session.Session] = None) -> None:
        self.service_name = service_name
        self._session = session

    def __repr__(self) -> str:
        return f"BotoClientConstructor({self.service_name!r})"

    def build_config(self, params: ConnectionParams) -> Config:
        options: Dict[str, Any] = {}
        if params.max_attempts:
            options["retries"] = {"mode": "standard", "total_max_attempts": params.max_attempts}
        if params.custom_user_agent:
            options["user_agent_extra"] = params.custom_user_agent
        if params.request_handler is not None:
            options.update(params.request_handler.config_options())
        return Config(**options)

    def __call__(self, params: ConnectionParams) -> Any:
        extra = dict(params.extra)
        region_name = extra.pop("region_name", None)
        region = params.region or region_name
        session = extra.pop("session", None) or self._session or boto3.session.Session()
        config = self.build_config(params)
        user_config = extra.pop("config", None)
        if user_config is not None:
            config = user_config.merge(config)
        client = session.client(self.service_name, region_name=region, config=config, **extra)
        if params.retry_strategy is not None:
            params.retry_strategy.install(client)
        return client


def boto_client(service_name: str, session: Optional[boto3.session.Session] = None) -> BotoClientConstructor:
    return BotoClientConstructor(service_name, session=session)


__all__ = [
    "BotoClientConstructor",
    "ConnectionParams",
    "boto_client",
    "connect",
    "connect_discovery",
    "discovery_params",
    "normalize_params",
]
