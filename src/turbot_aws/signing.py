"""SigV4 signed HTTP requests for endpoints no boto3 client models."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Mapping, Optional, Union

import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from .config import DEFAULT_SIGNING_REGION, ConnectionSettings
from .errors import SignedRequestError
from .models import AwsCredentials, SignedRequestSpec
from .proxy import resolve_proxy_agent

logger = logging.getLogger(__name__)

REGION_RE = re.compile(r"(?:^|\.)((?:[a-z]{2}|us-gov|us-iso[bef]?)-[a-z]+-\d+)\.")
AWS_HOST_SUFFIXES = (".amazonaws.com", ".amazonaws.com.cn")

SpecInput = Union[SignedRequestSpec, Mapping[str, Any]]
CredentialsInput = Union[AwsCredentials, Mapping[str, Any]]
Callback = Callable[..., None]


def infer_region(host: str) -> Optional[str]:
    if not host.endswith(AWS_HOST_SUFFIXES):
        return None
    match = REGION_RE.search(host)
    return match.group(1) if match else None


def build_signed_request(
    spec: SignedRequestSpec,
    service: str,
    credentials: AwsCredentials,
    region: str,
) -> AWSRequest:
    url = httpx.URL(spec.uri)
    headers = dict(spec.headers)
    headers["host"] = url.host
    body = json.dumps(spec.body).encode("utf-8") if spec.body is not None else None
    request = AWSRequest(method=spec.method.upper(), url=spec.uri, data=body, headers=headers)
    signer = SigV4Auth(
        Credentials(credentials.access_key_id, credentials.secret_access_key, credentials.session_token),
        service,
        region,
    )
    signer.add_auth(request)
    return request


def fetch_signed(
    spec: SpecInput,
    service: str,
    credentials: CredentialsInput,
    *,
    region: Optional[str] = None,
    settings: Optional[ConnectionSettings] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Any:
    """Sign and send one request, returning the JSON-decoded body.

    A single attempt: no retry and no timeout override. Every failure is raised
    as :class:`SignedRequestError` chained to its cause.
    """
    try:
        settings = settings or ConnectionSettings.from_env()
        spec = spec if isinstance(spec, SignedRequestSpec) else SignedRequestSpec.model_validate(spec)
        credentials = (
            credentials if isinstance(credentials, AwsCredentials) else AwsCredentials.model_validate(credentials)
        )
        host = httpx.URL(spec.uri).host
        signing_region = region or infer_region(host) or settings.default_region or DEFAULT_SIGNING_REGION
        request = build_signed_request(spec, service, credentials, signing_region)

        if transport is None:
            agent = resolve_proxy_agent(settings)
            transport = agent.transport() if agent is not None else None
        with httpx.Client(transport=transport) as client:
            response = client.request(
                request.method,
                spec.uri,
                headers=dict(request.headers.items()),
                content=request.body,
            )
        return response.json()
    except Exception as exc:
        logger.debug("Signed %s request to %s failed: %s", service, getattr(spec, "uri", spec), exc)
        raise SignedRequestError(
            f"Signed {service} request failed: {exc}",
            {"service": service, "error": exc},
        ) from exc


def signed_request(
    spec: SpecInput,
    service: str,
    credentials: CredentialsInput,
    callback: Callback,
    *,
    region: Optional[str] = None,
    settings: Optional[ConnectionSettings] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> None:
    """Callback form of :func:`fetch_signed`: ``callback(None, body)`` or ``callback(error)``."""
    try:
        body = fetch_signed(spec, service, credentials, region=region, settings=settings, transport=transport)
    except SignedRequestError as exc:
        callback(exc)
        return
    callback(None, body)


__all__ = ["build_signed_request", "fetch_signed", "infer_region", "signed_request"]
