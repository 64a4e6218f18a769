"""Pydantic models for manually signed AWS requests."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AwsCredentials(BaseModel):
    """Long-term or session credentials.

    Accepts the STS ``Credentials`` shape (``AccessKeyId``, ``SecretAccessKey``,
    ``SessionToken``) as well as the field names.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    access_key_id: str = Field(..., alias="AccessKeyId", min_length=1)
    secret_access_key: str = Field(..., alias="SecretAccessKey", min_length=1)
    session_token: Optional[str] = Field(default=None, alias="SessionToken")


class SignedRequestSpec(BaseModel):
    uri: str = Field(..., min_length=1)
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None


__all__ = ["AwsCredentials", "SignedRequestSpec"]
