"""Exception types raised by the Turbot AWS helpers."""

from __future__ import annotations

from typing import Any, Dict, Optional


class TurbotAwsError(Exception):
    code = "turbot_aws_error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used as logging ``extra`` payload."""
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.context:
            payload["context"] = {key: str(value) for key, value in self.context.items()}
        return payload


class BadConfigurationError(TurbotAwsError):
    code = "bad_configuration"


class SignedRequestError(TurbotAwsError):
    code = "signed_request_failed"


__all__ = ["BadConfigurationError", "SignedRequestError", "TurbotAwsError"]
