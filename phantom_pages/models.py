"""
Data models for phantom-pages.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from phantom_pages.exceptions import ValidationError


class Cookie(BaseModel):
    """HTTP cookie representation."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[Union[float, str]] = None
    expiry: Optional[float] = None
    http_only: bool = Field(False, alias="httponly")
    secure: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or " " in v:
            raise ValueError("Cookie name has to be a non-empty string without spaces")
        return v

    def to_engine(self) -> dict[str, Any]:
        """Serialize using the engine's cookie keys."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_engine(cls, data: dict[str, Any]) -> "Cookie":
        """Build a cookie from an engine cookie dict, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in _ENGINE_KEYS}
        return cls.model_validate(known)


_ENGINE_KEYS = {
    "name", "value", "domain", "path", "expires", "expiry", "httponly", "secure",
}


def coerce_cookie(
    cookie: Union[Cookie, dict[str, Any]],
    *,
    require_path: bool = False,
) -> Cookie:
    """Validate a cookie given as a :class:`Cookie` or a plain dict.

    Args:
        cookie: Cookie to validate.
        require_path: Page cookies must carry a ``path``.

    Raises:
        ValidationError: If the cookie is malformed.
    """
    if isinstance(cookie, dict):
        for key in ("name", "value"):
            if not isinstance(cookie.get(key), str):
                raise ValidationError(f"Cookie.{key} has to be defined as a string")
        try:
            cookie = Cookie.model_validate(cookie)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid cookie: {e}") from e
    elif not isinstance(cookie, Cookie):
        raise ValidationError("Cookie has to be a Cookie or a dict")

    if require_path and cookie.path is None:
        raise ValidationError("Cookie.path has to be defined as a string")

    return cookie


__all__ = ["Cookie", "coerce_cookie"]
