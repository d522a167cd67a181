from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, field_validator

from renderstore.hashing import is_valid_secret


def _check_secret(v: str) -> str:
    if not is_valid_secret(v):
        raise ValueError("secret must be non-empty and contain no spaces, slashes, or periods")
    return v


class PageKeyQuery(BaseModel):
    """Query parameters shared by the data, expiration and delete endpoints."""

    secret: str
    hash: str

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        return _check_secret(v)

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("hash must not be empty")
        return v


class PagePayload(BaseModel):
    hash: str
    url: str
    expiration: float
    data: str  # base64-encoded gzip content

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must use http or https scheme")
        return v

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except binascii.Error as exc:
            raise ValueError("data must be base64-encoded") from exc
        return v

    def content(self) -> bytes:
        return base64.b64decode(self.data)


class PutPageInput(BaseModel):
    secret: str
    page: PagePayload

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        return _check_secret(v)
