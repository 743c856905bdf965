"""Token verification for requests authenticated by the identity service."""

from sharpstack.kernel.identity.jwt import (
    AccessTokenPayload,
    create_access_token,
    verify_access_token,
)

__all__ = ["AccessTokenPayload", "create_access_token", "verify_access_token"]
