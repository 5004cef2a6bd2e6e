"""Identity Dependencies — resolve the caller from gateway-set headers.

Invariants:
    - Credential checks happen upstream; this layer only trusts the identity headers
    - When identity_gateway_key is configured, the gateway header must match it
    - Without a gateway key, identity headers are refused (401) unless
      identity_trust_headers is explicitly enabled
    - Missing or malformed identity → AuthenticationError (401)
    - require_admin → PermissionDeniedError (403) for any other role

Design Decisions:
    - Dependencies instead of middleware: health checks and docs stay open
      without an exclude-path list, and routes declare what they need
"""

import hmac
import logging

from fastapi import Depends, Request

from talkhub.config import Settings, get_settings
from talkhub.core.domain_types import Identity, MemberId, Role
from talkhub.core.errors import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

MAX_USER_ID_LENGTH = 64


def get_current_identity(
    request: Request, settings: Settings = Depends(get_settings),
) -> Identity:
    """Resolve the caller. Raises AuthenticationError if absent or invalid."""
    if settings.identity_gateway_key:
        presented = request.headers.get(settings.identity_gateway_header, "")
        if not hmac.compare_digest(presented, settings.identity_gateway_key):
            logger.warning(
                "Rejected request with invalid gateway key",
                extra={"path": request.url.path},
            )
            raise AuthenticationError("Invalid gateway key")
    elif not settings.identity_trust_headers:
        logger.error(
            "No gateway key configured and identity headers not trusted",
            extra={"path": request.url.path},
        )
        raise AuthenticationError("Identity headers are not trusted")

    user_id = request.headers.get(settings.identity_user_header, "").strip()
    if not user_id:
        raise AuthenticationError("Authentication token missing")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise AuthenticationError("Invalid user id")

    raw_role = request.headers.get(settings.identity_role_header, "member")
    try:
        role = Role(raw_role.strip().lower())
    except ValueError:
        raise AuthenticationError(f"Unknown role: {raw_role}")
    return Identity(user_id=MemberId(user_id), role=role)


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise PermissionDeniedError()
    return identity
