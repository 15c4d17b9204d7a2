# reading/identity.py
"""
Reader identity: anonymous or custom-token sign in, signed bearer tokens,
and the admin check.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core import signing
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)

SESSION_SALT = "readtrack.session"
CUSTOM_TOKEN_SALT = "readtrack.custom-token"


@dataclass(frozen=True)
class ReaderIdentity:
    uid: str
    anonymous: bool = False

    is_authenticated = True

    @property
    def is_admin(self) -> bool:
        admin_uid = settings.READTRACK_ADMIN_UID
        return bool(admin_uid) and self.uid == admin_uid


def issue_token(uid: str) -> str:
    """Bearer token for an already signed-in reader."""
    return signing.dumps({"uid": uid}, salt=SESSION_SALT)


def issue_custom_token(uid: str) -> str:
    """Token an operator hands out so a reader signs in with a fixed uid."""
    return signing.dumps({"uid": uid}, salt=CUSTOM_TOKEN_SALT)


def sign_in(custom_token: Optional[str] = None) -> ReaderIdentity:
    """
    Resolve a reader identity. With a custom token the uid comes from the
    token; without one a new anonymous uid is minted.
    Raises AuthenticationFailed when the custom token is rejected.
    """
    if custom_token:
        try:
            payload = signing.loads(
                custom_token, salt=CUSTOM_TOKEN_SALT, max_age=settings.READTRACK_TOKEN_MAX_AGE
            )
        except signing.BadSignature as exc:
            logger.warning("sign-in rejected: %s", exc)
            raise exceptions.AuthenticationFailed("Sign-in failed: invalid custom token.")
        uid = payload.get("uid") if isinstance(payload, dict) else None
        if not uid:
            raise exceptions.AuthenticationFailed("Sign-in failed: token carries no uid.")
        identity = ReaderIdentity(uid=str(uid))
    else:
        identity = ReaderIdentity(uid=uuid.uuid4().hex, anonymous=True)
    logger.info("authenticated user %s (anonymous=%s)", identity.uid, identity.anonymous)
    return identity


class SignedTokenAuthentication(BaseAuthentication):
    """Authorization: Bearer <token issued by issue_token()>; expires after READTRACK_SESSION_MAX_AGE."""

    keyword = b"bearer"

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword:
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed("Invalid bearer header.")
        try:
            payload = signing.loads(
                auth[1].decode(), salt=SESSION_SALT, max_age=settings.READTRACK_SESSION_MAX_AGE
            )
        except (signing.BadSignature, UnicodeDecodeError):
            raise exceptions.AuthenticationFailed("Invalid, tampered or expired token.")
        uid = payload.get("uid") if isinstance(payload, dict) else None
        if not uid:
            raise exceptions.AuthenticationFailed("Token carries no uid.")
        return ReaderIdentity(uid=str(uid)), None

    def authenticate_header(self, request):
        return "Bearer"


class IsAdminReader(BasePermission):
    message = "Admin access only."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and getattr(user, "is_authenticated", False) and getattr(user, "is_admin", False))
