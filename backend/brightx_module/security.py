import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from .errors import AuthError, InvalidCredentialError
from .store import StateStore


logger = logging.getLogger(__name__)

ADMIN_SUBJECT = "admin"


class AdminSession:
    """In-memory login flag for the single shared admin secret; never persisted.

    The secret is bcrypt-hashed once so the plain value is not kept around, and a
    successful login hands out a short-lived JWT that every protected route checks
    together with the flag.
    """

    def __init__(self, store: StateStore, password: str | None = None) -> None:
        self.store = store
        self.settings = store.settings
        secret = password if password is not None else self.settings.admin_password
        self._secret_hash = bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt())
        self.is_logged_in = False

    def _secret_matches(self, password: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), self._secret_hash)
        except ValueError:
            # bcrypt refuses inputs longer than 72 bytes
            return False

    def login(self, password: str) -> str:
        if not self._secret_matches(password):
            logger.warning("Rejected admin login attempt")
            raise InvalidCredentialError("Invalid Admin Password!")
        self.store.log_event("Admin Logged In successfully")
        self.is_logged_in = True
        return self.issue_token()

    def logout(self) -> None:
        self.is_logged_in = False
        logger.info("Admin logged out")

    def issue_token(self) -> str:
        issued = datetime.now(timezone.utc)
        expires = issued + timedelta(minutes=self.settings.jwt_exp_minutes)
        claims = {"sub": ADMIN_SUBJECT, "iat": issued, "exp": expires}
        return jwt.encode(claims, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def authorize(self, token: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(token, self.settings.jwt_secret, algorithms=[self.settings.jwt_algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Session token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("Invalid session token") from exc
        if claims.get("sub") != ADMIN_SUBJECT:
            raise AuthError("Token was not issued for the admin")
        if not self.is_logged_in:
            raise AuthError("Not logged in")
        return claims
