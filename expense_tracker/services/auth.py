"""
Authentication Service

Registers users, checks credentials and issues session tokens.

DESIGN DECISION: Sessions are stateless. A session token is a JWT
signed with a single symmetric secret; nothing about it is stored
server-side. Claims are signed, not encrypted: the holder can read
the subject and email.

SECURITY:
- Passwords are hashed with bcrypt (salted, slow)
- Login failures are indistinguishable: unknown email and wrong
  password produce the same error and cost the same bcrypt check
- Tokens expire after a fixed window with zero clock skew
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from expense_tracker.audit import AuditLogger, create_correlation_id, get_logger
from expense_tracker.config import AuthSettings, get_settings
from expense_tracker.errors import (
    AuthError,
    ConflictError,
    InternalError,
    ValidationError,
)
from expense_tracker.models.common import utc_now
from expense_tracker.models.user import AccessToken, TokenClaims, User
from expense_tracker.services.storage import (
    DuplicateError,
    StorageError,
    UserStorageInterface,
)
from expense_tracker.validation import CredentialValidator, normalize_email
from expense_tracker.validation.validator import BCRYPT_MAX_BYTES


INVALID_CREDENTIALS = "Invalid credentials."

logger = get_logger("expense_tracker.auth")


class PasswordHasher:
    """bcrypt wrapper."""

    def __init__(self, rounds: int = 12):
        self._rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check of a password against a stored hash."""
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            # Stored hash is malformed
            return False


class TokenSigner:
    """
    Signs and verifies session tokens.

    This is the whole token transport contract:
        sign(claims, expires_delta) -> token
        verify(token) -> claims (or JWTError)
    """

    def __init__(self, settings: AuthSettings):
        self._settings = settings

    def sign(
        self,
        claims: dict[str, Any],
        expires_delta: timedelta,
        issued_at: Optional[datetime] = None,
    ) -> str:
        issued_at = issued_at or utc_now()
        to_encode = dict(claims)
        to_encode.update({
            "iat": issued_at,
            "exp": issued_at + expires_delta,
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
        })
        return jwt.encode(
            to_encode,
            self._settings.jwt_secret,
            algorithm=self._settings.jwt_algorithm,
        )

    def verify(self, token: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            self._settings.jwt_secret,
            algorithms=[self._settings.jwt_algorithm],
            audience=self._settings.jwt_audience,
            issuer=self._settings.jwt_issuer,
            options={
                "require_exp": True,
                "require_sub": True,
                "leeway": 0,
            },
        )


class AuthService:
    """
    Registers and authenticates users.

    Depends only on the credential store (UserStorageInterface).
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        settings: Optional[AuthSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        hasher: Optional[PasswordHasher] = None,
        signer: Optional[TokenSigner] = None,
    ):
        self._users = user_storage
        self._settings = settings or get_settings().auth
        self._audit_logger = audit_logger
        self._hasher = hasher or PasswordHasher(self._settings.bcrypt_rounds)
        self._signer = signer or TokenSigner(self._settings)
        self._validator = CredentialValidator(self._settings)
        self._dummy_hash: Optional[str] = None

    def _timing_hash(self) -> str:
        """Hash checked when the email is unknown, to equalize timing."""
        if self._dummy_hash is None:
            self._dummy_hash = self._hasher.hash("Timing-Equalizer-0")
        return self._dummy_hash

    async def register(
        self,
        email: str,
        password: str,
        confirm_password: str,
        correlation_id: Optional[UUID] = None,
    ) -> UUID:
        """
        Create a new account.

        Raises:
            ValidationError: Passwords differ or violate the policy
            ConflictError: An active user already has this email
            InternalError: The credential store failed

        Returns:
            The new user's ID
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            self._validator.validate_registration(password, confirm_password)
        except ValidationError:
            if self._audit_logger:
                await self._audit_logger.log_registration_rejected(
                    reason="password_policy",
                    correlation_id=correlation_id,
                )
            raise

        normalized = normalize_email(email)

        try:
            existing = await self._users.get_active_user_by_email(normalized)
        except StorageError as e:
            raise await self._storage_failure("register", e, correlation_id) from e

        if existing:
            if self._audit_logger:
                await self._audit_logger.log_registration_rejected(
                    reason="email_taken",
                    correlation_id=correlation_id,
                )
            raise ConflictError("Email already exists.")

        user = User(
            email=normalized,
            password_hash=self._hasher.hash(password),
        )

        try:
            await self._users.add_user(user)
        except DuplicateError:
            # Lost a race with a concurrent registration
            raise ConflictError("Email already exists.")
        except StorageError as e:
            raise await self._storage_failure("register", e, correlation_id) from e

        if self._audit_logger:
            await self._audit_logger.log_user_registered(
                user_id=user.id,
                correlation_id=correlation_id,
            )

        return user.id

    async def authenticate(
        self,
        email: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> AccessToken:
        """
        Check credentials and issue a session token.

        Raises:
            AuthError: Unknown/inactive email or wrong password
            InternalError: The credential store failed
        """
        correlation_id = correlation_id or create_correlation_id()
        normalized = normalize_email(email)

        try:
            user = await self._users.get_active_user_by_email(normalized)
        except StorageError as e:
            raise await self._storage_failure("authenticate", e, correlation_id) from e

        if user is None:
            self._hasher.verify(password, self._timing_hash())
            raise await self._login_failure("unknown_email", correlation_id)

        if not self._hasher.verify(password, user.password_hash):
            raise await self._login_failure("wrong_password", correlation_id)

        issued_at = utc_now()
        lifetime = timedelta(days=self._settings.token_lifetime_days)
        token = self._signer.sign(
            {"sub": str(user.id), "email": user.email},
            expires_delta=lifetime,
            issued_at=issued_at,
        )

        user.last_login_at = issued_at
        try:
            await self._users.update_user(user)
        except StorageError as e:
            raise await self._storage_failure("authenticate", e, correlation_id) from e

        if self._audit_logger:
            await self._audit_logger.log_login_succeeded(
                user_id=user.id,
                correlation_id=correlation_id,
            )

        return AccessToken(
            token=token,
            expires_in=self._settings.token_lifetime_seconds,
            expires_at=issued_at + lifetime,
            user_id=user.id,
            email=user.email,
        )

    async def _login_failure(self, reason: str, correlation_id: UUID) -> AuthError:
        if self._audit_logger:
            await self._audit_logger.log_login_failed(
                reason=reason,
                correlation_id=correlation_id,
            )
        return AuthError(INVALID_CREDENTIALS)

    async def _storage_failure(
        self,
        operation: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> InternalError:
        """Log and audit a credential store failure; the caller sees only InternalError."""
        logger.error(
            "operation_failed",
            operation=operation,
            correlation_id=str(correlation_id),
            exc_info=error,
        )
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"operation": operation},
                correlation_id=correlation_id,
            )
        return InternalError()

    def verify(self, token: Optional[str]) -> TokenClaims:
        """
        Verify a session token and return the identity it carries.

        Raises:
            AuthError: Missing token, bad signature, expired, wrong
                issuer/audience, or missing/malformed claims
        """
        if not token:
            raise AuthError("Missing token.")

        try:
            payload = self._signer.verify(token)
        except ExpiredSignatureError:
            raise AuthError("Token has expired.")
        except JWTError:
            raise AuthError("Invalid token.")

        subject = payload.get("sub")
        email = payload.get("email")
        if not subject or not email:
            raise AuthError("Token is missing required claims.")

        try:
            user_id = UUID(subject)
        except (TypeError, ValueError):
            raise AuthError("Token subject is malformed.")

        return TokenClaims(
            user_id=user_id,
            email=email,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
