"""
Gatekeeper - JWT Token Management

Creates and validates signed bearer tokens with:
- Subject id (sub) plus username, email and role
- Unique token ID (jti, reserved for future revocation)
- Issuer / audience binding
- Short or "remember me" lifetime chosen at issue time
- A purpose claim separating access tokens from email-confirmation tokens

Two access paths are kept deliberately apart:

    verify() / validate()     Signature, issuer, audience and expiry are all
                              checked. The ONLY calls that may back an
                              authorization decision.

    is_expired()              Unverified reads of the payload. Anyone can
    read_unverified_claims()  forge a payload that passes these; use them for
    expiry_of()               display and housekeeping only.

Security:
- HMAC signature over header + payload (HS256 by default)
- Zero clock-skew tolerance; a token is valid only while now < exp
- Every failure mode returns None / False instead of raising
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from jose import JWTError, jwt
from pydantic import BaseModel, Field, ValidationError

from gatekeeper.config import Settings


logger = logging.getLogger("gatekeeper.auth.tokens")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenPurpose(str, Enum):
    """What a token may be used for. verify() only accepts the purpose asked for."""
    ACCESS = "access"
    EMAIL_CONFIRMATION = "email_confirmation"


class TokenClaims(BaseModel):
    """
    Typed payload of a signed token.

    Only produced when issuing or by TokenService.verify(); never built from
    an unverified read.

    Attributes:
        sub: Subject (user ID)
        username: Login name at issue time
        email: Email address at issue time
        role: User role for RBAC
        iat: Issued-at (unix seconds)
        jti: Unique token ID
        iss: Issuer
        aud: Audience
        exp: Expiration (unix seconds)
        purpose: ACCESS for bearer tokens, EMAIL_CONFIRMATION for confirmation links
    """
    sub: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    role: str = Field(..., description="User role")
    iat: int = Field(..., description="Issued at (unix seconds)")
    jti: str = Field(..., description="Token ID for revocation")
    iss: str = Field(..., description="Issuer")
    aud: str = Field(..., description="Audience")
    exp: int = Field(..., description="Expiration (unix seconds)")
    purpose: TokenPurpose = Field(default=TokenPurpose.ACCESS, description="Token purpose")

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)

    def to_jwt_payload(self) -> Dict[str, Any]:
        """JWT requires `sub` to be a string; everything else is passed through."""
        payload = self.model_dump(mode="json")
        payload["sub"] = str(self.sub)
        return payload


class TokenService:
    """
    Issues and validates signed, expiring bearer tokens.

    Args:
        settings: Application settings; SECRET_KEY must be set
        clock: Returns the current aware UTC datetime (injectable for tests)

    Raises:
        ConfigurationError: If SECRET_KEY is missing
    """

    def __init__(self, settings: Settings, clock: Optional[Clock] = None):
        self._secret_key = settings.require_secret_key()
        self._algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.audience = settings.JWT_AUDIENCE
        self.access_lifetime = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.remember_me_lifetime = timedelta(days=settings.REMEMBER_ME_EXPIRE_DAYS)
        self.email_confirmation_lifetime = timedelta(hours=settings.EMAIL_CONFIRMATION_EXPIRE_HOURS)
        self._clock = clock or _utcnow

    def _now_ts(self) -> float:
        return self._clock().timestamp()

    def _sign(
        self,
        subject_id: int,
        username: str,
        email: str,
        role: str,
        lifetime: timedelta,
        purpose: TokenPurpose,
    ) -> Tuple[str, TokenClaims]:
        issued_at = int(self._now_ts())

        claims = TokenClaims(
            sub=subject_id,
            username=username,
            email=email,
            role=role,
            iat=issued_at,
            jti=uuid.uuid4().hex,
            iss=self.issuer,
            aud=self.audience,
            exp=issued_at + int(lifetime.total_seconds()),
            purpose=purpose,
        )

        token = jwt.encode(claims.to_jwt_payload(), self._secret_key, algorithm=self._algorithm)
        return token, claims

    # ------------------------------------------------------------------
    # Signed path
    # ------------------------------------------------------------------

    def issue_with_claims(
        self,
        subject_id: int,
        username: str,
        email: str,
        role: str,
        remember_me: bool = False,
    ) -> Tuple[str, TokenClaims]:
        """
        Create a new signed access token.

        Args:
            subject_id: User's numeric identifier
            username: User's login name
            email: User's email address
            role: User's RBAC role
            remember_me: Use the long lifetime instead of the short one

        Returns:
            Tuple of (encoded compact JWT string, claims that were signed)
        """
        lifetime = self.remember_me_lifetime if remember_me else self.access_lifetime
        return self._sign(subject_id, username, email, role, lifetime, TokenPurpose.ACCESS)

    def issue(
        self,
        subject_id: int,
        username: str,
        email: str,
        role: str,
        remember_me: bool = False,
    ) -> str:
        """Create a new signed access token and return only the encoded string."""
        token, _ = self.issue_with_claims(subject_id, username, email, role, remember_me)
        return token

    def issue_email_confirmation(self, subject_id: int, username: str, email: str, role: str) -> str:
        """
        Create a token that can only confirm `email` for `subject_id`.

        It is rejected everywhere an access token is expected, and access
        tokens are rejected by the confirmation path.
        """
        token, _ = self._sign(
            subject_id,
            username,
            email,
            role,
            self.email_confirmation_lifetime,
            TokenPurpose.EMAIL_CONFIRMATION,
        )
        return token

    def verify(self, token: str, purpose: TokenPurpose = TokenPurpose.ACCESS) -> Optional[TokenClaims]:
        """
        Verify a token and return its typed claims.

        Checks signature, issuer, audience, expiry (now < exp, no skew) and
        that the token was issued for `purpose`.

        Returns:
            TokenClaims if the token is authentic and current, None otherwise
        """
        if not token or not isinstance(token, str):
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                audience=self.audience,
                issuer=self.issuer,
                # Expiry is checked below against the injected clock.
                options={"verify_exp": False},
            )
            claims = TokenClaims(**payload)
        except JWTError as e:
            logger.debug("Token rejected: %s", e)
            return None
        except ValidationError:
            logger.debug("Token rejected: payload does not match the claim schema")
            return None

        if claims.purpose != purpose:
            logger.debug("Token rejected: purpose %s, expected %s (jti=%s)",
                         claims.purpose.value, purpose.value, claims.jti)
            return None

        if not self._now_ts() < claims.exp:
            logger.debug("Token rejected: expired (jti=%s)", claims.jti)
            return None

        return claims

    def validate(self, token: str) -> Optional[int]:
        """
        Validate a token and return the subject (user) id.

        Returns:
            The integer user id, or None if the token is invalid for any reason
        """
        claims = self.verify(token)
        return claims.sub if claims else None

    # ------------------------------------------------------------------
    # Unverified introspection -- NEVER use for authorization
    # ------------------------------------------------------------------

    def read_unverified_claims(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode the payload WITHOUT checking the signature.

        Returns:
            Raw claim mapping, or None if the token cannot be decoded
        """
        if not token or not isinstance(token, str):
            return None
        try:
            return dict(jwt.get_unverified_claims(token))
        except JWTError:
            return None

    def expiry_of(self, token: str) -> Optional[datetime]:
        """
        Read the unverified `exp` claim as an aware UTC datetime.

        Returns:
            Expiry time, or None if missing or malformed
        """
        claims = self.read_unverified_claims(token)
        if claims is None:
            return None

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None
        try:
            return datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    def is_expired(self, token: str) -> bool:
        """
        Check the unverified `exp` claim against the current time.

        Malformed tokens and tokens without `exp` are reported as expired.
        """
        expires_at = self.expiry_of(token)
        if expires_at is None:
            return True
        return self._clock() >= expires_at
