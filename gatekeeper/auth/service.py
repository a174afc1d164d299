"""
Gatekeeper - Authentication Service

Orchestrates login, registration, token validation and account actions as
sequences of calls into PasswordService, TokenService and the caller's
UserStore.

Every public method:
- is async and awaits the store sequentially
- returns an ApiResponse envelope and never raises
- runs PBKDF2 work in a worker thread so the event loop is not blocked

Security:
- Unknown user and wrong password produce the same message, and both run a
  full PBKDF2 verification so response time does not reveal which it was
- Stored credentials never leave this module (UserInfo is the only view)
- Email confirmation only accepts purpose-bound confirmation tokens, never
  a login token
- Unexpected exceptions are logged and replaced with a generic message
"""

import asyncio
import logging
from typing import Optional

from gatekeeper.auth.models import Role, User
from gatekeeper.auth.password import PasswordService
from gatekeeper.auth.schemas import (
    ApiResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserInfo,
)
from gatekeeper.auth.store import UserStore
from gatekeeper.auth.tokens import TokenPurpose, TokenService


logger = logging.getLogger("gatekeeper.auth")

INVALID_CREDENTIALS = "Invalid username/email or password."
ACCOUNT_INACTIVE = "Your account has been deactivated. Please contact an administrator."
USERNAME_TAKEN = "This username is already taken."
EMAIL_TAKEN = "This email address is already registered."
WEAK_PASSWORD = "Password does not meet the security requirements."
INVALID_TOKEN = "Invalid token."
USER_UNAVAILABLE = "User not found or inactive."
USER_NOT_FOUND = "User not found."
INVALID_CONFIRMATION_TOKEN = "Invalid confirmation token."

LOGIN_FAILED = "An error occurred during login. Please try again."
REGISTER_FAILED = "An error occurred during registration. Please try again."
VALIDATE_FAILED = "An error occurred while validating the token."
LOOKUP_FAILED = "An error occurred while loading user information."
CONFIRM_FAILED = "An error occurred while confirming the email address."
CHANGE_PASSWORD_FAILED = "An error occurred while changing the password."

# Timing equalization input for unknown users. Not a real credential.
_DUMMY_PASSWORD = "gatekeeper-timing-dummy"


class AuthService:
    """
    Authentication use cases on top of the password and token services.

    Args:
        store: Persistence collaborator
        passwords: Password hashing / policy service
        tokens: Token issuing / validation service
    """

    def __init__(self, store: UserStore, passwords: PasswordService, tokens: TokenService):
        self.store = store
        self.passwords = passwords
        self.tokens = tokens
        self._dummy_hash = passwords.hash(_DUMMY_PASSWORD)

    async def _verify_password(self, password: str, stored: str) -> bool:
        return await asyncio.to_thread(self.passwords.verify, password, stored)

    async def login(self, request: LoginRequest) -> ApiResponse[LoginResponse]:
        """
        Authenticate with username-or-email and password.

        On success:
        1. Issues a token (long lifetime when remember_me is set)
        2. Records the login time through the store
        3. Returns the token, its expiry and the sanitized user
        """
        try:
            user = await self.store.get_by_username_or_email(request.username_or_email)

            if user is None:
                # Equalize timing -- do NOT return before running PBKDF2
                await self._verify_password(request.password, self._dummy_hash)
                logger.info("Login failed: unknown identifier")
                return ApiResponse[LoginResponse].error_result(INVALID_CREDENTIALS)

            if not await self._verify_password(request.password, user.password_hash):
                logger.info("Login failed: invalid password (user_id=%s)", user.id)
                return ApiResponse[LoginResponse].error_result(INVALID_CREDENTIALS)

            if not user.is_active:
                logger.info("Login refused: inactive account (user_id=%s)", user.id)
                return ApiResponse[LoginResponse].error_result(ACCOUNT_INACTIVE)

            token, claims = self.tokens.issue_with_claims(
                user.id,
                user.username,
                user.email,
                user.role.value,
                remember_me=request.remember_me,
            )

            await self.store.update_last_login(user.id)
            # Reload so the returned view carries the login time just recorded.
            user = await self.store.get_by_id(user.id) or user

            logger.info("Login succeeded (user_id=%s, remember_me=%s)", user.id, request.remember_me)
            return ApiResponse[LoginResponse].success_result(
                LoginResponse(
                    token=token,
                    expires_at=claims.expires_at,
                    user=UserInfo.from_user(user),
                ),
                "Login successful. Welcome!",
            )
        except Exception:
            logger.exception("Unexpected error during login")
            return ApiResponse[LoginResponse].error_result(LOGIN_FAILED)

    async def register(self, request: RegisterRequest) -> ApiResponse[UserInfo]:
        """
        Create a new account.

        Uniqueness is checked before the password policy so a duplicate
        username or email never reveals policy details.
        """
        try:
            if not await self.store.is_username_unique(request.username):
                return ApiResponse[UserInfo].error_result(USERNAME_TAKEN)

            if not await self.store.is_email_unique(request.email):
                return ApiResponse[UserInfo].error_result(EMAIL_TAKEN)

            policy = self.passwords.validate_strength(request.password)
            if not policy.valid:
                return ApiResponse[UserInfo].error_result(WEAK_PASSWORD, policy.messages)

            password_hash = await asyncio.to_thread(self.passwords.hash, request.password)

            user = User(
                username=request.username,
                email=request.email,
                password_hash=password_hash,
                full_name=request.full_name,
                role=Role.USER,
                is_active=True,
                email_confirmed=False,
            )
            created = await self.store.create(user)

            logger.info("Registered new user (user_id=%s)", created.id)
            return ApiResponse[UserInfo].success_result(
                UserInfo.from_user(created),
                "Registration successful. Please confirm your email address.",
            )
        except Exception:
            logger.exception("Unexpected error during registration")
            return ApiResponse[UserInfo].error_result(REGISTER_FAILED)

    async def validate_token(self, token: str) -> ApiResponse[UserInfo]:
        """
        Validate a bearer token and load its user.

        A token for a user that has since been deleted or deactivated is
        rejected even though its signature is still good.
        """
        try:
            user_id = self.tokens.validate(token)
            if user_id is None:
                return ApiResponse[UserInfo].error_result(INVALID_TOKEN)

            user = await self.store.get_by_id(user_id)
            if user is None or not user.is_active:
                logger.info("Valid token for unavailable user (user_id=%s)", user_id)
                return ApiResponse[UserInfo].error_result(USER_UNAVAILABLE)

            return ApiResponse[UserInfo].success_result(UserInfo.from_user(user))
        except Exception:
            logger.exception("Unexpected error during token validation")
            return ApiResponse[UserInfo].error_result(VALIDATE_FAILED)

    async def get_current_user(self, user_id: int) -> ApiResponse[UserInfo]:
        """Load the sanitized view of a user by id."""
        try:
            user = await self.store.get_by_id(user_id)
            if user is None:
                return ApiResponse[UserInfo].error_result(USER_NOT_FOUND)
            return ApiResponse[UserInfo].success_result(UserInfo.from_user(user))
        except Exception:
            logger.exception("Unexpected error loading user")
            return ApiResponse[UserInfo].error_result(LOOKUP_FAILED)

    async def request_email_confirmation(self, user_id: int) -> ApiResponse[str]:
        """
        Issue an email-confirmation token for the host to deliver.

        The token is bound to the user id and to the email address on file,
        and is only accepted by confirm_email().
        """
        try:
            user = await self.store.get_by_id(user_id)
            if user is None or not user.is_active:
                return ApiResponse[str].error_result(USER_UNAVAILABLE)

            if user.email_confirmed:
                return ApiResponse[str].error_result("Email address is already confirmed.")

            token = self.tokens.issue_email_confirmation(
                user.id, user.username, user.email, user.role.value
            )
            logger.info("Email confirmation token issued (user_id=%s)", user_id)
            return ApiResponse[str].success_result(token, "Confirmation token issued.")
        except Exception:
            logger.exception("Unexpected error issuing email confirmation token")
            return ApiResponse[str].error_result(CONFIRM_FAILED)

    async def confirm_email(self, user_id: int, confirmation_token: str) -> ApiResponse[bool]:
        """
        Mark a user's email address as confirmed.

        The token must come from request_email_confirmation(): a login token
        is refused. Its subject must be user_id and the address it was
        issued for must still be the one on file.
        """
        try:
            claims = self.tokens.verify(confirmation_token, purpose=TokenPurpose.EMAIL_CONFIRMATION)
            if claims is None or claims.sub != user_id:
                return ApiResponse[bool].error_result(INVALID_CONFIRMATION_TOKEN)

            user = await self.store.get_by_id(user_id)
            if user is None or user.email.lower() != claims.email.lower():
                logger.info("Confirmation token does not match email on file (user_id=%s)", user_id)
                return ApiResponse[bool].error_result(INVALID_CONFIRMATION_TOKEN)

            if not await self.store.update_email_confirmation(user_id, True):
                return ApiResponse[bool].error_result("Email confirmation failed.")

            logger.info("Email confirmed (user_id=%s)", user_id)
            return ApiResponse[bool].success_result(True, "Your email address has been confirmed.")
        except Exception:
            logger.exception("Unexpected error during email confirmation")
            return ApiResponse[bool].error_result(CONFIRM_FAILED)

    async def change_password(
        self,
        user_id: int,
        current_password: str,
        new_password: str,
    ) -> ApiResponse[bool]:
        """
        Replace a user's stored credential.

        The current password must verify and the new one must pass the
        strength policy. The new credential replaces the old one wholesale.
        """
        try:
            user: Optional[User] = await self.store.get_by_id(user_id)
            if user is None or not user.is_active:
                return ApiResponse[bool].error_result(USER_UNAVAILABLE)

            if not await self._verify_password(current_password, user.password_hash):
                logger.info("Password change refused: wrong current password (user_id=%s)", user_id)
                return ApiResponse[bool].error_result("Current password is incorrect.")

            policy = self.passwords.validate_strength(new_password)
            if not policy.valid:
                return ApiResponse[bool].error_result(WEAK_PASSWORD, policy.messages)

            password_hash = await asyncio.to_thread(self.passwords.hash, new_password)
            await self.store.update(user.model_copy(update={"password_hash": password_hash}))

            logger.info("Password changed (user_id=%s)", user_id)
            return ApiResponse[bool].success_result(True, "Your password has been changed.")
        except Exception:
            logger.exception("Unexpected error during password change")
            return ApiResponse[bool].error_result(CHANGE_PASSWORD_FAILED)

    async def logout(self, user_id: int, token: str) -> ApiResponse[bool]:
        """
        Acknowledge a logout.

        Tokens are stateless and nothing is revoked: the token stays valid
        until it expires. Clients are expected to discard it.
        """
        logger.info("Logout acknowledged (user_id=%s)", user_id)
        return ApiResponse[bool].success_result(True, "Logged out successfully.")
