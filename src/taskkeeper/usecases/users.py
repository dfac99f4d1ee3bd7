"""User use-cases — sign-up, login, and the pre-login existence check.

Learn: A user's id is the identity provider's subject id. Sign-up binds
it from a verified ID token when the client has one (always, once a JWKS
provider is configured); only the shared-secret development setup, where
this service mints the ID tokens itself, falls back to a generated id.

Users are keyed two ways. Login looks up the provider's subject id;
the "do I already have an account?" check looks up the email. If the
provider changes a user's email, those two lookups can disagree. That is
a known risk and deliberately not papered over here: a login whose token
email differs from the stored record is logged and otherwise accepted.
"""

from typing import Optional

import structlog

from taskkeeper.domain.repositories import UserStore
from taskkeeper.domain.user import User, is_valid_email, normalize_email
from taskkeeper.errors import ConflictError, NotFoundError, ValidationError, reraise

logger = structlog.get_logger()


def _check_email(email: Optional[str], operation: str) -> str:
    if not email:
        logger.error("user.email_missing", operation=operation)
        raise ValidationError("Email is required.")
    if not is_valid_email(email):
        logger.error("user.email_invalid", operation=operation, email=email)
        raise ValidationError("Invalid email format provided.")
    return email


class CreateUser:
    def __init__(self, users: UserStore):
        self.users = users

    async def execute(self, email: str, subject_id: Optional[str] = None) -> User:
        """Create a user for `email`, keyed by `subject_id` when given.

        ConflictError when the email or the subject already has an account.
        """
        operation = "create_user"
        email = _check_email(email, operation)
        logger.info(
            "user.create_attempt", operation=operation, email=email, user_id=subject_id
        )

        try:
            existing = await self.users.find_by_email(email)
            if existing is None and subject_id:
                existing = await self.users.find_by_id(subject_id)
            if existing:
                logger.warning("user.already_exists", operation=operation, email=email)
                raise ConflictError("User already exists. Please log in.")

            saved = await self.users.save(User(email, id=subject_id))
            logger.info("user.created", operation=operation, user_id=saved.id)
            return saved
        except Exception as e:
            reraise(
                logger, e, "user.create_failed", "Error during user creation",
                operation=operation, email=email,
            )


class LoginUser:
    def __init__(self, users: UserStore):
        self.users = users

    async def execute(self, subject_id: str, email: Optional[str] = None) -> User:
        """Find the signed-up user for a verified subject. Never creates one."""
        operation = "login_user"
        if not subject_id:
            logger.error("user.subject_missing", operation=operation)
            raise ValidationError("Authentication details are required.")
        logger.info("user.login_attempt", operation=operation, user_id=subject_id)

        try:
            user = await self.users.find_by_id(subject_id)
            if user is None:
                logger.warning("user.not_signed_up", operation=operation, user_id=subject_id)
                raise NotFoundError("User not found. Please sign up first.")

            if email and user.email != normalize_email(email):
                # TODO: decide whether the stored email should follow the provider's.
                logger.warning(
                    "user.email_mismatch",
                    operation=operation,
                    user_id=user.id,
                    stored_email=user.email,
                    token_email=email,
                )

            logger.info("user.logged_in", operation=operation, user_id=user.id)
            return user
        except Exception as e:
            reraise(
                logger, e, "user.login_failed", "Error during user login",
                operation=operation, user_id=subject_id,
            )


class GetUserByEmail:
    def __init__(self, users: UserStore):
        self.users = users

    async def execute(self, email: str) -> Optional[User]:
        """The user with this email, or None. Only bad input or I/O raise."""
        operation = "get_user_by_email"
        email = _check_email(email, operation)

        try:
            user = await self.users.find_by_email(email)
        except Exception as e:
            reraise(
                logger, e, "user.lookup_failed", "Error retrieving user by email",
                operation=operation, email=email,
            )

        if user is None:
            logger.info("user.lookup_miss", operation=operation, email=email)
            return None
        logger.info("user.lookup_hit", operation=operation, user_id=user.id)
        return user
