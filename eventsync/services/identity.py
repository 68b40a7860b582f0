"""
Registration, login and bearer-token verification.
"""
from typing import Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import create_tokens, decode_token, get_password_hash, verify_password
from ..errors import AccessDenied, DuplicateEmail, InvalidCredentials, InvalidToken
from ..logging_config import StructuredLogger
from ..models.user import User
from ..types import utcnow
from .base import commit_email

Tokens = Tuple[str, str]


class IdentityService:
    def __init__(self, db: Session, logger: StructuredLogger):
        self.db = db
        self.logger = logger

    def register(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        company_name: str = "",
    ) -> Tuple[User, Tokens]:
        """Create an account and return it with a fresh token pair."""
        if self.email_taken(email):
            raise DuplicateEmail(email)

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            first_name=first_name or "",
            last_name=last_name or "",
            company_name=company_name or "",
        )
        self.db.add(user)
        commit_email(self.db, email)
        self.db.refresh(user)

        self.logger.info("User registered", user_id=user.id)
        return user, create_tokens(user)

    def email_taken(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def login(self, email: str, password: str) -> Tuple[User, Tokens]:
        """Check credentials and return the user with a fresh token pair.

        Unknown email and wrong password fail with the same error.
        """
        user = self.db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        if not user.is_active:
            raise AccessDenied("Account is deactivated")

        self._touch_last_login(user)
        return user, create_tokens(user)

    def verify_token(self, token: str) -> User:
        """Resolve an access token to its user.

        The user row is re-read on every call so deactivation or deletion
        takes effect immediately.
        """
        payload = decode_token(token, "access")
        user = self.db.get(User, payload["sub"])
        if user is None or not user.is_active:
            raise InvalidToken("User not found or inactive")
        return user

    def refresh(self, refresh_token: str) -> Tokens:
        """Exchange a refresh token for a new token pair."""
        payload = decode_token(refresh_token, "refresh")
        user = self.db.get(User, payload["sub"])
        if user is None or not user.is_active:
            raise InvalidToken("User not found or inactive")
        return create_tokens(user)

    def _touch_last_login(self, user: User) -> None:
        user_id = user.id
        try:
            user.last_login_at = utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            # Not required for a successful login
            self.db.rollback()
            self.logger.warning("Could not update last login", user_id=user_id, error_message=str(e))
