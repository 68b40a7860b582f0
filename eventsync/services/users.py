"""
Account management for the authenticated user.
"""
from ..auth import get_password_hash, verify_password
from ..errors import DuplicateEmail, InvalidCredentials, ValidationError
from ..models.user import User
from ..types import utcnow
from .base import BaseService, commit_email

MIN_PASSWORD_LENGTH = 6


class UserService(BaseService):
    model = User
    resource = "User"

    def get(self, user_id: str) -> User:
        return self.get_by_id(user_id)

    def update_profile(self, user_id: str, first_name: str = "", last_name: str = "", company_name: str = "") -> User:
        user = self.get_by_id(user_id)
        user.first_name = first_name or ""
        user.last_name = last_name or ""
        user.company_name = company_name or ""
        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="new_password",
            )
        user = self.get_by_id(user_id)
        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")

        user.password_hash = get_password_hash(new_password)
        self.db.commit()
        self.logger.info("Password changed", user_id=user_id)

    def update_email(self, user_id: str, email: str) -> User:
        """Change the login email; verification starts over."""
        user = self.get_by_id(user_id)
        if email == user.email:
            return user
        if self.db.query(User).filter(User.email == email, User.id != user_id).first():
            raise DuplicateEmail(email)

        user.email = email
        user.email_verified = False
        user.email_verified_at = None
        commit_email(self.db, email)
        self.db.refresh(user)
        return user

    def verify_email(self, user_id: str) -> User:
        user = self.get_by_id(user_id)
        user.email_verified = True
        user.email_verified_at = utcnow()
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_last_login(self, user_id: str) -> None:
        user = self.get_by_id(user_id)
        user.last_login_at = utcnow()
        self.db.commit()

    def deactivate(self, user_id: str) -> User:
        return self._set_active(user_id, False)

    def activate(self, user_id: str) -> User:
        return self._set_active(user_id, True)

    def _set_active(self, user_id: str, active: bool) -> User:
        user = self.get_by_id(user_id)
        user.is_active = active
        self.db.commit()
        self.db.refresh(user)
        self.logger.info("User activation changed", user_id=user_id, is_active=active)
        return user

    def delete(self, user_id: str) -> bool:
        """Hard delete; owned events, recipients and messages go with it."""
        user = self.db.get(User, user_id)
        if user is None:
            return False
        self.db.delete(user)
        self.db.commit()
        self.logger.info("User deleted", user_id=user_id)
        return True
