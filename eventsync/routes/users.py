"""
Account routes for the authenticated user.
"""
from fastapi import APIRouter, Depends

from ..auth import get_current_user
from ..deps import get_user_service
from ..models.user import User
from ..responses import deleted, success
from ..schemas.auth import UserResponse
from ..schemas.user import EmailChange, PasswordChange, ProfileUpdate
from ..services import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserResponse)
def update_profile(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Replace the name and company fields of the profile."""
    return users.update_profile(
        current_user.id,
        first_name=profile.first_name,
        last_name=profile.last_name,
        company_name=profile.company_name,
    )


@router.put("/me/password")
def change_password(
    body: PasswordChange,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.change_password(current_user.id, body.current_password, body.new_password)
    return success(message="Password updated")


@router.put("/me/email", response_model=UserResponse)
def update_email(
    body: EmailChange,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Change the login email. The new address starts unverified."""
    return users.update_email(current_user.id, body.email)


@router.post("/me/verify-email", response_model=UserResponse)
def verify_email(
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return users.verify_email(current_user.id)


@router.post("/me/deactivate", response_model=UserResponse)
def deactivate(
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Deactivate the account. Existing tokens stop working immediately."""
    return users.deactivate(current_user.id)


@router.delete("/me")
def delete_account(
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Delete the account together with its events, recipients and messages."""
    users.delete(current_user.id)
    return deleted("Account deleted")
