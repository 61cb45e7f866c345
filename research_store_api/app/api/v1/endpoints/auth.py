"""
Customer authentication endpoints.

Signup and signin return a 24-hour bearer token together with the
customer profile.  Signup and photo updates are multipart so a profile
picture can be sent with the form; every other body is JSON.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from research_store_api.app.core.errors import ValidationFailed
from research_store_api.app.core.security import Identity, get_current_customer
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.schemas.user import (
    AuthResult,
    ForgotPasswordRequest,
    ProfileUpdate,
    ResetPasswordRequest,
    SigninRequest,
    SocialTokenRequest,
    UserCreate,
)
from research_store_api.app.services.asset_service import read_upload
from research_store_api.app.services.social_auth_service import SocialIdentityVerifier, get_social_verifier
from research_store_api.app.services.user_service import UserService, issue_customer_token


router = APIRouter()


@router.post("/signup", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def signup(
    email: str = Form(...),
    password: str = Form(...),
    full_name: str = Form(...),
    phone: Optional[str] = Form(None),
    nationality: Optional[str] = Form(None),
    profile_pic: Optional[UploadFile] = File(None),
) -> Envelope:
    """Register a customer.

    A duplicate e-mail is rejected with 400 and nothing is stored.  The
    optional ``profile_pic`` must be an image of at most 50 MB.
    """
    data = UserCreate(email=email, password=password, full_name=full_name, phone=phone, nationality=nationality)
    photo = await read_upload(profile_pic, "profile_pic", "image")
    user = await UserService.create_user(data, photo)
    return Envelope(
        message="User created successfully",
        data=AuthResult(token=issue_customer_token(user), user=user),
    )


@router.post("/signin", response_model=Envelope)
async def signin(credentials: SigninRequest) -> Envelope:
    user = await UserService.authenticate(credentials.email, credentials.password)
    return Envelope(message="Signed in successfully", data=AuthResult(token=issue_customer_token(user), user=user))


@router.post("/forgot-password", response_model=Envelope)
async def forgot_password(payload: ForgotPasswordRequest) -> Envelope:
    """Start a password reset.  The answer does not reveal whether the account exists."""
    message = await UserService.request_password_reset(payload.email)
    return Envelope(message=message)


@router.post("/reset-password", response_model=Envelope)
async def reset_password(payload: ResetPasswordRequest) -> Envelope:
    await UserService.reset_password(payload.token, payload.new_password)
    return Envelope(message="Password has been reset")


@router.get("/me", response_model=Envelope)
async def get_me(current: Identity = Depends(get_current_customer)) -> Envelope:
    return Envelope(data=await UserService.get_user(current.subject_id))


@router.post("/logout", response_model=Envelope)
async def logout(current: Identity = Depends(get_current_customer)) -> Envelope:
    """Tokens are stateless; the client discards its copy."""
    return Envelope(message="Logged out successfully")


@router.put("/update-profile", response_model=Envelope)
async def update_profile(
    payload: ProfileUpdate,
    current: Identity = Depends(get_current_customer),
) -> Envelope:
    user = await UserService.update_profile(current.subject_id, payload)
    return Envelope(message="Profile updated successfully", data=user)


@router.post("/update-photo", response_model=Envelope)
async def update_photo(
    profile_pic: Optional[UploadFile] = File(None),
    current: Identity = Depends(get_current_customer),
) -> Envelope:
    photo = await read_upload(profile_pic, "profile_pic", "image")
    if photo is None:
        raise ValidationFailed("No image uploaded")
    user = await UserService.update_photo(current.subject_id, photo)
    return Envelope(message="Profile photo updated successfully", data=user)


@router.post("/google", response_model=Envelope)
async def google_signin(
    payload: SocialTokenRequest,
    verifier: SocialIdentityVerifier = Depends(get_social_verifier),
) -> Envelope:
    """Sign in with a Google ID token, creating the customer on first use."""
    if not payload.token:
        raise ValidationFailed("token is required")
    profile = await verifier.google(payload.token)
    user = await UserService.find_or_create_social(profile.email, profile.full_name, profile.picture, "google")
    return Envelope(message="Signed in with Google", data=AuthResult(token=issue_customer_token(user), user=user))


@router.post("/facebook", response_model=Envelope)
async def facebook_signin(
    payload: SocialTokenRequest,
    verifier: SocialIdentityVerifier = Depends(get_social_verifier),
) -> Envelope:
    token = payload.access_token or payload.token
    if not token:
        raise ValidationFailed("access_token is required")
    profile = await verifier.facebook(token)
    user = await UserService.find_or_create_social(profile.email, profile.full_name, profile.picture, "facebook")
    return Envelope(message="Signed in with Facebook", data=AuthResult(token=issue_customer_token(user), user=user))
