"""
Authentication endpoints for browser (cookie) and mobile (header) clients.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response, status

from accounts.models import UserRecord
from api.auth import require_authentication, require_token_identity
from api.config import config as api_config
from api.dependencies import ServiceContainer, get_services
from api.models import (
    AccessTokenResponse,
    ChangePasswordRequest,
    MessageResponse,
    SigninRequest,
    SignupRequest,
    TokenPairResponse,
    UserEnvelope,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=api_config.refresh_cookie_name,
        value=refresh_token,
        max_age=api_config.refresh_cookie_max_age,
        httponly=True,
        secure=api_config.refresh_cookie_secure,
        samesite=api_config.refresh_cookie_samesite,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=api_config.refresh_cookie_name,
        httponly=True,
        secure=api_config.refresh_cookie_secure,
        samesite=api_config.refresh_cookie_samesite,
    )


@router.post("/signup", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, services: ServiceContainer = Depends(get_services)):
    """Create an account. 409 when the email is already registered."""
    user = await services.auth.signup(body.fullname, body.email, body.password)
    return UserEnvelope(message="Signup successful", user=UserResponse.from_public(user.public()))


@router.post("/signin", response_model=AccessTokenResponse)
async def signin(
    body: SigninRequest,
    response: Response,
    services: ServiceContainer = Depends(get_services),
):
    """
    Exchange credentials for an access token.

    The refresh token is delivered as an HTTP-only, same-site strict cookie.
    """
    result = await services.auth.signin(body.email, body.password)
    _set_refresh_cookie(response, result.tokens.refresh_token)
    return AccessTokenResponse(message="Signin successful", access_token=result.tokens.access_token)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: Request,
    response: Response,
    services: ServiceContainer = Depends(get_services),
):
    """Rotate the refresh cookie and issue a new access token."""
    rotation = await services.auth.refresh(request.cookies.get(api_config.refresh_cookie_name))
    _set_refresh_cookie(response, rotation.tokens.refresh_token)
    return AccessTokenResponse(message="Refresh successful", access_token=rotation.tokens.access_token)


@router.api_route("/signout", methods=["GET", "POST"], status_code=status.HTTP_204_NO_CONTENT)
async def signout(
    user: UserRecord = Depends(require_token_identity),
    services: ServiceContainer = Depends(get_services),
):
    """End the session: clear the stored refresh token and the cookie."""
    await services.auth.signout(user)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _clear_refresh_cookie(response)
    return response


@router.api_route("/me", methods=["GET", "POST"], response_model=UserEnvelope)
async def me(user: UserRecord = Depends(require_authentication)):
    return UserEnvelope(
        message="Authenticated user retrieved successfully",
        user=UserResponse.from_public(user.public()),
    )


@router.patch("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    user: UserRecord = Depends(require_authentication),
    services: ServiceContainer = Depends(get_services),
):
    await services.auth.change_password(user, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


# Mobile clients: tokens travel in the body and the refresh header, never in cookies

@router.post("/mobile/signin", response_model=TokenPairResponse)
async def mobile_signin(body: SigninRequest, services: ServiceContainer = Depends(get_services)):
    result = await services.auth.signin(body.email, body.password)
    return TokenPairResponse(
        message="Signin successful",
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


@router.post("/mobile/refresh", response_model=TokenPairResponse)
async def mobile_refresh(
    refresh_token: Optional[str] = Header(None, alias=api_config.refresh_header_name),
    services: ServiceContainer = Depends(get_services),
):
    rotation = await services.auth.refresh(refresh_token)
    return TokenPairResponse(
        message="Refresh successful",
        access_token=rotation.tokens.access_token,
        refresh_token=rotation.tokens.refresh_token,
    )


@router.post("/mobile/signout", status_code=status.HTTP_204_NO_CONTENT)
async def mobile_signout(
    user: UserRecord = Depends(require_token_identity),
    services: ServiceContainer = Depends(get_services),
):
    await services.auth.signout(user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
