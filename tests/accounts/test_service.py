"""
Tests for the authentication workflows.
"""

import pytest

from utilities.errors import Conflict, InvalidTokenError, NotFound, Unauthorized, ValidationError


class TestSignupAndSignin:
    """Test signup and signin."""

    @pytest.mark.asyncio
    async def test_signup_then_signin(self, auth_service, store):
        user = await auth_service.signup("Jane Doe", "jane@x.com", "Secret123!")

        result = await auth_service.signin("jane@x.com", "Secret123!")

        assert result.user.id == user.id
        assert result.tokens.access_token
        assert result.user.refresh_token == result.tokens.refresh_token
        assert (await store.find_by_id(user.id)).refresh_token == result.tokens.refresh_token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fields", [
        ("", "jane@x.com", "Secret123!"),
        ("Jane Doe", None, "Secret123!"),
        ("Jane Doe", "jane@x.com", ""),
    ])
    async def test_signup_requires_fields(self, auth_service, fields):
        with pytest.raises(ValidationError, match="Fields are required"):
            await auth_service.signup(*fields)

    @pytest.mark.asyncio
    async def test_signup_duplicate_email(self, auth_service):
        await auth_service.signup("Jane Doe", "jane@x.com", "Secret123!")

        with pytest.raises(Conflict):
            await auth_service.signup("Jane Again", "jane@x.com", "Secret123!")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email, password", [
        ("jane@x.com", "Wrong123!"),
        ("nobody@x.com", "Secret123!"),
    ])
    async def test_signin_bad_credentials(self, auth_service, make_user, email, password):
        await make_user()

        with pytest.raises(Unauthorized, match="Invalid email or password"):
            await auth_service.signin(email, password)

    @pytest.mark.asyncio
    async def test_signin_missing_fields(self, auth_service):
        with pytest.raises(ValidationError):
            await auth_service.signin("", "Secret123!")

    @pytest.mark.asyncio
    async def test_second_signin_ends_first_session(self, auth_service, make_user):
        await make_user()
        first = await auth_service.signin("jane@x.com", "Secret123!")
        await auth_service.signin("jane@x.com", "Secret123!")

        with pytest.raises(InvalidTokenError):
            await auth_service.refresh(first.tokens.refresh_token)


class TestRefreshAndSignout:
    """Test refresh and signout."""

    @pytest.mark.asyncio
    async def test_refresh_requires_token(self, auth_service):
        with pytest.raises(Unauthorized):
            await auth_service.refresh(None)

    @pytest.mark.asyncio
    async def test_signout_then_refresh_fails(self, auth_service, make_user):
        await make_user()
        session = await auth_service.signin("jane@x.com", "Secret123!")

        await auth_service.signout(session.user)

        with pytest.raises(Unauthorized):
            await auth_service.refresh(session.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_signout_without_session(self, auth_service, make_user):
        user = await make_user()

        with pytest.raises(NotFound, match="No active session"):
            await auth_service.signout(user)


class TestChangePassword:
    """Test password change."""

    @pytest.mark.asyncio
    async def test_change_password(self, auth_service, make_user):
        user = await make_user()

        await auth_service.change_password(user, "Secret123!", "Changed456#")

        await auth_service.signin("jane@x.com", "Changed456#")
        with pytest.raises(Unauthorized):
            await auth_service.signin("jane@x.com", "Secret123!")

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, auth_service, make_user):
        user = await make_user()

        with pytest.raises(Unauthorized, match="Current password is incorrect"):
            await auth_service.change_password(user, "Wrong123!", "Changed456#")

    @pytest.mark.asyncio
    async def test_new_password_must_differ(self, auth_service, make_user):
        user = await make_user()

        with pytest.raises(ValidationError):
            await auth_service.change_password(user, "Secret123!", "Secret123!")
