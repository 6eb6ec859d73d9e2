"""
Tests for JWT verification and the staff authentication strategy.
"""

import jwt
import pytest

from shared.security.auth import sign_jwt, verify_access_token, verify_jwt
from shared.utils.exceptions import UnauthorizedError
from ws_gateway.components.auth.strategies import (
    AuthFailureReason,
    JWTAuthStrategy,
    create_staff_auth_strategy,
)
from ws_gateway.components.core.constants import UserRole, WSCloseCode
from tests.conftest import (
    CANCELLED_HOTEL_USER_ID,
    DEACTIVATED_HOTEL_USER_ID,
    FakeWebSocket,
    FRONT_DESK_ID,
    HOUSEKEEPING_ID,
    INACTIVE_USER_ID,
    PLATFORM_ADMIN_ID,
    SUSPENDED_HOTEL_USER_ID,
    TRIAL_HOTEL_USER_ID,
    UNKNOWN_ROLE_USER_ID,
    token_for,
)


class TestVerifyJwt:
    def test_roundtrip_claims(self):
        claims = verify_access_token(token_for(3, tenant_id=1, role="front_desk"))

        assert claims["sub"] == "3"
        assert claims["tenant_id"] == 1
        assert claims["type"] == "access"

    def test_expired_token(self):
        token = sign_jwt({"sub": "3", "tenant_id": 1}, ttl_seconds=-60)

        with pytest.raises(UnauthorizedError) as exc:
            verify_jwt(token)
        assert exc.value.status_code == 401

    def test_missing_tenant_claim(self):
        with pytest.raises(UnauthorizedError):
            verify_jwt(sign_jwt({"sub": "3"}))

    def test_boolean_tenant_claim_rejected(self):
        with pytest.raises(UnauthorizedError):
            verify_jwt(sign_jwt({"sub": "3", "tenant_id": True}))

    def test_non_numeric_subject_rejected(self):
        with pytest.raises(UnauthorizedError):
            verify_jwt(sign_jwt({"sub": "abc", "tenant_id": 1}))

    def test_refresh_token_is_not_access(self):
        token = sign_jwt({"sub": "3", "tenant_id": 1}, token_type="refresh")

        assert verify_jwt(token)["type"] == "refresh"
        with pytest.raises(UnauthorizedError):
            verify_access_token(token)


class TestJWTAuthStrategy:
    @pytest.mark.asyncio
    async def test_identity_comes_from_user_record(self, directory):
        strategy = create_staff_auth_strategy(directory)
        # Claims say manager; the record says housekeeping
        token = token_for(HOUSEKEEPING_ID, tenant_id=1, role="hotel_manager")

        result = await strategy.authenticate(token)

        assert result.success is True
        assert result.identity.user_id == HOUSEKEEPING_ID
        assert result.identity.tenant_id == 1
        assert result.identity.role is UserRole.HOUSEKEEPING
        assert result.identity.name == f"Staff {HOUSEKEEPING_ID}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "   "])
    async def test_missing_credential(self, directory, token):
        result = await JWTAuthStrategy(directory).authenticate(token)

        assert result.success is False
        assert result.reason is AuthFailureReason.NO_CREDENTIAL
        assert result.close_code == WSCloseCode.AUTH_FAILED
        assert directory.lookups == 0

    @pytest.mark.asyncio
    async def test_garbage_token(self, directory):
        result = await JWTAuthStrategy(directory).authenticate("not-a-jwt")

        assert result.reason is AuthFailureReason.INVALID_CREDENTIAL
        assert result.close_code == WSCloseCode.AUTH_FAILED
        assert directory.lookups == 0

    @pytest.mark.asyncio
    async def test_expired_token(self, directory):
        token = sign_jwt({"sub": str(FRONT_DESK_ID), "tenant_id": 1}, ttl_seconds=-1)

        result = await JWTAuthStrategy(directory).authenticate(token)

        assert result.reason is AuthFailureReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_wrong_signing_key(self, directory):
        # Same claims as a valid token, signed with a different secret
        claims = jwt.decode(token_for(FRONT_DESK_ID), options={"verify_signature": False})
        forged = jwt.encode(claims, "another-secret-that-the-gateway-never-uses-42", algorithm="HS256")

        result = await JWTAuthStrategy(directory).authenticate(forged)

        assert result.success is False
        assert result.reason is AuthFailureReason.INVALID_CREDENTIAL
        assert result.close_code == WSCloseCode.AUTH_FAILED
        assert directory.lookups == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self, directory):
        result = await JWTAuthStrategy(directory).authenticate(token_for(404))

        assert result.reason is AuthFailureReason.INACTIVE_USER
        assert result.close_code == WSCloseCode.FORBIDDEN

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [INACTIVE_USER_ID, UNKNOWN_ROLE_USER_ID])
    async def test_inactive_or_unroled_user(self, directory, user_id):
        result = await JWTAuthStrategy(directory).authenticate(token_for(user_id))

        assert result.reason is AuthFailureReason.INACTIVE_USER
        assert result.close_code == WSCloseCode.FORBIDDEN

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user_id",
        [SUSPENDED_HOTEL_USER_ID, CANCELLED_HOTEL_USER_ID, DEACTIVATED_HOTEL_USER_ID],
    )
    async def test_inactive_hotel(self, directory, user_id):
        result = await JWTAuthStrategy(directory).authenticate(token_for(user_id))

        assert result.success is False
        assert result.reason is AuthFailureReason.INACTIVE_TENANT
        assert result.error_message == "Hotel subscription inactive"
        assert result.close_code == WSCloseCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_trial_hotel_allowed(self, directory):
        result = await JWTAuthStrategy(directory).authenticate(token_for(TRIAL_HOTEL_USER_ID, tenant_id=5))

        assert result.success is True
        assert result.identity.tenant_id == 5

    @pytest.mark.asyncio
    async def test_platform_admin_has_no_tenant(self, directory):
        token = token_for(PLATFORM_ADMIN_ID, tenant_id=None, role="platform_admin")

        result = await JWTAuthStrategy(directory).authenticate(token)

        assert result.success is True
        assert result.identity.tenant_id is None
        assert result.identity.role is UserRole.PLATFORM_ADMIN

    @pytest.mark.asyncio
    async def test_origin_rejected(self, directory):
        ws = FakeWebSocket(origin="https://evil.example")

        result = await JWTAuthStrategy(directory).authenticate(token_for(FRONT_DESK_ID), ws)

        assert result.reason is AuthFailureReason.ORIGIN_NOT_ALLOWED
        assert result.close_code == WSCloseCode.FORBIDDEN
        assert directory.lookups == 0

    @pytest.mark.asyncio
    async def test_allowed_origin_and_missing_origin_in_development(self, directory):
        strategy = JWTAuthStrategy(directory)

        allowed = await strategy.authenticate(
            token_for(FRONT_DESK_ID), FakeWebSocket(origin="http://localhost:5173")
        )
        no_origin = await strategy.authenticate(token_for(FRONT_DESK_ID), FakeWebSocket())

        assert allowed.success is True
        assert no_origin.success is True

    @pytest.mark.asyncio
    async def test_lookup_errors_propagate(self, directory):
        directory.error = TimeoutError()

        with pytest.raises(TimeoutError):
            await JWTAuthStrategy(directory).authenticate(token_for(FRONT_DESK_ID))

    @pytest.mark.asyncio
    async def test_revalidate(self, directory):
        strategy = JWTAuthStrategy(directory)
        expired = sign_jwt({"sub": "3", "tenant_id": 1}, ttl_seconds=-1)

        assert await strategy.revalidate(token_for(FRONT_DESK_ID)) is True
        assert await strategy.revalidate(expired) is False
        assert await strategy.revalidate("garbage") is False
