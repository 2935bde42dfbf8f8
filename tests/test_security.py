from datetime import timedelta

import pytest
from jose import jwt

from vendor_sales.core.actor import Actor
from vendor_sales.core.config import settings
from vendor_sales.core.exceptions import AuthenticationError, AuthorizationError
from vendor_sales.core.security import create_access_token, decode_token
from vendor_sales.models.user import UserRole


class TestActor:
    def test_require_role(self):
        admin = Actor(user_id="a1", role=UserRole.ADMIN)
        assert admin.require_role(UserRole.ADMIN) is admin
        with pytest.raises(AuthorizationError):
            admin.require_role(UserRole.VENDOR)

    def test_vendor_access(self):
        vendor = Actor(user_id="v1", role=UserRole.VENDOR)
        admin = Actor(user_id="a1", role=UserRole.ADMIN)

        assert vendor.require_vendor_access("v1") is vendor
        assert admin.require_vendor_access("v1") is admin
        with pytest.raises(AuthorizationError):
            vendor.require_vendor_access("v2")


class TestTokens:
    def test_round_trip(self):
        token = create_access_token({"sub": "v1", "role": "vendor"})
        payload = decode_token(token)
        assert payload["sub"] == "v1"
        assert payload["type"] == "access"

    def test_expired_token(self):
        token = create_access_token({"sub": "v1", "role": "vendor"}, expires_delta=timedelta(seconds=-10))
        with pytest.raises(AuthenticationError):
            decode_token(token)

    def test_foreign_signature(self):
        token = jwt.encode({"sub": "v1", "role": "admin"}, "other-secret", algorithm=settings.ALGORITHM)
        with pytest.raises(AuthenticationError):
            decode_token(token)
