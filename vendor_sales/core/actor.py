"""
Caller identity handed to every core operation.

The identity provider authenticates the caller; by the time an ``Actor``
reaches a service it is trusted as-is. Services only check the role.
"""

from dataclasses import dataclass
from typing import Optional

from vendor_sales.core.exceptions import AuthorizationError
from vendor_sales.models.user import UserRole


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: UserRole
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role == UserRole.VENDOR

    def require_role(self, *roles: UserRole) -> "Actor":
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise AuthorizationError(f"Operation requires role: {allowed}")
        return self

    def require_vendor_access(self, vendor_id: str) -> "Actor":
        """Admins see every vendor, vendors only themselves"""
        if self.is_admin:
            return self
        if self.is_vendor and self.user_id == vendor_id:
            return self
        raise AuthorizationError("Access to this vendor's records is not allowed")
