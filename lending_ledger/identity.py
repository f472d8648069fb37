"""
Caller Identity Module

The resolved caller (who, which tenant, which role) is passed explicitly into
every engine call. The engine trusts the identity it is given and does not
authenticate or authorize by itself.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import UnauthenticatedError


class UserRole(Enum):
    """Roles a caller can act under"""
    MASTER = "master"        # Operator of the whole deployment
    ADMIN = "admin"          # Owner of a tenant
    USER = "user"
    COLLECTOR = "collector"  # Field agent earning commission


@dataclass(frozen=True)
class CallerIdentity:
    """Already-resolved caller identity"""
    user_id: str
    display_name: str
    tenant_id: str
    role: UserRole = UserRole.ADMIN
    
    @property
    def earns_commission(self) -> bool:
        return self.role == UserRole.COLLECTOR
    
    @property
    def sees_all_tenants(self) -> bool:
        return self.role == UserRole.MASTER


def require_identity(identity: Optional[CallerIdentity]) -> CallerIdentity:
    """
    Return the identity or raise when the caller is anonymous
    
    Raises:
        UnauthenticatedError: If identity is missing or incomplete
    """
    if identity is None:
        raise UnauthenticatedError("Authentication required")
    if not identity.user_id or not identity.tenant_id:
        raise UnauthenticatedError("Caller identity is incomplete")
    return identity
