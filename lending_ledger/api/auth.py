"""
Authentication dependencies and system wiring
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..storage import create_storage
from ..audit import AuditTrail
from ..currency import Currency
from ..collectors import CollectorManager
from ..loans import LoanManager
from ..commissions import CommissionAccountant
from ..reporting import PortfolioReporter
from ..identity import CallerIdentity, UserRole
from ..config import LedgerConfig, get_config


security = HTTPBearer(auto_error=False)


class LendingSystem:
    """Lending engine with all components initialized"""
    
    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        currency = Currency[self.config.default_currency]
        
        self.storage = create_storage(self.config.storage_backend, self.config.sqlite_path)
        self.audit_trail = AuditTrail(self.storage, enabled=self.config.enable_audit_logging)
        self.collector_manager = CollectorManager(
            self.storage, self.audit_trail, default_currency=currency
        )
        self.loan_manager = LoanManager(
            self.storage, self.audit_trail,
            collector_manager=self.collector_manager,
            default_currency=currency,
            paid_tolerance=Decimal(self.config.paid_tolerance),
            payoff_tolerance=Decimal(self.config.payoff_tolerance)
        )
        self.accountant = CommissionAccountant(
            self.loan_manager, self.collector_manager, currency=currency
        )
        self.reporter = PortfolioReporter(self.loan_manager, currency=currency)
    
    def issue_token(self, identity: CallerIdentity) -> str:
        """Sign a bearer token carrying the caller identity"""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": identity.user_id,
            "name": identity.display_name,
            "tenant_id": identity.tenant_id,
            "role": identity.role.value,
            "iat": now,
            "exp": now + timedelta(minutes=self.config.token_ttl_minutes)
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)
    
    def identity_from_token(self, token: str) -> CallerIdentity:
        try:
            payload = jwt.decode(token, self.config.jwt_secret, algorithms=[self.config.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")
        
        if not payload.get("sub") or not payload.get("tenant_id"):
            raise HTTPException(status_code=401, detail="Invalid token")
        return CallerIdentity(
            user_id=payload["sub"],
            display_name=payload.get("name", ""),
            tenant_id=payload["tenant_id"],
            role=_parse_role(payload.get("role"))
        )


def _parse_role(value: Optional[str]) -> UserRole:
    if not value:
        return UserRole.ADMIN
    try:
        return UserRole(value.lower())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role: {value}")


# Global lending system instance, created on first use
lending_system: Optional[LendingSystem] = None


def get_lending_system() -> LendingSystem:
    global lending_system
    if lending_system is None:
        lending_system = LendingSystem()
    return lending_system


def get_caller_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_tenant_id: Optional[str] = Header(None),
    x_role: Optional[str] = Header(None),
    system: LendingSystem = Depends(get_lending_system)
) -> Optional[CallerIdentity]:
    """
    Resolve the caller. With auth enabled the bearer token is required;
    otherwise the X-User-Id / X-User-Name / X-Tenant-Id / X-Role headers
    are trusted as-is. Returns None for an anonymous caller so that the
    engine raises its own authentication error.
    """
    if system.config.auth_enabled:
        if not credentials:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return system.identity_from_token(credentials.credentials)
    
    if not x_user_id or not x_tenant_id:
        return None
    return CallerIdentity(
        user_id=x_user_id,
        display_name=x_user_name or x_user_id,
        tenant_id=x_tenant_id,
        role=_parse_role(x_role)
    )
