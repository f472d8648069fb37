"""
Reporting endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends

from .auth import LendingSystem, get_lending_system, get_caller_identity
from .schemas import portfolio_response
from ..identity import CallerIdentity


router = APIRouter()


@router.get("/portfolio")
async def portfolio_summary(
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Dashboard figures for the caller's loan book"""
    return portfolio_response(system.reporter.portfolio_summary(identity))
