"""
Collector, commission statement and collector login endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .auth import LendingSystem, get_lending_system, get_caller_identity
from .schemas import (
    CreateCollectorRequest, UpdateCollectorRequest, CollectorTransactionRequest,
    CollectorTokenRequest, collector_response, transaction_response,
    statement_response, summary_response
)
from ..collectors import Collector, CollectorTransactionKind
from ..commissions import DateRangePreset
from ..currency import decimal_from_string
from ..errors import NotFoundError
from ..identity import CallerIdentity, require_identity


router = APIRouter()
auth_router = APIRouter()


def _visible_collector(system: LendingSystem, identity: Optional[CallerIdentity],
                       collector_id: str) -> Collector:
    identity = require_identity(identity)
    collector = system.collector_manager.require_collector(collector_id)
    if not identity.sees_all_tenants and collector.tenant_id != identity.tenant_id:
        raise NotFoundError("collector", collector_id)
    return collector


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_collector(
    request: CreateCollectorRequest,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Register a collector in the caller's tenant"""
    collector = system.collector_manager.create_collector(
        identity,
        name=request.name,
        username=request.username,
        commission_rate_pct=decimal_from_string(request.commission_rate_pct)
    )
    return collector_response(collector)


@router.get("")
async def list_collectors(
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    collectors = system.collector_manager.list_collectors(identity)
    return {"collectors": [collector_response(c) for c in collectors]}


@router.patch("/{collector_id}")
async def update_collector(
    collector_id: str,
    request: UpdateCollectorRequest,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Rename, change rate, activate or deactivate a collector"""
    _visible_collector(system, identity, collector_id)
    rate = None
    if request.commission_rate_pct is not None:
        rate = decimal_from_string(request.commission_rate_pct)
    collector = system.collector_manager.update_collector(
        identity, collector_id,
        name=request.name,
        commission_rate_pct=rate,
        is_active=request.is_active
    )
    return collector_response(collector)


@router.delete("/{collector_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collector(
    collector_id: str,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    _visible_collector(system, identity, collector_id)
    system.collector_manager.delete_collector(identity, collector_id)


@router.post("/{collector_id}/transactions", status_code=status.HTTP_201_CREATED)
async def record_transaction(
    collector_id: str,
    request: CollectorTransactionRequest,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Record a manual payout or bonus"""
    _visible_collector(system, identity, collector_id)
    transaction = system.collector_manager.record_transaction(
        identity, collector_id,
        kind=CollectorTransactionKind(request.kind),
        amount=request.amount,
        description=request.description,
        timestamp=request.timestamp
    )
    return transaction_response(transaction)


@router.get("/{collector_id}/statement")
async def get_statement(
    collector_id: str,
    range_preset: str = Query("all", alias="range"),
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Commission statement; range is 7days, 30days, this_month or all"""
    _visible_collector(system, identity, collector_id)
    statement = system.accountant.statement(collector_id, DateRangePreset(range_preset))
    return statement_response(statement)


@router.get("/{collector_id}/summary")
async def get_summary(
    collector_id: str,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """All-time collected, commission, payout, bonus and balance"""
    _visible_collector(system, identity, collector_id)
    return summary_response(system.accountant.collector_summary(collector_id))


@auth_router.post("/collector-token")
async def collector_token(
    request: CollectorTokenRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Exchange an active collector's username for a bearer token"""
    identity = system.collector_manager.resolve_identity(request.username)
    return {
        "access_token": system.issue_token(identity),
        "token_type": "bearer",
        "collector_id": identity.user_id,
        "tenant_id": identity.tenant_id
    }
