"""
Loan and payment endpoints
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .auth import LendingSystem, get_lending_system, get_caller_identity
from .schemas import (
    CreateLoanRequest, PaymentRequest, AmendPaymentRequest,
    loan_response, payment_response, position_response
)
from ..currency import decimal_from_string
from ..errors import NotFoundError
from ..identity import CallerIdentity, require_identity
from ..loans import Loan, PaymentKind
from ..state_machine import LoanStatus


router = APIRouter()


def _visible_loan(system: LendingSystem, identity: Optional[CallerIdentity], loan_id: str) -> Loan:
    """Load a loan the caller may see; other tenants' loans do not exist for them"""
    identity = require_identity(identity)
    loan = system.loan_manager.require_loan(loan_id)
    if not identity.sees_all_tenants and loan.tenant_id != identity.tenant_id:
        raise NotFoundError("loan", loan_id)
    return loan


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Originate a new loan"""
    loan = system.loan_manager.originate_loan(
        identity,
        client_id=request.client_id,
        client_name=request.client_name,
        principal=request.principal,
        rate_pct=decimal_from_string(request.rate_pct),
        interest_type=request.interest_type_enum,
        frequency=request.frequency_enum,
        installment_count=request.installment_count,
        origination_date=request.origination_date,
        penalty_config=request.penalty_config.to_penalty_config() if request.penalty_config else None,
        observations=request.observations
    )
    return loan_response(loan)


@router.get("")
async def list_loans(
    status_filter: Optional[str] = Query(None, alias="status"),
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """List the caller's loans with refreshed status"""
    loan_status = LoanStatus(status_filter) if status_filter else None
    loans = system.loan_manager.list_loans(identity, status=loan_status)
    return {"loans": [loan_response(loan) for loan in loans]}


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan details with its current position"""
    loan = _visible_loan(system, identity, loan_id)
    return loan_response(loan, system.loan_manager.get_position(loan_id))


@router.get("/{loan_id}/position")
async def get_loan_position(
    loan_id: str,
    as_of: Optional[datetime] = None,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Accrual view of a loan, optionally at another instant"""
    _visible_loan(system, identity, loan_id)
    return position_response(system.loan_manager.get_position(loan_id, as_of))


@router.delete("/{loan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_loan(
    loan_id: str,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Delete a loan and its payments"""
    _visible_loan(system, identity, loan_id)
    system.loan_manager.delete_loan(identity, loan_id)


@router.post("/{loan_id}/payments", status_code=status.HTTP_201_CREATED)
async def apply_payment(
    loan_id: str,
    request: PaymentRequest,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Apply a regular, interest-only or payoff payment"""
    _visible_loan(system, identity, loan_id)
    receipt = system.loan_manager.apply_payment(
        identity,
        loan_id,
        request.amount,
        explicit_payoff=request.explicit_payoff,
        kind=PaymentKind(request.kind),
        description=request.description
    )
    return {
        "outcome": receipt.outcome.value,
        "payment": payment_response(receipt.payment),
        "loan": loan_response(receipt.loan),
        "position_before": position_response(receipt.position_before)
    }


@router.patch("/{loan_id}/payments/{payment_id}")
async def amend_payment(
    loan_id: str,
    payment_id: str,
    request: AmendPaymentRequest,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Amend the amount, description or date of a payment"""
    _visible_loan(system, identity, loan_id)
    loan = system.loan_manager.amend_payment(
        identity, loan_id, payment_id,
        amount=request.amount,
        description=request.description,
        timestamp=request.timestamp
    )
    return loan_response(loan)


@router.delete("/{loan_id}/payments/{payment_id}")
async def delete_payment(
    loan_id: str,
    payment_id: str,
    identity: Optional[CallerIdentity] = Depends(get_caller_identity),
    system: LendingSystem = Depends(get_lending_system)
):
    """Remove a payment from the loan's log"""
    _visible_loan(system, identity, loan_id)
    loan = system.loan_manager.delete_payment(identity, loan_id, payment_id)
    return loan_response(loan)
