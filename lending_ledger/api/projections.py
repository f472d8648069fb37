"""
Projection endpoints (no loan is created)
"""

from fastapi import APIRouter, Depends

from .auth import LendingSystem, get_lending_system
from .schemas import PreviewRequest, LateFeeSimulationRequest, preview_response, late_fee_response
from ..currency import parse_amount, decimal_from_string
from ..projection import preview_origination, simulate_late_fee


router = APIRouter()


@router.post("/preview")
async def preview_loan(
    request: PreviewRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Committed total, installment amount, due date and late-fee simulation for new terms"""
    currency = system.loan_manager.default_currency
    preview = preview_origination(
        principal=parse_amount(request.principal, currency),
        rate_pct=decimal_from_string(request.rate_pct),
        interest_type=request.interest_type_enum,
        frequency=request.frequency_enum,
        installment_count=request.installment_count,
        origination_date=request.origination_date or system.loan_manager.clock().date(),
        penalty_config=request.penalty_config.to_penalty_config() if request.penalty_config else None,
        simulated_overdue_days=request.simulated_overdue_days
    )
    return preview_response(preview)


@router.post("/late-fee")
async def simulate_late_fee_endpoint(
    request: LateFeeSimulationRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Late fees a committed total would attract after N overdue days"""
    simulation = simulate_late_fee(
        parse_amount(request.committed_total, system.loan_manager.default_currency),
        request.penalty_config.to_penalty_config(),
        request.hypothetical_overdue_days
    )
    return late_fee_response(simulation)
