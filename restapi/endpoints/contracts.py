"""Contract endpoints for the API."""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from components.contract import schemas
from components.contract.service import ContractService
from components.core.init_db import get_contract_service
from components.ledger.schemas import ReconciliationReport
from components.payment.schemas import CapitalRepaymentCreate

router = APIRouter(
    prefix="/contracts",
    tags=["contracts"],
    responses={404: {"description": "Not found"}},
)


@router.post("", response_model=schemas.ContractSnapshot, status_code=status.HTTP_201_CREATED)
async def create_contract(
    contract: schemas.ContractCreate,
    service: ContractService = Depends(get_contract_service),
):
    """
    Create a contract at reservation time and generate its schedule.

    Direct financing gets `payment_term` monthly installments; bank and cash
    financing only track `max_payment_date`.
    """
    return await service.create_contract(contract)


@router.get("/{contract_id}", response_model=schemas.ContractSnapshot)
async def get_contract(
    contract_id: int,
    as_of: Optional[date] = Query(None, description="Date used for overdue days (defaults to today)"),
    service: ContractService = Depends(get_contract_service),
):
    """Get the contract with its schedule, ledger (with running balance) and payments."""
    return await service.get_contract(contract_id, as_of)


@router.patch("/{contract_id}", response_model=schemas.ContractSnapshot)
async def update_terms(
    contract_id: int,
    terms: schemas.ContractTermsUpdate,
    service: ContractService = Depends(get_contract_service),
):
    """
    Edit payment term, reserve, down payment or max payment date.

    Only while the contract is pending, submitted or rejected and nothing
    has been posted to its ledger. The schedule is regenerated.
    """
    return await service.update_terms(contract_id, terms)


@router.post("/{contract_id}/status", response_model=schemas.ContractSnapshot)
async def transition_status(
    contract_id: int,
    update: schemas.ContractStatusUpdate,
    service: ContractService = Depends(get_contract_service),
):
    """Move the contract to another status."""
    return await service.transition_status(contract_id, update.status)


@router.get("/{contract_id}/reconcile", response_model=ReconciliationReport)
async def reconcile(
    contract_id: int,
    service: ContractService = Depends(get_contract_service),
):
    """Check that the ledger sums to the contract's amount minus its balance."""
    return await service.reconcile(contract_id)


@router.post("/{contract_id}/capital_repayment", response_model=schemas.CapitalRepaymentResult)
async def apply_capital_repayment(
    contract_id: int,
    repayment: CapitalRepaymentCreate,
    service: ContractService = Depends(get_contract_service),
):
    """
    Apply an out-of-schedule principal payment.

    Every pending installment is frozen as a readjustment and replaced by a
    row with the recomputed amount.
    """
    return await service.apply_capital_repayment(contract_id, repayment.capital_repayment_amount)
