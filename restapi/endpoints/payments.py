"""Payment endpoints for the API."""

from fastapi import APIRouter, Depends

from components.contract import schemas
from components.contract.service import ContractService
from components.core.init_db import get_contract_service

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    responses={404: {"description": "Not found"}},
)


@router.post("/{payment_id}/undo", response_model=schemas.PaymentResult)
async def undo_payment(
    payment_id: int,
    service: ContractService = Depends(get_contract_service),
):
    """Reverse a payment with compensating ledger entries."""
    return await service.undo_payment(payment_id)
