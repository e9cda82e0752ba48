"""Installment endpoints for the API."""

from fastapi import APIRouter, Depends

from components.contract import schemas
from components.contract.service import ContractService
from components.core.init_db import get_contract_service
from components.installment.schemas import MoratoryUpdate
from components.payment.schemas import PaymentApply

router = APIRouter(
    prefix="/installments",
    tags=["installments"],
    responses={404: {"description": "Not found"}},
)


@router.post("/{installment_id}/pay", response_model=schemas.PaymentResult)
async def apply_payment(
    installment_id: int,
    payment: PaymentApply,
    service: ContractService = Depends(get_contract_service),
):
    """
    Apply a payment to a pending installment.

    Cash above the installment's amount plus moratory interest is kept as
    the payment's extra amount and lowers the balance.
    """
    return await service.apply_payment(installment_id, payment.principal_amount, payment.interest_amount)


@router.post("/{installment_id}/undo", response_model=schemas.PaymentResult)
async def undo_payment(
    installment_id: int,
    service: ContractService = Depends(get_contract_service),
):
    """Undo the active payment of a paid installment."""
    return await service.undo_installment_payment(installment_id)


@router.post("/{installment_id}/update_moratory", response_model=schemas.MoratoryResult)
async def update_moratory(
    installment_id: int,
    update: MoratoryUpdate,
    service: ContractService = Depends(get_contract_service),
):
    """Override the moratory interest of a pending installment."""
    return await service.update_moratory(installment_id, update.interest_amount)
