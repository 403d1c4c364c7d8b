"""
Transaction endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .deps import LedgerSystem, get_ledger_system
from .schemas import CreateTransactionRequest, UpdateTransactionRequest, transaction_to_response
from ..errors import UnknownAccountError, TransactionNotFoundError, MalformedTransactionError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    request: CreateTransactionRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Record a transaction; the account's current balance moves with it"""
    try:
        transaction = system.transaction_store.record_transaction(
            account_id=request.account_id,
            transaction_type=request.transaction_type,
            amount=request.amount,
            transaction_date=request.date,
            description=request.description,
            counterparty=request.counterparty,
            status=request.status,
            payment_method=request.payment_method
        )
    except UnknownAccountError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "transaction_id": transaction.id,
        "message": "Transaction recorded successfully"
    }


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get transaction details"""
    try:
        transaction = system.transaction_store.get_transaction(transaction_id)
    except MalformedTransactionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction_to_response(transaction)


@router.put("/{transaction_id}")
async def update_transaction(
    transaction_id: str,
    request: UpdateTransactionRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Update a transaction; balances of the affected accounts are adjusted"""
    # Only fields present in the body; an explicit null clears an optional field
    changes = request.model_dump(exclude_unset=True)
    try:
        transaction = system.transaction_store.update_transaction(transaction_id, **changes)
    except (UnknownAccountError, TransactionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return transaction_to_response(transaction)


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Delete a transaction and revert its balance effect"""
    try:
        transaction = system.transaction_store.delete_transaction(transaction_id)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if transaction is None:
        return {"message": "Malformed transaction record deleted; no balance was changed"}
    return {"message": "Transaction deleted successfully"}
