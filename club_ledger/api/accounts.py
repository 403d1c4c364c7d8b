"""
Bank account and statement endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, status

from .deps import LedgerSystem, get_ledger_system
from .schemas import CreateAccountRequest, account_to_response, line_to_response
from ..errors import UnknownAccountError, LedgerError
from ..reporting import summarize_statement
from ..statement import Statement, StatementRequest


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a new bank account"""
    try:
        account = system.account_manager.create_account(
            club_id=request.club_id,
            label=request.label,
            initial_balance=request.initial_balance
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "account_id": account.id,
        "message": "Account created successfully"
    }


@router.get("")
async def list_accounts(
    club_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List the bank accounts of a club"""
    accounts = system.account_manager.list_club_accounts(club_id)
    return {"accounts": [account_to_response(account) for account in accounts]}


@router.get("/{account_id}")
async def get_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get account details"""
    account = system.account_manager.get_account(account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return account_to_response(account)


def _generate(system: LedgerSystem, account_id: str,
              start_date: Optional[date], end_date: Optional[date]) -> Statement:
    try:
        return system.statement_service.generate(
            StatementRequest(account_id=account_id, start_date=start_date, end_date=end_date)
        )
    except UnknownAccountError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{account_id}/statement")
async def get_statement(
    account_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Newest-first statement with running balances"""
    statement = _generate(system, account_id, start_date, end_date)
    return {
        "account_id": statement.account_id,
        "window": statement.window.to_dict(),
        "current_balance": str(statement.current_balance),
        "drift": str(statement.drift),
        "lines": [line_to_response(line) for line in statement.lines]
    }


@router.get("/{account_id}/statement/summary")
async def get_statement_summary(
    account_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Income, expense and opening/closing balances of a statement window"""
    statement = _generate(system, account_id, start_date, end_date)
    return {
        "account_id": statement.account_id,
        "window": statement.window.to_dict(),
        **summarize_statement(statement).to_dict()
    }
