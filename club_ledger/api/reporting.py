"""
Reporting endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends

from .deps import LedgerSystem, get_ledger_system


router = APIRouter()


@router.get("/clubs/{club_id}/balance")
async def get_club_balance(
    club_id: str,
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Total balance of a club's accounts and its month-to-date change"""
    return system.reporting_engine.club_balance_summary(club_id, as_of).to_dict()
