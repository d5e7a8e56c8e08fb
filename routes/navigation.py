from fastapi import APIRouter, Depends, Query
from models.auth import SessionContext
from core.auth import get_session
from core.access_gate import GateDecision, resolve

router = APIRouter(prefix="/navigation", tags=["navigation"])


@router.get("/resolve", response_model=GateDecision)
async def resolve_navigation(path: str = Query(..., min_length=1), current_session: SessionContext = Depends(get_session)):
    return resolve(current_session, path)
