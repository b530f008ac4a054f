import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from crewdesk.core.db import get_session
from crewdesk.core.security import get_principal, require_scopes, Principal
from crewdesk.modules.qr.schemas import QrIssueOut, VerifiedAppointmentOut
from crewdesk.modules.qr.service import QrTokenService

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session)) -> QrTokenService:
    return QrTokenService(s)

@router.get("/appointments/{appointment_id}/qr", response_model=QrIssueOut, dependencies=[Depends(require_scopes("appointments:read"))])
async def issue_qr(appointment_id: uuid.UUID, principal: Principal = Depends(get_principal), service: QrTokenService = Depends(svc)):
    return await service.issue(principal, appointment_id)

@router.get("/guard/verify", response_model=VerifiedAppointmentOut, dependencies=[Depends(require_scopes("qr:verify"))])
async def verify_qr(token: str = Query(default="", description="raw token or the full scanned URL"), service: QrTokenService = Depends(svc)):
    return await service.verify(token)
