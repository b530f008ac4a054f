import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from crewdesk.modules.qr.models import QrTokenRecord

class QrTokenRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> QrTokenRecord:
        obj = QrTokenRecord(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, token_id: str) -> QrTokenRecord | None:
        try:
            key = uuid.UUID(token_id)
        except ValueError:
            return None
        res = await self.session.execute(select(QrTokenRecord).where(QrTokenRecord.id == key))
        return res.scalar_one_or_none()

    async def revoke(self, token_id: str, *, at: datetime, reason: str) -> QrTokenRecord | None:
        obj = await self.get(token_id)
        if obj is not None and obj.revoked_at is None:
            obj.revoked_at = at
            obj.revoke_reason = reason
            await self.session.flush()
        return obj

    async def list_for_appointment(self, appointment_id: uuid.UUID) -> Sequence[QrTokenRecord]:
        res = await self.session.execute(
            select(QrTokenRecord).where(QrTokenRecord.appointment_id == appointment_id)
            .order_by(QrTokenRecord.token_version.asc())
        )
        return res.scalars().all()
