import uuid
import datetime as dt
from pydantic import BaseModel

class QrIssueOut(BaseModel):
    token: str
    version: int
    expires_at: dt.datetime
    verification_url: str

class NamedRef(BaseModel):
    id: uuid.UUID
    name: str | None = None

# What the gate sees after a successful scan
class VerifiedAppointmentOut(BaseModel):
    appointment_id: uuid.UUID
    crew_id: uuid.UUID
    department: NamedRef
    appointment_type: NamedRef
    date: dt.date
    time: dt.time
    purpose: str
    status: str
    token_version: int
    expires_at: dt.datetime
