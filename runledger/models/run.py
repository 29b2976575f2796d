from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from typing import Optional
import uuid

RUNNING = "running"
SUCCESS = "success"
ERROR = "error"
CANCELLED = "cancelled"
TERMINAL_STATUSES = (SUCCESS, ERROR, CANCELLED)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Run(SQLModel, table=True):
    __tablename__ = "runs"

    # seq records insertion order; id is the opaque identifier handed to callers
    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(default_factory=new_id, unique=True, index=True)
    trace_id: str = Field(default="")
    status: str = RUNNING  # running, success, error, cancelled
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
