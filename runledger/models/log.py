from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
from runledger.models.run import new_id, utcnow

class LogEntry(SQLModel, table=True):
    __tablename__ = "logs"

    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(default_factory=new_id, unique=True)
    run_id: str = Field(index=True)
    trace_id: str = Field(default="")
    level: str  # free-form: info, warn, error, ...
    message: str
    created_at: datetime = Field(default_factory=utcnow)
