from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
from runledger.models.run import new_id, utcnow

class Artifact(SQLModel, table=True):
    __tablename__ = "artifacts"

    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(default_factory=new_id, unique=True)
    run_id: str = Field(index=True)
    trace_id: str = Field(default="")
    path: str  # relative to the run's artifact directory
    job_key: str = Field(default="")
    input_hash: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow)
