from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional

class RunJobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_key: str = Field(alias="jobKey")
    input: Optional[Any] = None
    trace_id: Optional[str] = Field(default=None, alias="traceId")

class CancelJobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(alias="runId")
