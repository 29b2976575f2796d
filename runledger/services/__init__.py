from .workspace import WorkspaceService
from .runs import RunsService
from .logs import LogsService
from .artifacts import ArtifactsService
from .context import JobContext, CancellationToken, RunLogger, create_job_context
from .jobs import JobsService, JobDefinition
from .tokens import TokensService, TokenDiff
from .validation import ValidationService, ValidationResult, ValidationIssue
from .history import HistoryService
from .scheduler import SchedulerService
