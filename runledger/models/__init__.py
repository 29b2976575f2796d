from .run import Run, RUNNING, SUCCESS, ERROR, CANCELLED, TERMINAL_STATUSES
from .log import LogEntry
from .artifact import Artifact
