"""
Error classes for the run ledger.

Caller errors (unknown job key, path traversal, bad status) are raised
synchronously before any run row is created or any file is touched.
Errors raised inside a job body never surface here: the executor records
them as an ``error`` run instead.
"""


class LedgerError(Exception):
    """Base exception for runledger."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PathTraversalError(LedgerError):
    """A workspace-relative path tried to escape the workspace root."""

    code = "PATH_TRAVERSAL"

    def __init__(self, rel_path: str):
        super().__init__(f"Path traversal not allowed: {rel_path}")
        self.rel_path = rel_path


class JobNotFoundError(LedgerError):
    """No job definition is registered under the requested key."""

    code = "JOB_NOT_FOUND"

    def __init__(self, job_key: str):
        super().__init__(f"Job not found: {job_key}")
        self.job_key = job_key


class InvalidRunStatusError(LedgerError, ValueError):
    """A run was asked to finish with something other than a terminal status."""

    code = "INVALID_STATUS"

    def __init__(self, status: str):
        super().__init__(f"Invalid terminal status: {status!r}")
        self.status = status


class InvalidInputError(LedgerError, TypeError):
    """A job input contains something that has no JSON representation."""

    code = "INVALID_INPUT"
