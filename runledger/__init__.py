from .ledger import Ledger, create_ledger
from .services import JobDefinition, JobContext, CancellationToken
from .core.errors import LedgerError, PathTraversalError, JobNotFoundError, InvalidRunStatusError, InvalidInputError
from .core.hashing import stable_input_hash

__version__ = "1.0.0"
