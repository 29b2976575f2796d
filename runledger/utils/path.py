from pathlib import Path, PurePath
from runledger.core.errors import PathTraversalError

def resolve_within_root(root: str | Path, rel_path: str) -> Path:
    """
    Resolves a workspace-relative path to an absolute one, provided that:
    1. No segment of the relative path is a parent reference ('..').
    2. The resolved absolute path stays strictly within the root jail.

    Raises PathTraversalError otherwise; no filesystem I/O happens before
    both checks pass.
    """
    rel = str(rel_path).replace("\\", "/")
    if ".." in PurePath(rel).parts:
        raise PathTraversalError(rel_path)

    abs_root = Path(root).resolve()
    abs_path = (abs_root / rel).resolve()

    # Security: Enforce jail (also catches absolute inputs and symlinks out)
    if not abs_path.is_relative_to(abs_root):
        raise PathTraversalError(rel_path)
    return abs_path
