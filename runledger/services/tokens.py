import json
import logging
from pathlib import Path
from typing import Any
from pydantic import BaseModel, Field
from runledger.core.errors import PathTraversalError
from runledger.services.workspace import WorkspaceService

logger = logging.getLogger(__name__)

DEFAULT_TOKENS_PATH = "tokens/tokens.json"


class TokenDiff(BaseModel):
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    changed: list[str] = Field(default_factory=list)


def resolve_tokens_path(workspace_root: str | Path, tokens_path: str | Path | None) -> str:
    """Normalizes a configured tokens path to a workspace-relative one.

    Absolute paths are accepted only when they point inside the workspace.
    """
    if not tokens_path:
        return DEFAULT_TOKENS_PATH
    candidate = Path(tokens_path)
    if candidate.is_absolute():
        try:
            return candidate.resolve().relative_to(Path(workspace_root).resolve()).as_posix()
        except ValueError:
            raise PathTraversalError(str(tokens_path))
    return candidate.as_posix()


def _shallow_equal(a: Any, b: Any) -> bool:
    if a == b:
        return True
    if not isinstance(a, dict) or not isinstance(b, dict):
        return False
    if a.keys() != b.keys():
        return False
    return all(a[k] == b[k] for k in a)


class TokensService:
    """Loads, saves and diffs the workspace's design-token document."""
    def __init__(self, workspace: WorkspaceService, tokens_path: str = DEFAULT_TOKENS_PATH):
        self.workspace = workspace
        self.tokens_path = tokens_path

    def load_tokens(self) -> Any:
        """Returns the parsed tokens file, or ``{}`` when it is missing or unreadable."""
        try:
            raw = self.workspace.read_text(self.tokens_path)
        except FileNotFoundError:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unparsable tokens file {self.tokens_path}: {e}")
            return {}

    def save_tokens(self, tokens: Any) -> None:
        self.workspace.write_text(self.tokens_path, json.dumps(tokens, indent=2))

    @staticmethod
    def diff_tokens(a: Any, b: Any) -> TokenDiff:
        """Compares two token documents by top-level key."""
        a_map = a if isinstance(a, dict) else {}
        b_map = b if isinstance(b, dict) else {}
        diff = TokenDiff()
        for key in b_map:
            if key not in a_map:
                diff.added.append(key)
            elif not _shallow_equal(a_map[key], b_map[key]):
                diff.changed.append(key)
        for key in a_map:
            if key not in b_map:
                diff.removed.append(key)
        return diff
