from pathlib import Path
from runledger.utils.path import resolve_within_root

RESERVED_DIR = ".runledger"

class WorkspaceService:
    """Sandboxes file I/O to a single workspace root.

    This is the only sanctioned path to the filesystem for job bodies and for
    artifact storage. Every relative path goes through ``resolve`` first, so a
    traversal attempt fails before any read or write happens.
    """
    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def reserved_dir(self) -> Path:
        return self._root / RESERVED_DIR

    def init_workspace(self) -> None:
        """Idempotently creates the workspace's reserved subdirectory."""
        self.reserved_dir.mkdir(parents=True, exist_ok=True)

    def resolve(self, rel_path: str) -> Path:
        return resolve_within_root(self._root, rel_path)

    def read_text(self, rel_path: str) -> str:
        return self.resolve(rel_path).read_text(encoding="utf-8")

    def write_text(self, rel_path: str, content: str) -> None:
        """Writes a text file, creating parent directories as needed."""
        path = self.resolve(rel_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def exists(self, rel_path: str) -> bool:
        return self.resolve(rel_path).exists()

    def mkdirp(self, rel_dir: str) -> None:
        self.resolve(rel_dir).mkdir(parents=True, exist_ok=True)
