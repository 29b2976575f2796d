from sqlmodel import select
from runledger.core.database import Store
from runledger.models import Artifact
from runledger.services.workspace import WorkspaceService, RESERVED_DIR

ARTIFACTS_DIR = f"{RESERVED_DIR}/artifacts"

class ArtifactsService:
    """Stores job output blobs under a run-scoped directory and indexes their provenance.

    Writes are file first, index row second. A crash in between leaves a file
    without an index row; nothing reconciles that, the maintenance delete is
    the only cleanup path.
    """
    def __init__(self, store: Store, workspace: WorkspaceService):
        self.store = store
        self.workspace = workspace

    @staticmethod
    def artifact_rel_path(run_id: str, path: str) -> str:
        return f"{ARTIFACTS_DIR}/{run_id}/{path}"

    def write_artifact(
        self,
        run_id: str,
        trace_id: str,
        path: str,
        content: str,
        job_key: str = "",
        input_hash: str = ""
    ) -> Artifact:
        """Writes ``content`` to ``<artifacts>/<run_id>/<path>`` and records it.

        Args:
            run_id: Owning run; also the directory namespace.
            trace_id: Trace id of the owning run.
            path: Run-relative path chosen by the job.
            content: Text content of the artifact.
            job_key: Key of the job that produced it.
            input_hash: Fingerprint of the job's input.

        Returns:
            The persisted artifact record.
        """
        # Traversal check and file write happen before the index insert
        self.workspace.write_text(self.artifact_rel_path(run_id, path), content)

        artifact = Artifact(
            run_id=run_id,
            trace_id=trace_id or "",
            path=path,
            job_key=job_key,
            input_hash=input_hash,
        )
        with self.store.session() as session:
            session.add(artifact)
            session.commit()
        return artifact

    def list_artifacts(self, run_id: str) -> list[Artifact]:
        query = select(Artifact).where(Artifact.run_id == run_id).order_by(Artifact.seq)
        with self.store.session() as session:
            return list(session.exec(query).all())

    def read_artifact(self, run_id: str, path: str) -> str:
        return self.workspace.read_text(self.artifact_rel_path(run_id, path))
