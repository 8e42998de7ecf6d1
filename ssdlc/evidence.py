"""Evidence file storage.

Uploaded evidence is validated, written under
``<uploads_dir>/<project_id>/<task_id>/`` with a collision-free name, and
identified by the reference ``<project_id>/<task_id>/<filename>``. The
reference is what gets attached to a task.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from .exceptions import EvidenceNotAuthorizedError, EvidenceRejectedError, NotFoundError, StorageError
from .models import Task, format_timestamp, utcnow

logger = logging.getLogger("ssdlc.evidence")

MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_FILES = 5

ALLOWED_MIMETYPES: FrozenSet[str] = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "text/plain",
    "text/csv",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


@dataclass(slots=True)
class EvidenceUpload:
    """An evidence file received from a caller."""

    filename: str
    content: bytes
    mimetype: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(slots=True)
class StoredEvidence:
    """An evidence file written to the uploads directory."""

    original_name: str
    filename: str
    reference: str
    path: Path
    size: int
    mimetype: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "original_name": self.original_name,
            "filename": self.filename,
            "reference": self.reference,
            "size": self.size,
            "mimetype": self.mimetype,
        }


def evidence_reference(project_id: str, task_id: str, filename: str) -> str:
    return str(PurePosixPath(project_id, task_id, filename))


def secure_filename(original_name: str, now: Optional[datetime] = None) -> str:
    """Build ``<timestamp>_<8 hex>_<base><ext>`` from an uploaded file name."""
    stamp = format_timestamp(now or utcnow()).replace(":", "-").replace(".", "-")
    unique_id = uuid.uuid4().hex[:8]
    name = PurePosixPath(original_name.replace("\\", "/")).name
    suffix = PurePosixPath(name).suffix
    base = name[: len(name) - len(suffix)] if suffix else name
    return f"{stamp}_{unique_id}_{_UNSAFE_CHARS.sub('_', base)}{suffix}"


class EvidenceStore:
    """Validate, store and look up evidence files."""

    def __init__(
        self,
        uploads_dir: Path | str,
        *,
        max_file_size: int = MAX_FILE_SIZE,
        max_files: int = MAX_FILES,
        allowed_mimetypes: Iterable[str] = ALLOWED_MIMETYPES,
    ):
        self.uploads_dir = Path(uploads_dir)
        self.max_file_size = max_file_size
        self.max_files = max_files
        self.allowed_mimetypes = frozenset(allowed_mimetypes)

    def task_dir(self, project_id: str, task_id: str) -> Path:
        return self.uploads_dir / project_id / task_id

    def validate(self, uploads: List[EvidenceUpload]) -> None:
        """Reject uploads breaking the count, size or type limits."""
        if len(uploads) > self.max_files:
            raise EvidenceRejectedError(f"Too many files. Maximum {self.max_files} files per upload.")
        limit_mb = self.max_file_size // (1024 * 1024)
        for upload in uploads:
            if upload.size > self.max_file_size:
                raise EvidenceRejectedError(
                    f"File size too large. Maximum size is {limit_mb}MB per file."
                )
            if upload.mimetype not in self.allowed_mimetypes:
                raise EvidenceRejectedError(
                    "File type not allowed. Please upload images, PDFs, or common document formats."
                )

    def save(
        self,
        project_id: str,
        task_id: str,
        uploads: Iterable[EvidenceUpload],
        now: Optional[datetime] = None,
    ) -> List[StoredEvidence]:
        """Validate and write uploads; nothing is written if validation fails.

        A filesystem failure removes the files written so far and raises
        StorageError.
        """
        uploads = list(uploads)
        self.validate(uploads)

        target_dir = self.task_dir(project_id, task_id)
        stored: List[StoredEvidence] = []
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            for upload in uploads:
                filename = secure_filename(upload.filename, now)
                path = target_dir / filename
                path.write_bytes(upload.content)
                stored.append(
                    StoredEvidence(
                        original_name=upload.filename,
                        filename=filename,
                        reference=evidence_reference(project_id, task_id, filename),
                        path=path,
                        size=upload.size,
                        mimetype=upload.mimetype,
                    )
                )
        except OSError as e:
            self.discard(stored)
            raise StorageError("Failed to store evidence") from e

        logger.info(f"Stored {len(stored)} evidence file(s) for task {task_id} of project {project_id}")
        return stored

    def discard(self, stored: Iterable[StoredEvidence]) -> None:
        """Remove written files, e.g. when the task update could not be saved."""
        for item in stored:
            try:
                item.path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Error cleaning up file {item.path}: {e}")

    def resolve(self, project_id: str, task: Task, filename: str) -> Path:
        """Return the on-disk path of a file attached to the task."""
        reference = evidence_reference(project_id, task.task_id, filename)
        if reference not in task.evidence_files:
            raise EvidenceNotAuthorizedError("File not authorized for this task")
        path = self.task_dir(project_id, task.task_id) / filename
        if not path.is_file():
            raise NotFoundError("File not found")
        return path
