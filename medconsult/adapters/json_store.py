"""
File-backed consultation store.

Keeps the in-memory store's conflict rule and writes the full set of
consultations to a JSON file on every change. Several processes may share the
file: each operation holds a lock file and reloads the document before it
checks or writes, so one process never overwrites another's bookings. The
file is replaced atomically, and the in-memory state only changes once the
write succeeded.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List

from filelock import FileLock, Timeout
from pydantic import ValidationError

from ..domain.exceptions import StoreUnavailableError
from ..domain.models import Consultation
from .memory_store import InMemoryConsultationStore
from .records import ConsultationRecord

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10


class JsonConsultationStore(InMemoryConsultationStore):
    """Consultation store persisted to a single JSON document."""

    def __init__(self, path: Path, lock_timeout: float = LOCK_TIMEOUT_SECONDS):
        self.path = path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not create {path.parent}: {exc}") from exc
        self._file_lock = FileLock(str(path) + ".lock", timeout=lock_timeout)
        super().__init__(self._load())

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            try:
                self._file_lock.acquire()
            except Timeout as exc:
                raise StoreUnavailableError(f"Timed out waiting for lock on {self.path}") from exc
            try:
                self._consultations = {c.id: c for c in self._load()}
                yield
            finally:
                self._file_lock.release()

    def _load(self) -> List[Consultation]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not read {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StoreUnavailableError(f"Corrupt consultation file {self.path}: {exc}") from exc

        consultations: List[Consultation] = []
        for item in raw.get("consultations", []):
            try:
                consultations.append(ConsultationRecord(**item).to_domain())
            except (ValidationError, ValueError) as exc:
                logger.warning("Skipping unreadable consultation in %s: %s", self.path, exc)
        return consultations

    def _persist(self, consultations: Dict[str, Consultation]) -> None:
        payload = {
            "consultations": [
                ConsultationRecord.from_domain(c).model_dump(mode="json", by_alias=True)
                for c in consultations.values()
            ]
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not write {self.path}: {exc}") from exc
