"""
DataCore - snapshot loading and saving for the timeline store.

A project directory holds one YAML snapshot of the whole forest plus the
assignable member list. Loading validates the document against the schema
generated from the models, checks its schema version and rebuilds the
store's indexes; saving writes the snapshot atomically.
"""
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from timelinetm.api import TimelineAPI
from timelinetm.logs import get_logger
from timelinetm.models import Member, TimelineSnapshot
from timelinetm.recovery import CorruptionError, FileOperationError
from timelinetm.service import TimelineManager
from timelinetm.store import TimelineStore
from .io import atomic_write, load_yaml_file, DATA_YAML
from .validate import check_schema_version, schema_errors

log = get_logger("data")

class TimelineContext:
    """An open snapshot: the store, a manager and an API over it."""

    def __init__(self, snapshot_path: Path, store: TimelineStore):
        self.snapshot_path = snapshot_path
        self.store = store
        self.manager = TimelineManager(store)
        self.api = TimelineAPI(self.manager)
        self.dirty = False

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - save changes unless the block failed."""
        if exc_type is None and self.dirty:
            self.save_all()

    def mark_dirty(self):
        self.dirty = True

    def save_all(self):
        DataCore.save_store(self.store, self.snapshot_path)
        self.dirty = False

class DataCore:
    DEFAULT_DATA_DIR = Path(".tltm")
    SNAPSHOT_FILENAME = "timelines.yml"

    @classmethod
    def data_dir(cls) -> Path:
        override = os.getenv("TIMELINETM_DATA_DIR", "")
        return Path(override) if override else cls.DEFAULT_DATA_DIR

    @classmethod
    def snapshot_path(cls, data_dir: Optional[Union[Path, str]] = None) -> Path:
        return Path(data_dir or cls.data_dir()) / cls.SNAPSHOT_FILENAME

    @classmethod
    def init(cls, data_dir: Optional[Union[Path, str]] = None, members: Iterable[Member] = ()) -> Path:
        """
        Create a project directory holding an empty snapshot.

        Raises:
            FileOperationError: if a snapshot already exists there.
        """
        path = cls.snapshot_path(data_dir)
        if path.exists():
            raise FileOperationError(f"Snapshot already exists: {path}")
        cls.save_store(TimelineStore(members=members), path)
        log.info(f"Initialized timeline snapshot at {path}")
        return path

    @classmethod
    def load_snapshot(cls, path: Union[Path, str]) -> TimelineSnapshot:
        """
        Read and validate a snapshot file.

        Raises:
            FileOperationError: if the file is missing or unreadable.
            CorruptionError: if the document fails schema or model validation.
            MigrationNeededError: if the snapshot was written by a newer schema.
        """
        path = Path(path)
        data = load_yaml_file(path)
        if data is None:
            raise FileOperationError(f"No snapshot at {path}; run 'tltm init' first")

        errors = schema_errors(data)
        if errors:
            for error in errors:
                log.error(f"{path.name}: {error}")
            raise CorruptionError(f"{path} failed schema validation: {errors[0]}")

        check_schema_version(data["schemaVersion"])

        try:
            return TimelineSnapshot.model_validate(data)
        except PydanticValidationError as e:
            raise CorruptionError(f"{path} holds inconsistent data: {e}") from e

    @classmethod
    def load_store(cls, path: Optional[Union[Path, str]] = None) -> TimelineStore:
        path = Path(path) if path else cls.snapshot_path()
        snapshot = cls.load_snapshot(path)
        store = TimelineStore(snapshot.timelines, snapshot.members)
        log.debug(f"Loaded {len(snapshot.timelines)} timeline(s) from {path}")
        return store

    @classmethod
    def save_store(cls, store: TimelineStore, path: Optional[Union[Path, str]] = None):
        path = Path(path) if path else cls.snapshot_path()
        atomic_write(DATA_YAML, path, store.snapshot().to_dict(), create_dirs=True)
        log.debug(f"Saved snapshot to {path}")

    @classmethod
    def open(cls, data_dir: Optional[Union[Path, str]] = None) -> TimelineContext:
        path = cls.snapshot_path(data_dir)
        return TimelineContext(path, cls.load_store(path))
