from typing import Dict, List

from jsonschema import Draft202012Validator
from packaging.version import InvalidVersion, Version

from timelinetm.logs import get_logger
from timelinetm.models import TimelineSnapshot
from timelinetm.recovery import CorruptionError, MigrationNeededError
from timelinetm.version import APP_SCHEMA_VERSION

log = get_logger("data.validate")

def snapshot_schema() -> Dict:
    """JSON schema of the snapshot document, generated from the pydantic model."""
    schema = TimelineSnapshot.model_json_schema(by_alias=True)
    schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
    return schema

def schema_errors(data: Dict) -> List[str]:
    """
    Validate a loaded snapshot document against the snapshot schema.

    Returns:
        Human readable error messages; empty when the document is valid.
    """
    validator = Draft202012Validator(snapshot_schema())
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        where = "/".join(str(part) for part in error.path) or "<root>"
        errors.append(f"{where}: {error.message}")
    return errors

def check_schema_version(snapshot_version: str, app_version: str = APP_SCHEMA_VERSION) -> bool:
    """
    Compare a snapshot's schema version with the application's.

    Returns:
        True when the versions match, False when the snapshot is older
        (it is loaded as is, there are no migrations yet).

    Raises:
        MigrationNeededError: if the snapshot is newer than the application.
        CorruptionError: if the version string cannot be parsed.
    """
    try:
        snapshot = Version(snapshot_version)
        app = Version(app_version)
    except InvalidVersion as e:
        raise CorruptionError(f"Invalid schema version: {snapshot_version}") from e

    if snapshot > app:
        raise MigrationNeededError(
            f"Snapshot schema {snapshot_version} is newer than this application ({app_version}); upgrade timelinetm")
    if snapshot < app:
        log.warning(f"Snapshot schema {snapshot_version} is older than {app_version}; loading as is")
        return False
    return True
