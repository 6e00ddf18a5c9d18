import tempfile, yaml, json, os
from datetime import date, datetime
from typing import Union, Dict, Any
from pathlib import Path
from timelinetm.recovery import FileOperationError, FatalError, CorruptionError
from timelinetm.logs import get_logger

log = get_logger("io")

DATA_YAML = 0
DATA_JSON = 1

def _cleanup(temp_path):
    if temp_path is not None and os.path.exists(temp_path):
        try:
            os.unlink(temp_path)
            log.debug(f"Cleaned up temporary file: {temp_path}")
        except OSError as cleanup_error:
            log.warning(f"Could not clean up temp file {temp_path}: {cleanup_error}")

def _create_dirs(file_path : Path):
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
    except (OSError, PermissionError) as e:
        error_msg = f"Cannot create directory {file_path.parent}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def atomic_write(data_type : int, file_path : Union[Path, str], data : Dict[str, Any], create_dirs : bool = False):
    """
    Serialize and save data to a YAML or JSON file using atomic updates.
    """
    file_path = Path(file_path)
    temp_path = None

    try:
        if create_dirs:
            _create_dirs(file_path)

        # Temporary file in the same directory as the target so os.replace stays atomic
        with tempfile.NamedTemporaryFile(mode='w', encoding='utf-8', dir=file_path.parent, prefix=f".{file_path.name}.", suffix='.tmp', delete=False) as temp_file:
            temp_path = temp_file.name
            if data_type == DATA_YAML:
                yaml.safe_dump(data, temp_file, default_flow_style=False, sort_keys=False, indent=2, allow_unicode=True)
            elif data_type == DATA_JSON:
                json.dump(data, temp_file, indent=2, ensure_ascii=False)
            else:
                raise FatalError("Unsupported Data Format")
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.replace(temp_path, file_path)
        log.debug(f"Successfully saved file: {file_path}")
        return True

    except FileOperationError:
        raise

    except (yaml.YAMLError, TypeError, ValueError) as e:
        _cleanup(temp_path)
        error_msg = (f"Data serialization failed for {file_path}. "
                    f"In-memory data may be corrupt or contain non-serializable types: {e}")
        log.critical(error_msg)
        raise FatalError(error_msg) from e

    except (IOError, OSError) as e:
        _cleanup(temp_path)
        error_msg = f"I/O error saving file {file_path}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def _stringify_dates(value):
    """YAML parses bare dates and timestamps; the schema expects ISO strings."""
    if isinstance(value, dict):
        return {k: _stringify_dates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_stringify_dates(v) for v in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value

def load_yaml_file(file_path : Union[Path, str]) -> Union[None, Dict]:
    """
    Load and parse a YAML file.

    Args:
        file_path: Path to the YAML file

    Returns:
        Parsed data as dict with dates as ISO strings, or None if the file doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        return None

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

    except yaml.YAMLError as e:
        # YAML syntax errors are fatal (corrupted file)
        raise CorruptionError(f"YAML syntax error in {file_path}: {e}") from e
    except (IOError, OSError) as e:
        raise FileOperationError(f"Failed to read file {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise CorruptionError(f"File {file_path} contains invalid data structure")

    return _stringify_dates(data)
