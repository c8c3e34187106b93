import json
import shutil
import logging
import joblib
import numpy as np
from pathlib import Path
from typing import Any, Dict, Optional

from utils.exceptions import StorageError
from utils import constants


class NumpyEncoder(json.JSONEncoder):
    """
    Helper to serialize NumPy types in metadata JSONs.
    Prevents 'Object of type int64 is not JSON serializable' errors.
    """
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        return json.JSONEncoder.default(self, obj)


class ModelStorage:
    """
    Persists model state under ``<base_dir>/<namespace>/``.

    Namespaces may be nested with '/' (e.g. ``"housing/delegate"``); deleting a
    namespace removes everything below it.
    """

    def __init__(self, config: dict, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.base_dir = Path(config.get('storage', {}).get('base_dir', constants.DEFAULT_STORAGE_DIR))

    def namespace_dir(self, namespace: str) -> Path:
        if not namespace or namespace.startswith('/') or '..' in Path(namespace).parts:
            raise StorageError(f"Invalid storage namespace: {namespace!r}")
        return self.base_dir / namespace

    def exists(self, namespace: str, key: Optional[str] = None) -> bool:
        path = self.namespace_dir(namespace)
        return (path / key).exists() if key else path.is_dir()

    def save_object(self, namespace: str, key: str, obj: Any) -> Path:
        path = self.namespace_dir(namespace) / key
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            joblib.dump(obj, path)
        except Exception as e:
            raise StorageError(f"Failed to save {key} in '{namespace}': {e}") from e
        self.logger.debug(f"Saved {key} to {path}")
        return path

    def load_object(self, namespace: str, key: str) -> Any:
        path = self.namespace_dir(namespace) / key
        if not path.exists():
            raise StorageError(f"No persisted state '{key}' in namespace '{namespace}'")
        try:
            return joblib.load(path)
        except Exception as e:
            raise StorageError(f"Failed to load {key} from '{namespace}': {e}") from e

    def save_json(self, namespace: str, key: str, payload: Dict[str, Any]) -> Path:
        path = self.namespace_dir(namespace) / key
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(payload, f, indent=2, cls=NumpyEncoder)
        return path

    def load_json(self, namespace: str, key: str) -> Dict[str, Any]:
        path = self.namespace_dir(namespace) / key
        if not path.exists():
            raise StorageError(f"No persisted metadata '{key}' in namespace '{namespace}'")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Invalid JSON in {path}: {str(e)}") from e

    def delete_namespace(self, namespace: str) -> None:
        """Removes the namespace directory and everything below it."""
        path = self.namespace_dir(namespace)
        if path.exists():
            shutil.rmtree(path)
            self.logger.debug(f"Storage namespace '{namespace}' cleared.")
