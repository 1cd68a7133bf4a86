"""JSON snapshot file persistence for Bill Splitter."""

import json
import logging
from pathlib import Path
from typing import Any

from .exceptions import StorageError
from .store import LedgerStore

logger = logging.getLogger(__name__)


class SnapshotFile:
    """A JSON file holding a persisted ledger snapshot."""

    def __init__(self, path: Path):
        """Initialize with the file location."""
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Any:
        """Read and decode the raw snapshot data."""
        try:
            with self.path.open(encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Invalid JSON format in {self.path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Error reading {self.path}: {e}") from e

    def load(self, store: LedgerStore) -> None:
        """
        Load the file into a store.

        Raises:
            StorageError: If the file cannot be read or is not JSON
            SnapshotImportError: If the data is not a valid snapshot; the
                store is left unchanged
        """
        data = self.read()
        store.import_data(data)
        logger.info(f"Loaded ledger from {self.path}")

    def save(self, store: LedgerStore) -> None:
        """Write the store's snapshot to the file, creating directories."""
        data = store.export_data()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
        except OSError as e:
            raise StorageError(f"Error writing {self.path}: {e}") from e

        logger.info(f"Saved ledger to {self.path}")
