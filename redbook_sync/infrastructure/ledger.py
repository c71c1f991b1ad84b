"""JSON-file implementation of the SyncLedger port."""

import logging
import os
from pathlib import Path
from typing import List

import pydantic

from ..application.domain import SyncLedger
from ..application.exceptions import LedgerError

from .record_models import LedgerAdapter


class JsonFileLedger(SyncLedger):
    """
    Keeps the names of fully synchronized record files in a JSON array.

    The whole array is rewritten through a temporary file and swapped into
    place on every append, so the ledger on disk is always a complete list.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.logger = logging.getLogger(self.__class__.__name__)
        self._file_names: List[str] = []

    def _persist(self):
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_bytes(LedgerAdapter.dump_json(self._file_names, indent=2))
        os.replace(tmp_path, self.path)

    def load(self) -> List[str]:
        if not self.path.exists():
            self.logger.info(f"No ledger at {self.path}; starting an empty one.")
            self._file_names = []
            self._persist()
            return []

        try:
            file_names = LedgerAdapter.validate_json(self.path.read_bytes())
        except OSError as e:
            raise LedgerError(f"Failed to read ledger {self.path}: {e}") from e
        except pydantic.ValidationError as e:
            raise LedgerError(
                f"Ledger {self.path} must be a JSON array of file names: {e}"
            ) from e

        self._file_names = file_names
        return list(file_names)

    def append(self, file_name: str):
        if file_name in self._file_names:
            return
        self._file_names.append(file_name)
        self._persist()
