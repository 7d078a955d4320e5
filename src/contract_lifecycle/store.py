"""Durable deployment record store for contract-lifecycle library."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from .constants import RECORD_JSON_FORMAT
from .exceptions import CorruptRecordError, RecordConflictError, RecordNotFoundError
from .parsers import read_record_file, serialize_record
from .paths import get_default_records_dir, get_record_path, split_record_filename
from .types import DeploymentMode, DeploymentRecord

logger = logging.getLogger(__name__)


def _default_file_mode() -> int:
    """Mode a plain open() would create a file with under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class RecordStore:
    """Maps (network, contract) pairs to deployment records, one JSON file per pair."""

    def __init__(
        self,
        records_dir: Optional[Union[Path, str]] = None,
        legacy_mode: DeploymentMode = DeploymentMode.DIRECT,
    ):
        """
        Initialize the record store.

        Args:
            records_dir: Directory holding record files
                         If None, uses ./deployments
            legacy_mode: Mode assumed when reading legacy records that carry
                         no implementation address
        """
        if records_dir is None:
            records_dir = get_default_records_dir()
        self.records_dir = Path(records_dir).absolute()
        self.legacy_mode = legacy_mode

    def path_for(self, network: str, contract: str) -> Path:
        """
        Get the file backing a (network, contract) pair.

        Raises:
            ValueError: If the pair is not a valid record key
        """
        return get_record_path(network, contract, self.records_dir)

    def exists(self, network: str, contract: str) -> bool:
        """
        Check if a record is stored for a (network, contract) pair.

        Args:
            network: Network name
            contract: Contract name

        Returns:
            True if a record file exists, False otherwise
        """
        return self.path_for(network, contract).exists()

    def load(self, network: str, contract: str) -> DeploymentRecord:
        """
        Read the record for a (network, contract) pair.

        Args:
            network: Network name
            contract: Contract name

        Returns:
            DeploymentRecord

        Raises:
            RecordNotFoundError: If no record is stored for the pair
            CorruptRecordError: If the stored record is incomplete or belongs
                                to a different pair
        """
        path = self.path_for(network, contract)
        try:
            record = read_record_file(path, legacy_mode=self.legacy_mode)
        except FileNotFoundError as e:
            raise RecordNotFoundError(
                f"No deployment record for '{contract}' on network '{network}'"
            ) from e

        if (record.network, record.contract) != (network, contract):
            raise CorruptRecordError(
                f"Deployment record {path} describes '{record.contract}' on "
                f"'{record.network}', expected '{contract}' on '{network}'"
            )
        return record

    def save(self, record: DeploymentRecord, expected: Optional[DeploymentRecord] = None) -> Path:
        """
        Write or overwrite the record for its (network, contract) pair.

        The document is written to a temporary file in the records directory
        and moved into place, so readers see either the old or the new record.

        Args:
            record: Record to persist
            expected: If given, the record currently stored must equal this one

        Returns:
            Path the record was written to

        Raises:
            RecordConflictError: If ``expected`` no longer matches the stored record
            OSError: If the file cannot be written
        """
        path = self.path_for(record.network, record.contract)
        path.parent.mkdir(parents=True, exist_ok=True)

        if expected is not None:
            self._check_unchanged(record, expected)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(serialize_record(record), f, **RECORD_JSON_FORMAT)
                f.write("\n")
                # mkstemp creates files as 0600
                os.fchmod(f.fileno(), _default_file_mode())
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(
            "Saved %s record for %s on %s to %s",
            record.mode.value,
            record.contract,
            record.network,
            path,
        )
        return path

    def _check_unchanged(self, record: DeploymentRecord, expected: DeploymentRecord) -> None:
        try:
            current = self.load(record.network, record.contract)
        except (RecordNotFoundError, CorruptRecordError):
            current = None

        if current != expected:
            raise RecordConflictError(
                f"Deployment record for '{record.contract}' on '{record.network}' "
                "changed while the operation was in progress"
            )

    def records(self, network: Optional[str] = None) -> List[DeploymentRecord]:
        """
        Get all stored records, sorted by (network, contract).

        Args:
            network: Only return records for this network

        Returns:
            List of DeploymentRecord objects

        Raises:
            CorruptRecordError: If any matching record file is invalid
        """
        if not self.records_dir.exists():
            return []

        result = []
        for record_file in sorted(self.records_dir.glob("*.json")):
            try:
                file_network, file_contract = split_record_filename(record_file)
            except ValueError:
                # Not a record file
                continue
            if network is not None and file_network != network:
                continue
            result.append(self.load(file_network, file_contract))

        result.sort(key=lambda r: (r.network, r.contract))
        return result
