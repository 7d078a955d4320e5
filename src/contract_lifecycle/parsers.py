"""Deployment record parsers for contract-lifecycle library."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from .constants import RECORD_FIELDS
from .exceptions import CorruptRecordError
from .types import DeploymentMode, DeploymentRecord


class RecordFormat(Enum):
    """
    Deployment record file format types.

    - CURRENT: Records written by this library (explicit ``mode`` field)
    - LEGACY: Records written by the original Hardhat scripts
      ({contract, address, network, baseURI}, no mode)
    """

    CURRENT = "current"
    LEGACY = "legacy"


def detect_record_format(data: Dict[str, Any]) -> RecordFormat:
    """
    Detect which format a record document was written in.

    Args:
        data: Decoded record document

    Returns:
        RecordFormat.CURRENT if the document has a ``mode`` field,
        RecordFormat.LEGACY otherwise
    """
    if "mode" in data:
        return RecordFormat.CURRENT
    return RecordFormat.LEGACY


def _require_string(data: Dict[str, Any], key: str, source: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise CorruptRecordError(f"Missing or invalid '{key}' in deployment record {source}")
    return value


def _parse_metadata(data: Dict[str, Any], source: str) -> Dict[str, str]:
    metadata = data.get("metadata", {})
    if not isinstance(metadata, dict):
        raise CorruptRecordError(f"Invalid 'metadata' in deployment record {source}")
    return metadata


def _parse_current(data: Dict[str, Any], source: str) -> DeploymentRecord:
    try:
        mode = DeploymentMode(data["mode"])
    except ValueError as e:
        raise CorruptRecordError(
            f"Unknown mode {data['mode']!r} in deployment record {source}"
        ) from e

    return DeploymentRecord(
        contract=_require_string(data, "contract", source),
        network=_require_string(data, "network", source),
        mode=mode,
        address=_require_string(data, "address", source),
        implementation_address=data.get("implementationAddress"),
        metadata=_parse_metadata(data, source),
    )


def _parse_legacy(
    data: Dict[str, Any], source: str, legacy_mode: DeploymentMode
) -> DeploymentRecord:
    implementation_address = data.get("implementationAddress")
    mode = DeploymentMode.PROXIED if implementation_address else legacy_mode

    # Fold extra top-level strings (e.g. baseURI) into metadata
    metadata = dict(_parse_metadata(data, source))
    for key, value in data.items():
        if key not in RECORD_FIELDS and isinstance(value, str):
            metadata.setdefault(key, value)

    return DeploymentRecord(
        contract=_require_string(data, "contract", source),
        network=_require_string(data, "network", source),
        mode=mode,
        address=_require_string(data, "address", source),
        implementation_address=implementation_address,
        metadata=metadata,
        from_legacy=True,
    )


def parse_record(
    data: Any,
    source: str = "<memory>",
    legacy_mode: DeploymentMode = DeploymentMode.DIRECT,
) -> DeploymentRecord:
    """
    Build a DeploymentRecord from a decoded record document.

    Args:
        data: Decoded JSON document
        source: Description of where the document came from (for error messages)
        legacy_mode: Mode assumed for legacy records without an implementation address.
            Legacy proxied records may leave the implementation unknown

    Returns:
        DeploymentRecord

    Raises:
        CorruptRecordError: If the document is not a complete, valid record
    """
    if not isinstance(data, dict):
        raise CorruptRecordError(f"Deployment record {source} is not a JSON object")

    match detect_record_format(data):
        case RecordFormat.CURRENT:
            return _parse_current(data, source)
        case RecordFormat.LEGACY:
            return _parse_legacy(data, source, legacy_mode)
        case _:
            # Unreachable but exhaustive
            raise CorruptRecordError(f"Unrecognised deployment record {source}")


def read_record_file(
    file_path: Path, legacy_mode: DeploymentMode = DeploymentMode.DIRECT
) -> DeploymentRecord:
    """
    Parse a deployment record file.

    Args:
        file_path: Path to {network}_{contract}.json
        legacy_mode: Mode assumed for legacy records without an implementation address

    Returns:
        DeploymentRecord

    Raises:
        FileNotFoundError: If the file does not exist
        CorruptRecordError: If the file is not valid JSON or not a complete record
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptRecordError(f"Deployment record {file_path} is not valid JSON: {e}") from e

    return parse_record(data, source=str(file_path), legacy_mode=legacy_mode)


def serialize_record(record: DeploymentRecord) -> Dict[str, Any]:
    """
    Convert a DeploymentRecord to its persisted document.

    Args:
        record: Record to serialize

    Returns:
        Dictionary with fields contract, address, network, mode,
        implementationAddress (Proxied only) and metadata
    """
    data: Dict[str, Any] = {
        "contract": record.contract,
        "address": record.address,
        "network": record.network,
        "mode": record.mode.value,
    }
    if record.implementation_address is not None:
        data["implementationAddress"] = record.implementation_address
    data["metadata"] = dict(record.metadata)
    return data
