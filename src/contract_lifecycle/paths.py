"""Path management utilities for contract-lifecycle library."""

import re
from pathlib import Path
from typing import Optional, Tuple, Union

from .constants import NETWORKS_FILENAME, RECORD_KEY_SEPARATOR, RECORDS_DIRNAME

# Network names cannot contain the key separator, so "{network}_{contract}" splits unambiguously
_NETWORK_NAME = re.compile(r"^[A-Za-z0-9.-]+$")
_CONTRACT_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


def get_default_records_dir() -> Path:
    """
    Get default deployment records directory.

    Returns:
        Path to ./deployments
    """
    return Path.cwd() / RECORDS_DIRNAME


def get_default_networks_file() -> Path:
    """
    Get default network configuration file.

    Returns:
        Path to ./networks.yml
    """
    return Path.cwd() / NETWORKS_FILENAME


def validate_key(network: str, contract: str) -> None:
    """
    Check that a (network, contract) pair can be used as a record key.

    Args:
        network: Network name
        contract: Contract name

    Raises:
        ValueError: If either name is empty, contains path separators, or
                    (for the network) contains the key separator
    """
    if not network or not _NETWORK_NAME.match(network) or network in (".", ".."):
        raise ValueError(
            f"Invalid network name {network!r}: use letters, digits, '.' and '-' only"
        )
    if not contract or not _CONTRACT_NAME.match(contract) or contract in (".", ".."):
        raise ValueError(
            f"Invalid contract name {contract!r}: use letters, digits, '_', '.' and '-' only"
        )


def get_record_path(
    network: str, contract: str, records_dir: Optional[Union[Path, str]] = None
) -> Path:
    """
    Get the record file for a (network, contract) pair.

    Args:
        network: Network name
        contract: Contract name
        records_dir: Custom records directory (defaults to ./deployments)

    Returns:
        Absolute path to {records_dir}/{network}_{contract}.json
    """
    validate_key(network, contract)

    if records_dir is None:
        records_dir = get_default_records_dir()
    else:
        records_dir = Path(records_dir).absolute()

    return records_dir / f"{network}{RECORD_KEY_SEPARATOR}{contract}.json"


def split_record_filename(path: Path) -> Tuple[str, str]:
    """
    Recover the (network, contract) key from a record filename.

    Args:
        path: Path to a record file

    Returns:
        Tuple of (network, contract)

    Raises:
        ValueError: If the filename is not a valid record key
    """
    network, separator, contract = path.stem.partition(RECORD_KEY_SEPARATOR)
    if not separator:
        raise ValueError(f"Not a deployment record filename: {path.name}")
    validate_key(network, contract)
    return network, contract
