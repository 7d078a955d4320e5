"""Per-network configuration loading for contract-lifecycle library."""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .constants import NETWORKS_FILE_ENV
from .exceptions import ConfigError, NetworkNotConfiguredError
from .paths import get_default_networks_file
from .types import NetworkConfig

_OPTIONAL_FIELDS = {
    "confirmations": int,
    "timeout": float,
    "receipt_timeout": float,
    "poll_interval": float,
}
_KNOWN_FIELDS = {
    "endpoint",
    "endpoint_env",
    "network_id",
    "credentials",
    "credentials_env",
    *_OPTIONAL_FIELDS,
}


class _UniqueKeyLoader(yaml.SafeLoader):
    """Safe YAML loader that refuses mappings with repeated keys."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            try:
                duplicate = key in seen
            except TypeError as e:
                raise yaml.constructor.ConstructorError(
                    None, None, f"unhashable key {key!r}", key_node.start_mark
                ) from e
            if duplicate:
                raise yaml.constructor.ConstructorError(
                    None, None, f"duplicate key {key!r}", key_node.start_mark
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def resolve_networks_file(path: Optional[Union[Path, str]] = None) -> Path:
    """
    Determine which network configuration file to use.

    Args:
        path: Explicit path; takes precedence when given

    Returns:
        The explicit path, else $CONTRACT_LIFECYCLE_NETWORKS, else ./networks.yml
    """
    if path is not None:
        return Path(path)
    env_path = os.environ.get(NETWORKS_FILE_ENV)
    if env_path:
        return Path(env_path)
    return get_default_networks_file()


def _load_yaml(filepath: Path) -> Any:
    """Loads a YAML file, rejecting duplicate keys."""
    try:
        with open(filepath, "r") as file:
            return yaml.load(file, Loader=_UniqueKeyLoader)
    except FileNotFoundError as e:
        raise ConfigError(f"Network configuration file not found: {filepath}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid network configuration in {filepath}: {e}") from e


def _resolve_secret_or_value(
    name: str, entry: Dict[str, Any], field: str, environ: Mapping[str, str]
) -> Any:
    """Read ``field`` inline or from the environment variable named by ``{field}_env``."""
    env_field = f"{field}_env"
    if field in entry and env_field in entry:
        raise ConfigError(f"Network '{name}' sets both '{field}' and '{env_field}'")

    if env_field in entry:
        variable = entry[env_field]
        value = environ.get(variable)
        if not value:
            raise ConfigError(f"Environment variable {variable} for network '{name}' is not set")
        return value

    value = entry.get(field)
    if value is None or value == "":
        raise ConfigError(f"Network '{name}' is missing '{field}' (or '{env_field}')")
    return value


def _parse_network(name: str, entry: Any, environ: Mapping[str, str]) -> NetworkConfig:
    if not isinstance(entry, dict):
        raise ConfigError(f"Network '{name}' must be a mapping")

    unknown = set(entry) - _KNOWN_FIELDS
    if unknown:
        raise ConfigError(f"Network '{name}' has unknown fields: {', '.join(sorted(unknown))}")

    endpoint = _resolve_secret_or_value(name, entry, "endpoint", environ)
    credentials = _resolve_secret_or_value(name, entry, "credentials", environ)

    try:
        network_id = int(entry["network_id"])
    except KeyError as e:
        raise ConfigError(f"Network '{name}' is missing 'network_id'") from e
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Network '{name}' has a non-integer 'network_id'") from e

    options: Dict[str, Any] = {}
    for field, cast in _OPTIONAL_FIELDS.items():
        if field in entry:
            try:
                options[field] = cast(entry[field])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Network '{name}' has an invalid '{field}'") from e

    return NetworkConfig(
        name=name,
        endpoint=str(endpoint),
        network_id=network_id,
        credentials=str(credentials),
        **options,
    )


def _load_networks_section(path: Optional[Union[Path, str]]) -> Dict[Any, Any]:
    filepath = resolve_networks_file(path)
    data = _load_yaml(filepath)
    if not isinstance(data, dict) or not isinstance(data.get("networks"), dict):
        raise ConfigError(f"Network configuration {filepath} has no 'networks' mapping")
    return data["networks"]


def load_network_configs(
    path: Optional[Union[Path, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, NetworkConfig]:
    """
    Load every network defined in a configuration file.

    The file holds a top-level ``networks`` mapping of network name to
    ``endpoint``/``endpoint_env``, ``network_id`` and
    ``credentials``/``credentials_env``, plus optional tuning fields.

    Args:
        path: Configuration file (see resolve_networks_file)
        environ: Environment used to resolve ``*_env`` fields (defaults to os.environ)

    Returns:
        Dictionary mapping network name -> NetworkConfig

    Raises:
        ConfigError: If the file is missing, malformed, defines a network twice,
                     or references unset environment variables
    """
    if environ is None:
        environ = os.environ

    networks = _load_networks_section(path)
    return {
        str(name): _parse_network(str(name), entry, environ) for name, entry in networks.items()
    }


def get_network_config(
    network: str,
    path: Optional[Union[Path, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> NetworkConfig:
    """
    Resolve the configuration for one network by explicit name.

    Only the requested entry is parsed, so credentials of other networks need
    not be present in the environment.

    Args:
        network: Network name
        path: Configuration file (see resolve_networks_file)
        environ: Environment used to resolve ``*_env`` fields

    Returns:
        NetworkConfig

    Raises:
        NetworkNotConfiguredError: If the file has no entry for the network
        ConfigError: If the file or the entry is invalid
    """
    if environ is None:
        environ = os.environ

    networks = {str(name): entry for name, entry in _load_networks_section(path).items()}
    if network not in networks:
        raise NetworkNotConfiguredError(
            f"Network '{network}' not found in configuration "
            f"(available: {', '.join(sorted(networks)) or 'none'})"
        )
    return _parse_network(network, networks[network], environ)
