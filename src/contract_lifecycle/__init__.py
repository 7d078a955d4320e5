"""
contract-lifecycle: deploy, proxy-deploy and upgrade smart contracts with one record per network
"""

from importlib.metadata import PackageNotFoundError, version

from .artifacts import Artifact, ArtifactSource
from .config import get_network_config, load_network_configs
from .deployer import ChainDeployer, JsonRpcChainDeployer
from .exceptions import (
    ArtifactNotFoundError,
    ConfigError,
    CorruptRecordError,
    DeployFailedError,
    DeploymentExistsError,
    InvalidTransitionError,
    LifecycleError,
    NetworkNotConfiguredError,
    NoExistingDeploymentError,
    RecordConflictError,
    RecordNotFoundError,
    RpcError,
    RpcUnavailableError,
    StoreWriteFailedError,
    TransactionRejectedError,
    UpgradeFailedError,
)
from .orchestrator import LifecycleOrchestrator, LifecycleState, RedeployPolicy
from .store import RecordStore
from .types import DeploymentMode, DeploymentRecord, NetworkConfig, ProxyDeployment

try:
    __version__ = version("contract-lifecycle")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "LifecycleOrchestrator",
    "LifecycleState",
    "RedeployPolicy",
    "RecordStore",
    "ChainDeployer",
    "JsonRpcChainDeployer",
    "Artifact",
    "ArtifactSource",
    "get_network_config",
    "load_network_configs",
    "DeploymentMode",
    "DeploymentRecord",
    "NetworkConfig",
    "ProxyDeployment",
    "LifecycleError",
    "RecordNotFoundError",
    "CorruptRecordError",
    "RecordConflictError",
    "InvalidTransitionError",
    "NoExistingDeploymentError",
    "DeploymentExistsError",
    "DeployFailedError",
    "UpgradeFailedError",
    "StoreWriteFailedError",
    "ConfigError",
    "NetworkNotConfiguredError",
    "ArtifactNotFoundError",
    "RpcError",
    "RpcUnavailableError",
    "TransactionRejectedError",
]
