"""Custom exception classes for contract-lifecycle library."""

from typing import Dict, Optional


class LifecycleError(Exception):
    """Base exception for deployment lifecycle errors."""

    pass


class RecordNotFoundError(LifecycleError, FileNotFoundError):
    """Raised when no deployment record exists for a (network, contract) pair."""

    pass


class CorruptRecordError(LifecycleError, ValueError):
    """Raised when a deployment record exists but is structurally invalid."""

    pass


class RecordConflictError(LifecycleError, RuntimeError):
    """Raised when a record changed on disk between read and write."""

    pass


class InvalidTransitionError(LifecycleError, ValueError):
    """Raised when an operation is not allowed from the record's current state."""

    pass


class NoExistingDeploymentError(InvalidTransitionError, RecordNotFoundError):
    """Raised when an upgrade is requested for a contract that was never deployed."""

    pass


class DeploymentExistsError(InvalidTransitionError):
    """Raised when a deploy would overwrite a record and redeploys are rejected."""

    pass


class ChainOperationError(LifecycleError, RuntimeError):
    """
    Base exception for failed chain operations.

    Carries every address the chain produced before the failure, so a partially
    completed operation never hides what it left behind.
    """

    def __init__(self, message: str, orphaned_addresses: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.orphaned_addresses: Dict[str, str] = dict(orphaned_addresses or {})


class DeployFailedError(ChainOperationError):
    """Raised when the chain deployer could not complete a deployment."""

    pass


class UpgradeFailedError(ChainOperationError):
    """Raised when the chain deployer could not complete an upgrade."""

    pass


class StoreWriteFailedError(LifecycleError, RuntimeError):
    """
    Raised when persisting a record fails after a successful chain operation.

    The chain and the record store have diverged: the addresses in
    ``orphaned_addresses`` exist on chain with no recorded mapping and must be
    recovered manually.
    """

    def __init__(
        self,
        message: str,
        network: str,
        contract: str,
        orphaned_addresses: Dict[str, str],
    ):
        addresses = ", ".join(f"{role}={address}" for role, address in orphaned_addresses.items())
        super().__init__(f"{message} (orphaned on-chain addresses: {addresses})")
        self.network = network
        self.contract = contract
        self.orphaned_addresses = dict(orphaned_addresses)


class ConfigError(LifecycleError, ValueError):
    """Raised when network configuration is missing or malformed."""

    pass


class NetworkNotConfiguredError(ConfigError):
    """Raised when a requested network has no configuration entry."""

    pass


class ArtifactNotFoundError(LifecycleError, FileNotFoundError):
    """Raised when a compiled contract artifact cannot be resolved by name."""

    pass


class RpcError(LifecycleError, RuntimeError):
    """Raised when the JSON-RPC endpoint fails or returns an error object."""

    pass


class RpcUnavailableError(RpcError):
    """
    Raised when the endpoint could not be reached or answered with a gateway error.

    Whether the node received the request is unknown.
    """

    pass


class TransactionRejectedError(RpcError):
    """Raised when a transaction was mined with a failed status."""

    pass
