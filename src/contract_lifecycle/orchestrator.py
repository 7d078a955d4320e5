"""Deployment lifecycle orchestration for contract-lifecycle library."""

import dataclasses
import logging
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from .deployer import ChainDeployer
from .exceptions import (
    DeployFailedError,
    DeploymentExistsError,
    InvalidTransitionError,
    NoExistingDeploymentError,
    RecordConflictError,
    RecordNotFoundError,
    StoreWriteFailedError,
    UpgradeFailedError,
)
from .store import RecordStore
from .types import DeploymentMode, DeploymentRecord

logger = logging.getLogger(__name__)

DeployerFactory = Callable[[str], ChainDeployer]


class LifecycleState(Enum):
    """Where a (network, contract) pair is in its lifecycle."""

    NO_RECORD = "no-record"
    DIRECT_DEPLOYED = "direct-deployed"
    PROXY_DEPLOYED = "proxy-deployed"


class RedeployPolicy(Enum):
    """What a deploy does when a record already exists for its key."""

    OVERWRITE = "overwrite"  # Fresh deployment replaces the record
    REJECT = "reject"  # Deploy fails before touching the chain


def _validate_metadata(metadata: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    result = dict(metadata or {})
    for key, value in result.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValueError(f"Metadata must map strings to strings, got {key!r}: {value!r}")
    return result


class LifecycleOrchestrator:
    """
    Coordinates deployments and upgrades of one contract per network.

    State machine per (network, contract):

    - NO_RECORD --deploy(DIRECT)--> DIRECT_DEPLOYED
    - NO_RECORD --deploy(PROXIED)--> PROXY_DEPLOYED
    - PROXY_DEPLOYED --upgrade--> PROXY_DEPLOYED (same proxy, new implementation)
    - DIRECT_DEPLOYED --upgrade--> InvalidTransitionError
    - any deployed state --deploy--> fresh deployment (subject to RedeployPolicy)
    """

    def __init__(
        self,
        store: RecordStore,
        deployer_for: DeployerFactory,
        redeploy_policy: RedeployPolicy = RedeployPolicy.OVERWRITE,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Deployment record store
            deployer_for: Returns the ChainDeployer for a network name
            redeploy_policy: Behaviour of deploy when a record already exists
        """
        self.store = store
        self._deployer_for = deployer_for
        self.redeploy_policy = redeploy_policy

    def state(self, network: str, contract: str) -> LifecycleState:
        """
        Get the lifecycle state of a (network, contract) pair.

        Raises:
            CorruptRecordError: If the stored record is invalid
        """
        try:
            record = self.store.load(network, contract)
        except RecordNotFoundError:
            return LifecycleState.NO_RECORD

        if record.mode is DeploymentMode.PROXIED:
            return LifecycleState.PROXY_DEPLOYED
        return LifecycleState.DIRECT_DEPLOYED

    def deploy(
        self,
        network: str,
        contract: str,
        mode: Union[DeploymentMode, str],
        args: Sequence[Any] = (),
        metadata: Optional[Mapping[str, str]] = None,
        artifact: Optional[str] = None,
    ) -> DeploymentRecord:
        """
        Create a brand-new on-chain presence and record it.

        Args:
            network: Network name
            contract: Contract name (record key)
            mode: DeploymentMode.DIRECT or DeploymentMode.PROXIED
            args: Constructor (Direct) or initializer (Proxied) arguments
            metadata: String mapping stored with the record, e.g. {"baseURI": ...}
            artifact: Artifact to deploy (defaults to contract)

        Returns:
            The saved DeploymentRecord

        Raises:
            DeploymentExistsError: If a record exists and the policy is REJECT
            DeployFailedError: If the chain deployment failed (store untouched)
            StoreWriteFailedError: If the record could not be saved after deploying
            ValueError: If the key, mode or metadata is invalid
        """
        self.store.path_for(network, contract)
        mode = DeploymentMode(mode)
        metadata = _validate_metadata(metadata)
        artifact = artifact or contract

        if self.store.exists(network, contract):
            if self.redeploy_policy is RedeployPolicy.REJECT:
                raise DeploymentExistsError(
                    f"'{contract}' is already deployed on '{network}' and redeploys are rejected"
                )
            logger.warning(
                "Redeploying %s on %s; the existing record will be replaced", contract, network
            )

        deployer = self._deployer_for(network)
        logger.info("Deploying %s on %s (%s)", contract, network, mode.value)
        try:
            if mode is DeploymentMode.PROXIED:
                deployment = deployer.deploy_proxied(artifact, args)
                record = DeploymentRecord(
                    contract=contract,
                    network=network,
                    mode=mode,
                    address=deployment.proxy_address,
                    implementation_address=deployment.implementation_address,
                    metadata=metadata,
                )
                orphaned = {
                    "proxy": deployment.proxy_address,
                    "implementation": deployment.implementation_address,
                }
            else:
                address = deployer.deploy_direct(artifact, args)
                record = DeploymentRecord(
                    contract=contract,
                    network=network,
                    mode=mode,
                    address=address,
                    metadata=metadata,
                )
                orphaned = {"contract": address}
        except DeployFailedError as e:
            logger.error("Deployment of %s on %s failed: %s", contract, network, e)
            raise

        self._save(record, orphaned)
        logger.info("Deployed %s on %s at %s", contract, network, record.address)
        return record

    def upgrade(
        self, network: str, contract: str, new_artifact: Optional[str] = None
    ) -> DeploymentRecord:
        """
        Repoint an existing proxy to a newly deployed implementation.

        Args:
            network: Network name
            contract: Contract name (record key)
            new_artifact: Artifact of the new implementation (defaults to contract)

        Returns:
            The saved DeploymentRecord (same address, new implementation)

        Raises:
            NoExistingDeploymentError: If nothing was deployed for the pair
            InvalidTransitionError: If the existing record is not proxied
            CorruptRecordError: If the existing record is invalid
            UpgradeFailedError: If the chain upgrade failed (store untouched)
            StoreWriteFailedError: If the record could not be saved after upgrading
        """
        new_artifact = new_artifact or contract

        try:
            current = self.store.load(network, contract)
        except RecordNotFoundError as e:
            raise NoExistingDeploymentError(
                f"Cannot upgrade '{contract}' on '{network}': it was never deployed"
            ) from e

        if current.mode is not DeploymentMode.PROXIED:
            raise InvalidTransitionError(
                f"Cannot upgrade '{contract}' on '{network}': "
                f"{current.mode.value} deployments are not upgradeable"
            )

        deployer = self._deployer_for(network)
        logger.info(
            "Upgrading %s on %s (proxy %s) to %s", contract, network, current.address, new_artifact
        )
        try:
            if current.implementation_address is None:
                previous = deployer.implementation_of(current.address)
                logger.info(
                    "Legacy record for %s on %s has no implementation; proxy %s points at %s",
                    contract,
                    network,
                    current.address,
                    previous,
                )
            implementation = deployer.upgrade(current.address, new_artifact)
        except UpgradeFailedError as e:
            logger.error("Upgrade of %s on %s failed: %s", contract, network, e)
            raise

        updated = dataclasses.replace(
            current, implementation_address=implementation, from_legacy=False
        )
        self._save(updated, {"implementation": implementation}, expected=current)
        logger.info(
            "Upgraded %s on %s: proxy %s now points at %s",
            contract,
            network,
            updated.address,
            implementation,
        )
        return updated

    def _save(
        self,
        record: DeploymentRecord,
        orphaned: Dict[str, str],
        expected: Optional[DeploymentRecord] = None,
    ) -> None:
        try:
            self.store.save(record, expected=expected)
        except (OSError, RecordConflictError) as e:
            logger.critical(
                "Chain state and deployment records have diverged for %s on %s; "
                "record these addresses manually: %s (%s)",
                record.contract,
                record.network,
                orphaned,
                e,
            )
            raise StoreWriteFailedError(
                f"Failed to save deployment record for '{record.contract}' "
                f"on '{record.network}': {e}",
                network=record.network,
                contract=record.contract,
                orphaned_addresses=orphaned,
            ) from e
