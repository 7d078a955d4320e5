"""Chain interaction for contract-lifecycle library."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_account import Account
from eth_utils import (
    encode_hex,
    function_signature_to_4byte_selector,
    to_bytes,
    to_checksum_address,
)

from .artifacts import Artifact, ArtifactSource
from .constants import (
    DEFAULT_INITIALIZER,
    DEFAULT_PROXY_CONTRACT,
    DEPLOYER_VARIABLE,
    EIP1967_ADMIN_SLOT,
    EIP1967_IMPLEMENTATION_SLOT,
    PROXY_ADMIN_UPGRADE_SIGNATURE,
)
from .exceptions import (
    ArtifactNotFoundError,
    ConfigError,
    DeployFailedError,
    RpcError,
    RpcUnavailableError,
    UpgradeFailedError,
)
from .rpc import JsonRpcClient
from .types import NetworkConfig, ProxyDeployment

logger = logging.getLogger(__name__)

# Failures of a single chain step; wrapped into DeployFailedError / UpgradeFailedError
_STEP_FAILURES = (ArtifactNotFoundError, RpcError, EncodingError, ValueError, TypeError)


class ChainDeployer(ABC):
    """Performs the network side of deployments and upgrades."""

    @abstractmethod
    def deploy_direct(self, artifact: str, constructor_args: Sequence[Any] = ()) -> str:
        """
        Deploy a standalone contract instance.

        Args:
            artifact: Contract name of the compiled artifact
            constructor_args: Constructor arguments

        Returns:
            Address of the mined contract

        Raises:
            DeployFailedError: On any network or transaction failure
        """
        raise NotImplementedError

    @abstractmethod
    def deploy_proxied(
        self, artifact: str, initializer_args: Sequence[Any] = ()
    ) -> ProxyDeployment:
        """
        Deploy an implementation behind a new upgradeable proxy and initialize it.

        Args:
            artifact: Contract name of the implementation artifact
            initializer_args: Arguments passed to the initializer through the proxy

        Returns:
            ProxyDeployment with proxy and implementation addresses

        Raises:
            DeployFailedError: If either leg fails; never reports partial success
        """
        raise NotImplementedError

    @abstractmethod
    def implementation_of(self, proxy_address: str) -> str:
        """
        Read the implementation an existing proxy currently points at.

        Raises:
            UpgradeFailedError: If the address is not a reachable EIP-1967 proxy
        """
        raise NotImplementedError

    @abstractmethod
    def upgrade(self, proxy_address: str, new_artifact: str) -> str:
        """
        Deploy a new implementation and repoint an existing proxy to it.

        Args:
            proxy_address: Address of the existing proxy (never altered)
            new_artifact: Contract name of the new implementation artifact

        Returns:
            Address of the new implementation

        Raises:
            UpgradeFailedError: If the proxy is invalid or unreachable, or repointing fails
        """
        raise NotImplementedError


class JsonRpcChainDeployer(ChainDeployer):
    """
    ChainDeployer that signs transactions locally and submits them over JSON-RPC.

    Proxies are OpenZeppelin transparent proxies: the proxy constructor calls
    the initializer, and upgrades go through the ProxyAdmin found in the
    proxy's EIP-1967 admin slot.
    """

    def __init__(
        self,
        config: NetworkConfig,
        artifacts: ArtifactSource,
        client: Optional[JsonRpcClient] = None,
        proxy_contract: str = DEFAULT_PROXY_CONTRACT,
        initializer: Optional[str] = DEFAULT_INITIALIZER,
    ):
        """
        Initialize the deployer.

        Args:
            config: Network endpoint, chain id and deployer credentials
            artifacts: Source of compiled contracts (including the proxy)
            client: JSON-RPC client (defaults to one built from config)
            proxy_contract: Artifact name of the proxy contract
            initializer: Function invoked through the proxy after deployment,
                         or None to skip initialization

        Raises:
            ConfigError: If the credentials are not a valid private key
        """
        self.config = config
        self.artifacts = artifacts
        self.client = client or JsonRpcClient(config.endpoint, timeout=config.timeout)
        self.proxy_contract = proxy_contract
        self.initializer = initializer
        try:
            self._account = Account.from_key(config.credentials)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Invalid deployer credentials for network '{config.name}'") from e

    @property
    def address(self) -> str:
        """Checksummed address of the deployer account."""
        return self._account.address

    def _resolve_args(self, args: Sequence[Any]) -> List[Any]:
        return [self.address if arg == DEPLOYER_VARIABLE else arg for arg in args]

    def _transact(self, data: str, to: Optional[str] = None) -> Dict[str, Any]:
        """Sign, send and wait for one transaction; returns its receipt."""
        call: Dict[str, Any] = {"from": self.address, "data": data, "value": "0x0"}
        if to is not None:
            call["to"] = to

        gas = int(self.client.call("eth_estimateGas", [call]), 16)
        nonce = int(self.client.call("eth_getTransactionCount", [self.address, "pending"]), 16)
        gas_price = int(self.client.call("eth_gasPrice"), 16)

        transaction: Dict[str, Any] = {
            "nonce": nonce,
            "gasPrice": gas_price,
            "gas": gas,
            "value": 0,
            "data": data,
            "chainId": self.config.network_id,
        }
        if to is not None:
            transaction["to"] = to

        signed = self._account.sign_transaction(transaction)
        tx_hash = encode_hex(signed.hash)
        try:
            self.client.call(
                "eth_sendRawTransaction", [encode_hex(signed.raw_transaction)], retry=False
            )
        except RpcUnavailableError as e:
            # The node may have accepted it; the receipt decides
            logger.warning(
                "Submitting transaction %s on %s failed in transport (%s); "
                "polling for its receipt",
                tx_hash,
                self.config.name,
                e,
            )
        else:
            logger.info("Sent transaction %s on %s, waiting for receipt", tx_hash, self.config.name)

        return self.client.wait_for_receipt(
            tx_hash,
            timeout=self.config.receipt_timeout,
            poll_interval=self.config.poll_interval,
            confirmations=self.config.confirmations,
        )

    def _create(self, artifact: Artifact, args: Sequence[Any] = ()) -> str:
        receipt = self._transact(artifact.encode_deploy_data(self._resolve_args(args)))
        address = receipt.get("contractAddress")
        if not address:
            raise RpcError(f"Receipt for {artifact.name} deployment has no contract address")
        address = to_checksum_address(address)
        logger.info("Deployed %s at %s on %s", artifact.name, address, self.config.name)
        return address

    def _read_address_slot(self, address: str, slot: int) -> Optional[str]:
        value = self.client.call("eth_getStorageAt", [address, hex(slot), "latest"])
        raw = to_bytes(hexstr=value or "0x")
        if not any(raw):
            return None
        return to_checksum_address(raw[-20:])

    def deploy_direct(self, artifact: str, constructor_args: Sequence[Any] = ()) -> str:
        try:
            return self._create(self.artifacts.get(artifact), constructor_args)
        except _STEP_FAILURES as e:
            raise DeployFailedError(
                f"Deploying {artifact} on {self.config.name} failed: {e}"
            ) from e

    def deploy_proxied(
        self, artifact: str, initializer_args: Sequence[Any] = ()
    ) -> ProxyDeployment:
        try:
            implementation_artifact = self.artifacts.get(artifact)
            proxy_artifact = self.artifacts.get(self.proxy_contract)
            if self.initializer is None:
                init_data = "0x"
            else:
                init_data = implementation_artifact.encode_call(
                    self.initializer, self._resolve_args(initializer_args)
                )
            implementation = self._create(implementation_artifact)
        except _STEP_FAILURES as e:
            raise DeployFailedError(
                f"Deploying {artifact} implementation on {self.config.name} failed: {e}"
            ) from e

        try:
            proxy = self._create(proxy_artifact, [implementation, self.address, init_data])
        except _STEP_FAILURES as e:
            raise DeployFailedError(
                f"Deploying {self.proxy_contract} for {artifact} on {self.config.name} failed "
                f"after implementation was deployed at {implementation}: {e}",
                orphaned_addresses={"implementation": implementation},
            ) from e

        return ProxyDeployment(proxy_address=proxy, implementation_address=implementation)

    def implementation_of(self, proxy_address: str) -> str:
        try:
            proxy = to_checksum_address(proxy_address)
            implementation = self._read_address_slot(proxy, EIP1967_IMPLEMENTATION_SLOT)
        except _STEP_FAILURES as e:
            raise UpgradeFailedError(
                f"Reading the implementation of {proxy_address} on {self.config.name} failed: {e}"
            ) from e
        if implementation is None:
            raise UpgradeFailedError(
                f"Implementation slot of {proxy} is empty; is this an EIP-1967 proxy?"
            )
        return implementation

    def upgrade(self, proxy_address: str, new_artifact: str) -> str:
        try:
            proxy = to_checksum_address(proxy_address)
            code = self.client.call("eth_getCode", [proxy, "latest"])
            if not code or not any(to_bytes(hexstr=code)):
                raise ValueError(f"no contract code at {proxy}")
            admin = self._read_address_slot(proxy, EIP1967_ADMIN_SLOT)
            if admin is None:
                raise ValueError(
                    f"admin slot of {proxy} is empty; is this an EIP-1967 transparent proxy?"
                )
            implementation = self._create(self.artifacts.get(new_artifact))
        except _STEP_FAILURES as e:
            raise UpgradeFailedError(
                f"Upgrading {proxy_address} to {new_artifact} on {self.config.name} failed: {e}"
            ) from e

        try:
            selector = function_signature_to_4byte_selector(PROXY_ADMIN_UPGRADE_SIGNATURE)
            arguments = encode(["address", "address", "bytes"], [proxy, implementation, b""])
            data = encode_hex(selector + arguments)
            self._transact(data, to=admin)

            current = self._read_address_slot(proxy, EIP1967_IMPLEMENTATION_SLOT)
            if current != implementation:
                raise ValueError(f"proxy still points at {current}")
        except _STEP_FAILURES as e:
            raise UpgradeFailedError(
                f"Repointing {proxy} to {implementation} on {self.config.name} failed: {e}",
                orphaned_addresses={"implementation": implementation},
            ) from e

        logger.info(
            "Upgraded proxy %s to implementation %s on %s", proxy, implementation, self.config.name
        )
        return implementation
