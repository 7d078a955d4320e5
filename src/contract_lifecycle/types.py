"""Data types and dataclasses for contract-lifecycle library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .exceptions import CorruptRecordError


class DeploymentMode(Enum):
    """
    How a contract is exposed on chain.

    Value strings define de/serialization law for the ``mode`` field of
    persisted records.
    """

    DIRECT = "direct"
    PROXIED = "proxied"


@dataclass
class DeploymentRecord:
    """One contract's on-chain presence on one network."""

    # Required fields
    contract: str  # e.g., "CarbonCreditToken"
    network: str  # e.g., "carbonNet"
    mode: DeploymentMode
    address: str  # Contract address (Direct) or proxy address (Proxied)

    # Optional fields
    implementation_address: Optional[str] = None  # Proxied only
    metadata: Dict[str, str] = field(default_factory=dict)  # e.g., {"baseURI": ...}

    # Read from a file written by the original Hardhat scripts, which never
    # recorded the implementation of proxied deployments
    from_legacy: bool = field(default=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.mode, DeploymentMode):
            raise CorruptRecordError(f"Unknown deployment mode: {self.mode!r}")

        for name in ("contract", "network", "address"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise CorruptRecordError(
                    f"Deployment record field '{name}' must be a non-empty string"
                )

        if self.implementation_address is not None and not isinstance(
            self.implementation_address, str
        ):
            raise CorruptRecordError(
                "Deployment record field 'implementation_address' must be a string"
            )
        if (
            self.mode is DeploymentMode.PROXIED
            and not self.implementation_address
            and not self.from_legacy
        ):
            raise CorruptRecordError(
                f"Proxied record for {self.contract} on {self.network} "
                "has no implementation address"
            )
        if self.mode is DeploymentMode.DIRECT and self.implementation_address is not None:
            raise CorruptRecordError(
                f"Direct record for {self.contract} on {self.network} "
                "must not have an implementation address"
            )

        for key, value in self.metadata.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise CorruptRecordError(
                    f"Metadata for {self.contract} on {self.network} must map strings to strings"
                )


@dataclass(frozen=True)
class ProxyDeployment:
    """Addresses produced by deploying an implementation behind a proxy."""

    proxy_address: str
    implementation_address: str


@dataclass(frozen=True)
class NetworkConfig:
    """Connection and signing settings for one network."""

    # Required fields
    name: str  # e.g., "carbonNet"
    endpoint: str  # JSON-RPC URL
    network_id: int  # EIP-155 chain id
    credentials: str = field(repr=False)  # Hex private key of the deployer

    # Optional tuning
    confirmations: int = 1
    timeout: float = 30.0  # Per-request RPC timeout, seconds
    receipt_timeout: float = 120.0  # How long to wait for a receipt, seconds
    poll_interval: float = 1.0
