"""Shared pytest fixtures for contract-lifecycle tests."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from contract_lifecycle.deployer import ChainDeployer
from contract_lifecycle.exceptions import DeployFailedError, UpgradeFailedError
from contract_lifecycle.orchestrator import LifecycleOrchestrator
from contract_lifecycle.store import RecordStore
from contract_lifecycle.types import ProxyDeployment

# Hardhat's well-known development account #0
DEPLOYER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEPLOYER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

INITIALIZE_ABI = {
    "type": "function",
    "name": "initialize",
    "stateMutability": "nonpayable",
    "inputs": [
        {"name": "baseURI", "type": "string"},
        {"name": "initialOwner", "type": "address"},
    ],
    "outputs": [],
}


class FakeChainDeployer(ChainDeployer):
    """In-memory ChainDeployer handing out addresses in order."""

    def __init__(self, addresses: Sequence[str]):
        self.addresses = list(addresses)
        self.calls: List[Tuple[str, Any, Any]] = []
        self.fail_deploy = False
        self.fail_upgrade = False

    def _next(self) -> str:
        return self.addresses.pop(0)

    def deploy_direct(self, artifact, constructor_args=()):
        self.calls.append(("deploy_direct", artifact, tuple(constructor_args)))
        if self.fail_deploy:
            raise DeployFailedError("insufficient funds")
        return self._next()

    def deploy_proxied(self, artifact, initializer_args=()):
        self.calls.append(("deploy_proxied", artifact, tuple(initializer_args)))
        if self.fail_deploy:
            raise DeployFailedError("proxy deployment reverted")
        proxy = self._next()
        return ProxyDeployment(proxy_address=proxy, implementation_address=self._next())

    def implementation_of(self, proxy_address):
        self.calls.append(("implementation_of", proxy_address, None))
        if self.fail_upgrade:
            raise UpgradeFailedError("implementation slot is empty")
        return "0xF"

    def upgrade(self, proxy_address, new_artifact):
        self.calls.append(("upgrade", proxy_address, new_artifact))
        if self.fail_upgrade:
            raise UpgradeFailedError("repointing transaction reverted")
        return self._next()


@pytest.fixture
def records_dir(tmp_path: Path) -> Path:
    """Return a temporary deployment records directory (not yet created)."""
    return tmp_path / "deployments"


@pytest.fixture
def store(records_dir: Path) -> RecordStore:
    """Create a RecordStore over the temporary records directory."""
    return RecordStore(records_dir)


@pytest.fixture
def fake_deployer() -> FakeChainDeployer:
    """Create a fake deployer issuing 0xA, 0xB, 0xC, ... in order."""
    return FakeChainDeployer(["0xA", "0xB", "0xC", "0xD", "0xE"])


@pytest.fixture
def orchestrator(store: RecordStore, fake_deployer: FakeChainDeployer) -> LifecycleOrchestrator:
    """Create an orchestrator wired to the fake deployer for every network."""
    return LifecycleOrchestrator(store, lambda network: fake_deployer)


def _write_artifact(
    artifacts_dir: Path,
    source: str,
    name: str,
    abi: List[Dict[str, Any]],
    bytecode: str = "0x6080604052",
) -> Path:
    artifact_dir = artifacts_dir / source
    artifact_dir.mkdir(parents=True, exist_ok=True)
    path = artifact_dir / f"{name}.json"
    with open(path, "w") as f:
        json.dump(
            {
                "_format": "hh-sol-artifact-1",
                "contractName": name,
                "sourceName": source,
                "abi": abi,
                "bytecode": bytecode,
                "deployedBytecode": bytecode,
                "linkReferences": {},
                "deployedLinkReferences": {},
            },
            f,
            indent=2,
        )
    # Hardhat writes a debug file next to every artifact
    (artifact_dir / f"{name}.dbg.json").write_text('{"_format": "hh-sol-dbg-1"}')
    return path


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    """Create a Hardhat-style artifacts tree with token, V2 and proxy artifacts."""
    root = tmp_path / "artifacts"

    _write_artifact(root, "contracts/CarbonCreditToken.sol", "CarbonCreditToken", [INITIALIZE_ABI])
    _write_artifact(
        root, "contracts/CarbonCreditTokenV2.sol", "CarbonCreditTokenV2", [INITIALIZE_ABI]
    )
    _write_artifact(
        root,
        "contracts/SimpleToken.sol",
        "SimpleToken",
        [
            {
                "type": "constructor",
                "stateMutability": "nonpayable",
                "inputs": [
                    {"name": "baseURI", "type": "string"},
                    {"name": "initialOwner", "type": "address"},
                ],
            }
        ],
    )
    _write_artifact(
        root,
        "@openzeppelin/contracts/proxy/transparent/TransparentUpgradeableProxy.sol",
        "TransparentUpgradeableProxy",
        [
            {
                "type": "constructor",
                "stateMutability": "payable",
                "inputs": [
                    {"name": "_logic", "type": "address"},
                    {"name": "initialOwner", "type": "address"},
                    {"name": "_data", "type": "bytes"},
                ],
            }
        ],
    )
    _write_artifact(root, "contracts/ICarbonCredit.sol", "ICarbonCredit", [], bytecode="0x")

    build_info = root / "build-info"
    build_info.mkdir(parents=True)
    (build_info / "CarbonCreditToken.json").write_text("{}")
    return root


@pytest.fixture
def networks_file(tmp_path: Path) -> Path:
    """Create a network configuration file with one local network."""
    path = tmp_path / "networks.yml"
    path.write_text(
        "networks:\n"
        "  carbonNet:\n"
        "    endpoint: http://127.0.0.1:8545\n"
        "    network_id: 1337\n"
        "    credentials_env: CARBONNET_DEPLOYER_KEY\n"
        "    poll_interval: 0\n"
    )
    return path


@pytest.fixture
def deployer_env(monkeypatch) -> Optional[str]:
    """Expose the development deployer key through the environment."""
    monkeypatch.setenv("CARBONNET_DEPLOYER_KEY", DEPLOYER_KEY)
    return DEPLOYER_KEY


@pytest.fixture
def make_fake_deployer():
    """Return a constructor for fake deployers with custom address sequences."""
    return FakeChainDeployer


@pytest.fixture
def deployer_address() -> str:
    """Return the address belonging to the development deployer key."""
    return DEPLOYER_ADDRESS
