"""Configuration constants for contract-lifecycle library."""

# Persisted record files
RECORDS_DIRNAME = "deployments"
RECORD_KEY_SEPARATOR = "_"
RECORD_JSON_FORMAT = {"indent": 2}

# Fields of the persisted record document, as read by external tooling
RECORD_FIELDS = ("contract", "address", "network", "mode", "implementationAddress", "metadata")

# Network configuration
NETWORKS_FILENAME = "networks.yml"
NETWORKS_FILE_ENV = "CONTRACT_LIFECYCLE_NETWORKS"

# Proxy deployment (OpenZeppelin v5 transparent proxy, as deployed by hardhat-upgrades)
DEFAULT_PROXY_CONTRACT = "TransparentUpgradeableProxy"
DEFAULT_INITIALIZER = "initialize"
PROXY_ADMIN_UPGRADE_SIGNATURE = "upgradeAndCall(address,address,bytes)"

# EIP-1967 storage slots - https://eips.ethereum.org/EIPS/eip-1967
EIP1967_IMPLEMENTATION_SLOT = 0x360894A13BA1A3210667C828492DB98DCA3E2076CC3735A920A3CA505D382BBC
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

# Special argument value resolved to the deployer account address
DEPLOYER_VARIABLE = "$deployer"

# JSON-RPC transport
RPC_RETRIES = 3
RPC_BACKOFF_SECONDS = 0.5
RETRYABLE_HTTP_STATUSES = frozenset({429, 502, 503, 504})
