"""Unit tests for custom exception classes."""

import pytest

from contract_lifecycle.exceptions import (
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


class TestExceptionCatching:
    """Test that exceptions can be caught as their base types."""

    def test_catch_record_not_found_as_file_not_found_error(self):
        """Test that RecordNotFoundError can be caught as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            raise RecordNotFoundError("test")

    def test_catch_corrupt_record_as_value_error(self):
        """Test that CorruptRecordError can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise CorruptRecordError("test")

    def test_corrupt_record_is_not_not_found(self):
        """Test that a corrupt record is never mistaken for an absent one."""
        assert not issubclass(CorruptRecordError, RecordNotFoundError)
        assert not issubclass(CorruptRecordError, FileNotFoundError)

    def test_no_existing_deployment_is_both_not_found_and_invalid_transition(self):
        """Test that NoExistingDeploymentError matches both error families."""
        with pytest.raises(RecordNotFoundError):
            raise NoExistingDeploymentError("test")
        with pytest.raises(InvalidTransitionError):
            raise NoExistingDeploymentError("test")

    def test_deployment_exists_is_invalid_transition(self):
        """Test that DeploymentExistsError can be caught as InvalidTransitionError."""
        with pytest.raises(InvalidTransitionError):
            raise DeploymentExistsError("test")

    def test_network_not_configured_is_config_error(self):
        """Test that NetworkNotConfiguredError can be caught as ConfigError."""
        with pytest.raises(ConfigError):
            raise NetworkNotConfiguredError("test")

    def test_transaction_rejected_is_rpc_error(self):
        """Test that TransactionRejectedError can be caught as RpcError."""
        with pytest.raises(RpcError):
            raise TransactionRejectedError("test")

    def test_rpc_unavailable_is_rpc_error(self):
        """Test that RpcUnavailableError can be caught as RpcError."""
        with pytest.raises(RpcError):
            raise RpcUnavailableError("test")

    def test_store_write_failed_is_distinct_from_chain_failures(self):
        """Test that StoreWriteFailedError is not a deploy or upgrade failure."""
        assert not issubclass(StoreWriteFailedError, DeployFailedError)
        assert not issubclass(StoreWriteFailedError, UpgradeFailedError)

    def test_catch_all_as_lifecycle_error(self):
        """Test that all custom exceptions can be caught as LifecycleError."""
        exceptions = [
            RecordNotFoundError("test"),
            CorruptRecordError("test"),
            RecordConflictError("test"),
            InvalidTransitionError("test"),
            NoExistingDeploymentError("test"),
            DeploymentExistsError("test"),
            DeployFailedError("test"),
            UpgradeFailedError("test"),
            StoreWriteFailedError("test", "carbonNet", "Token", {"contract": "0xD"}),
            ConfigError("test"),
            NetworkNotConfiguredError("test"),
            ArtifactNotFoundError("test"),
            RpcError("test"),
            RpcUnavailableError("test"),
            TransactionRejectedError("test"),
        ]

        for exc in exceptions:
            with pytest.raises(LifecycleError):
                raise exc


class TestExceptionPayloads:
    """Test the data carried by chain and store failures."""

    def test_store_write_failed_carries_orphaned_addresses(self):
        """Test that the orphaned addresses are attributes and part of the message."""
        exc = StoreWriteFailedError(
            "disk full",
            network="carbonNet",
            contract="CarbonCreditToken",
            orphaned_addresses={"proxy": "0xA", "implementation": "0xB"},
        )

        assert exc.network == "carbonNet"
        assert exc.contract == "CarbonCreditToken"
        assert exc.orphaned_addresses == {"proxy": "0xA", "implementation": "0xB"}
        assert "proxy=0xA" in str(exc)
        assert "implementation=0xB" in str(exc)

    def test_chain_failures_default_to_no_orphans(self):
        """Test that deploy/upgrade failures have an empty orphan map by default."""
        assert DeployFailedError("test").orphaned_addresses == {}
        assert UpgradeFailedError("test").orphaned_addresses == {}

    def test_deploy_failed_keeps_partial_addresses(self):
        """Test that a partial deployment reports what it left on chain."""
        exc = DeployFailedError("proxy leg failed", orphaned_addresses={"implementation": "0xB"})
        assert exc.orphaned_addresses == {"implementation": "0xB"}

    def test_exceptions_accept_string_messages(self):
        """Test that message-only exceptions keep their message."""
        for exc_class in [
            LifecycleError,
            RecordNotFoundError,
            CorruptRecordError,
            InvalidTransitionError,
            DeployFailedError,
            UpgradeFailedError,
            ConfigError,
        ]:
            exc = exc_class("test message")
            assert str(exc) == "test message"
