"""Command line interface for contract-lifecycle library."""

import functools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from .artifacts import ArtifactSource
from .config import get_network_config
from .constants import DEFAULT_INITIALIZER, DEFAULT_PROXY_CONTRACT
from .deployer import JsonRpcChainDeployer
from .exceptions import LifecycleError, StoreWriteFailedError
from .orchestrator import DeployerFactory, LifecycleOrchestrator, RedeployPolicy
from .parsers import serialize_record
from .store import RecordStore
from .types import DeploymentMode, DeploymentRecord


class StoreDivergedException(click.ClickException):
    """Chain succeeded but the record was not saved; needs manual recovery."""

    exit_code = 3


@dataclass
class Settings:
    networks_file: Optional[Path]
    records_dir: Optional[Path]
    artifacts_dir: Optional[Path]
    proxy_contract: str
    redeploy_policy: RedeployPolicy
    legacy_mode: DeploymentMode


def make_deployer_factory(settings: Settings, initializer: Optional[str]) -> DeployerFactory:
    """Build a factory returning a JSON-RPC deployer for a configured network."""
    artifacts = ArtifactSource(settings.artifacts_dir)

    def deployer_for(network: str) -> JsonRpcChainDeployer:
        config = get_network_config(network, settings.networks_file)
        return JsonRpcChainDeployer(
            config,
            artifacts,
            proxy_contract=settings.proxy_contract,
            initializer=initializer,
        )

    return deployer_for


def _orchestrator(
    settings: Settings, initializer: Optional[str] = DEFAULT_INITIALIZER
) -> LifecycleOrchestrator:
    store = RecordStore(settings.records_dir, legacy_mode=settings.legacy_mode)
    return LifecycleOrchestrator(
        store,
        make_deployer_factory(settings, initializer),
        redeploy_policy=settings.redeploy_policy,
    )


def _echo_record(record: DeploymentRecord) -> None:
    click.echo(json.dumps(serialize_record(record), indent=2))


def _parse_metadata(ctx, param, values):
    metadata = {}
    for item in values:
        key, separator, value = item.partition("=")
        if not separator or not key:
            raise click.BadParameter(f"{item!r} is not KEY=VALUE", ctx=ctx, param=param)
        metadata[key] = value
    return metadata


def _reports_errors(command):
    """Turn library errors into messages and exit codes (1, or 3 for diverged state)."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except StoreWriteFailedError as e:
            raise StoreDivergedException(
                f"{e}\nThe chain changed but the deployment record was not written; "
                "record the addresses above manually."
            ) from e
        except (LifecycleError, ValueError) as e:
            raise click.ClickException(str(e)) from e

    return wrapper


args_option = click.option(
    "--arg",
    "args",
    multiple=True,
    help="Constructor/initializer argument, in order. Use $deployer for the deployer address.",
)

metadata_option = click.option(
    "--meta",
    "metadata",
    multiple=True,
    callback=_parse_metadata,
    help="KEY=VALUE stored with the deployment record, e.g. baseURI=https://...",
)


@click.group()
@click.option(
    "--networks",
    "networks_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Network configuration YAML (default: $CONTRACT_LIFECYCLE_NETWORKS or ./networks.yml).",
)
@click.option(
    "--records-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Deployment records directory (default: ./deployments).",
)
@click.option(
    "--artifacts-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Hardhat artifacts directory (default: ./artifacts).",
)
@click.option(
    "--proxy-contract",
    default=DEFAULT_PROXY_CONTRACT,
    show_default=True,
    help="Artifact name of the upgradeable proxy.",
)
@click.option(
    "--no-overwrite",
    is_flag=True,
    help="Fail instead of redeploying over an existing record.",
)
@click.option(
    "--legacy-mode",
    type=click.Choice([m.value for m in DeploymentMode]),
    default=DeploymentMode.DIRECT.value,
    show_default=True,
    help="Mode assumed for legacy records that do not state one.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx,
    networks_file,
    records_dir,
    artifacts_dir,
    proxy_contract,
    no_overwrite,
    legacy_mode,
    verbose,
):
    """Deploy, proxy-deploy and upgrade contracts, keeping one record per network."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = Settings(
        networks_file=networks_file,
        records_dir=records_dir,
        artifacts_dir=artifacts_dir,
        proxy_contract=proxy_contract,
        redeploy_policy=RedeployPolicy.REJECT if no_overwrite else RedeployPolicy.OVERWRITE,
        legacy_mode=DeploymentMode(legacy_mode),
    )


@cli.command("deploy-direct")
@click.argument("network")
@click.argument("contract")
@args_option
@metadata_option
@click.option("--artifact", help="Artifact to deploy (default: CONTRACT).")
@click.pass_obj
@_reports_errors
def deploy_direct(settings, network, contract, args, metadata, artifact):
    """Deploy CONTRACT on NETWORK as a standalone instance."""
    record = _orchestrator(settings).deploy(
        network, contract, DeploymentMode.DIRECT, args=args, metadata=metadata, artifact=artifact
    )
    _echo_record(record)


@cli.command("deploy-proxied")
@click.argument("network")
@click.argument("contract")
@args_option
@metadata_option
@click.option("--artifact", help="Implementation artifact (default: CONTRACT).")
@click.option(
    "--initializer",
    default=DEFAULT_INITIALIZER,
    show_default=True,
    help="Function called through the proxy after deployment.",
)
@click.pass_obj
@_reports_errors
def deploy_proxied(settings, network, contract, args, metadata, artifact, initializer):
    """Deploy CONTRACT on NETWORK behind a new upgradeable proxy."""
    record = _orchestrator(settings, initializer).deploy(
        network, contract, DeploymentMode.PROXIED, args=args, metadata=metadata, artifact=artifact
    )
    _echo_record(record)


@cli.command()
@click.argument("network")
@click.argument("contract")
@click.option("--artifact", help="New implementation artifact (default: CONTRACT).")
@click.pass_obj
@_reports_errors
def upgrade(settings, network, contract, artifact):
    """Point the proxy of CONTRACT on NETWORK at a new implementation."""
    record = _orchestrator(settings).upgrade(network, contract, new_artifact=artifact)
    _echo_record(record)


@cli.command()
@click.argument("network")
@click.argument("contract", required=False)
@click.pass_obj
@_reports_errors
def show(settings, network, contract):
    """Print the deployment record(s) stored for NETWORK."""
    store = RecordStore(settings.records_dir, legacy_mode=settings.legacy_mode)
    if contract is not None:
        _echo_record(store.load(network, contract))
        return

    records = store.records(network)
    click.echo(json.dumps([serialize_record(r) for r in records], indent=2))


def main():
    cli(prog_name="contract-lifecycle")


if __name__ == "__main__":
    main()
