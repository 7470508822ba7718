import asyncio
import json
import logging

import click

from daoracle.common.errors import AttestationInvalid, MalformedIdentifier
from daoracle.common.ids import CompositePublicationId, from_display_string, to_display_string
from daoracle.common.request import build_request
from daoracle.config import ChainConfig, DomainConfig, OracleConfig
from daoracle.node.attestor import Attestor
from daoracle.node.client import HttpOracleClient


def _parse_int(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError as err:
        raise click.BadParameter(f"not an integer: {value}") from err


def _oracle_client(cfg: OracleConfig) -> HttpOracleClient:
    return HttpOracleClient(
        cfg.endpoint,
        caller=cfg.caller,
        timeout=cfg.timeout,
        strict_availability=cfg.strict_availability,
        strict_finality=cfg.strict_finality,
    )


@click.group()
@click.option("--debug", is_flag=True, help="Enable verbose logging.")
def cli(debug: bool):
    """Attest DA publications through the oracle network and collect them on-chain."""
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)


@cli.command("encode-id")
@click.argument("batch_id")
@click.argument("reference_id")
@click.option("--profile", "profile_id", default=None, help="Profile id, to also print the display string.")
def encode_id_cmd(batch_id: str, reference_id: str, profile_id: str | None):
    """Pack a DA batch id and reference id into a uint256 publication id."""
    try:
        pub = CompositePublicationId(_parse_int(batch_id), _parse_int(reference_id))
        display = to_display_string(_parse_int(profile_id), pub) if profile_id is not None else None
    except ValueError as err:
        raise click.BadParameter(str(err)) from err
    click.echo(f"{pub.to_int()} ({pub.to_int():#x})")
    if display is not None:
        click.echo(display)


@cli.command("decode-id")
@click.argument("value")
def decode_id_cmd(value: str):
    """Split a packed publication id or a display string into its parts."""
    result = {}
    if "-DA-" in value:
        try:
            profile_id, pub = from_display_string(value)
        except MalformedIdentifier as err:
            raise click.BadParameter(str(err)) from err
        result["profile_id"] = profile_id
    else:
        try:
            pub = CompositePublicationId.from_int(_parse_int(value))
        except ValueError as err:
            raise click.BadParameter(str(err)) from err
    result.update(
        {
            "batch_id": f"{pub.batch_id:#x}",
            "reference_id": f"{pub.reference_id:#x}",
            "publication_id": str(pub.to_int()),
        }
    )
    click.echo(json.dumps(result, indent=2))


@cli.command()
@click.argument("profile_id")
@click.argument("publication")
@click.option("--collect-module", default=None, help="Expected collect module (defaults to COLLECT_MODULE_ADDRESS).")
@click.option("--content-pointer", required=True, help="Expected content pointer, e.g. ar://...")
@click.option("--module-data", default="0x", show_default=True, help="Collect module data as hex.")
@click.option("--nonce", type=int, default=None, help="Meta-tx nonce (defaults to the on-chain value, or 0).")
def attest(profile_id: str, publication: str, collect_module: str | None, content_pointer: str, module_data: str, nonce: int | None):
    """Ask the oracle about PUBLICATION and print the signed attestation."""
    chain = ChainConfig.from_env()
    chain.require("attestor_private_key")
    try:
        request = build_request(
            _parse_int(profile_id),
            publication if "-DA-" in publication else _parse_int(publication),
            collect_module or chain.collect_module,
            content_pointer,
            module_data,
        )
    except (MalformedIdentifier, ValueError) as err:
        raise click.BadParameter(str(err)) from err

    judgment = asyncio.run(_oracle_client(OracleConfig.from_env()).query(request))
    if not judgment.ok:
        raise click.ClickException(f"oracle refused {request.display_string}: {judgment.error.value} {judgment.detail}")

    attestor = Attestor.from_key(chain.attestor_private_key, DomainConfig.from_env().domain())
    if nonce is not None:
        attestor.sync_nonce(nonce, force=True)
    elif chain.rpc_url and chain.hub_address and chain.private_key:
        from daoracle.ledger.chain import HubClient

        hub = HubClient.connect(
            chain.rpc_url, chain.hub_address, chain.private_key, receiver_address=attestor.domain.verifying_contract
        )
        attestor.sync_nonce(hub.signer_nonce(attestor.address))
    try:
        envelope = attestor.attest(request, judgment.payload)
    except AttestationInvalid as err:
        raise click.ClickException(f"oracle judgment unusable: {err}") from err
    click.echo(json.dumps({"envelope": envelope.to_serialisable(), "attestation": envelope.to_hex()}, indent=2))


@cli.command()
@click.argument("profile_id")
@click.argument("publication")
@click.option("--collect-module", default=None, help="Expected collect module (defaults to COLLECT_MODULE_ADDRESS).")
@click.option("--content-pointer", required=True, help="Expected content pointer, e.g. ar://...")
@click.option("--module-data", default="0x", show_default=True, help="Collect module data as hex.")
def collect(profile_id: str, publication: str, collect_module: str | None, content_pointer: str, module_data: str):
    """Attest PUBLICATION and collect it through the hub's daCollect."""
    from daoracle.ledger.chain import HubClient, load_abi
    from daoracle.pipeline import CollectPipeline

    chain = ChainConfig.from_env()
    chain.require("rpc_url", "hub_address", "private_key", "attestor_private_key")
    oracle_cfg = OracleConfig.from_env()
    domain = DomainConfig.from_env().domain()
    hub = HubClient.connect(
        chain.rpc_url,
        chain.hub_address,
        chain.private_key,
        receiver_address=domain.verifying_contract,
        hub_abi=load_abi(chain.hub_artifact) if chain.hub_artifact else None,
    )
    pipeline = CollectPipeline(
        _oracle_client(oracle_cfg),
        Attestor.from_key(chain.attestor_private_key, domain),
        hub,
        timeout=oracle_cfg.timeout,
        retries=oracle_cfg.retries,
        nonce_source=hub.signer_nonce,
    )
    outcome = asyncio.run(
        pipeline.collect(
            _parse_int(profile_id),
            publication if "-DA-" in publication else _parse_int(publication),
            collect_module or chain.collect_module,
            content_pointer,
            module_data,
        )
    )
    if not outcome.ok:
        hint = "retry later" if outcome.retryable else "rebuild the request"
        raise click.ClickException(f"collect failed at {outcome.stage.value} stage ({outcome.error_kind}): {outcome.detail}; {hint}")
    click.echo(f"Collected {publication} as token {outcome.token_id}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    cli()


if __name__ == "__main__":
    main()
