"""Associated Accounts verifier command line.

Commands:
    aav hash <source>                         EIP-712 hash of a signed record
    aav validate <source> [--rpc-url] [--now] Validate a signed record
    aav address extract <hex>                 Account address from an interoperable address
    aav address encode <addr> --chain-id N    Build an interoperable address
    aav key-type <signature> <signer>         Classify a signature

<source> is a JSON file path, a literal JSON document, or '-' for stdin.
"""

import asyncio
import json
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer
from eth_utils import decode_hex, encode_hex

from assoc_verifier.core.config import DEFAULT_CHAIN_ID, UNIVERSAL_VALIDATOR_ADDRESS
from assoc_verifier.erc8092.exceptions import AssociationError
from assoc_verifier.erc8092.interop_address import (
    address_to_binary_id,
    extract_address,
    parse_interop_address,
)
from assoc_verifier.erc8092.records import KeyType, SignedAssociationRecord
from assoc_verifier.erc8092.serialize import sar_from_json
from assoc_verifier.erc8092.signatures import JsonRpcChainClient, resolve_key_type
from assoc_verifier.erc8092.typed_data import domain_separator, hash_record, struct_hash, typed_data
from assoc_verifier.erc8092.verify import validate_sar
from assoc_verifier.logging_config import configure_logging

EXIT_VALIDATION_FAILURE = 1
EXIT_PARSE_ERROR = 2


class OutputFormat(str, Enum):
    json = "json"
    pretty = "pretty"


app = typer.Typer(
    name="aav",
    help="Hash, validate and inspect ERC-8092 associated account records.",
    no_args_is_help=True,
)
address_app = typer.Typer(
    name="address",
    help="Encode and decode ERC-7930 interoperable addresses.",
    no_args_is_help=True,
)
app.add_typer(address_app, name="address")


# =============================================================================
# Output helpers
# =============================================================================

def output(data: Any, format: OutputFormat = OutputFormat.json) -> None:
    indent = 2 if format == OutputFormat.pretty else None
    typer.echo(json.dumps(data, indent=indent))


def output_error(code: str, message: str, exit_code: int) -> None:
    typer.echo(json.dumps({"error": {"code": code, "message": message}}), err=True)
    raise typer.Exit(exit_code)


def read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    if os.path.isfile(source):
        return Path(source).read_text(encoding="utf-8")
    return source


def load_sar(source: str) -> SignedAssociationRecord:
    try:
        payload = json.loads(read_input(source))
    except json.JSONDecodeError as e:
        output_error("RECORD_PARSE_FAILED", f"Invalid JSON: {e}", EXIT_PARSE_ERROR)
    try:
        return sar_from_json(payload)
    except AssociationError as e:
        output_error(e.code, e.message, EXIT_PARSE_ERROR)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    configure_logging("DEBUG" if verbose else None)


# =============================================================================
# Commands
# =============================================================================

FormatOption = typer.Option(OutputFormat.json, "--format", "-f", help="Output format")


@app.command("hash")
def hash_cmd(
    source: str = typer.Argument(..., help="Signed record JSON, file path, or '-' for stdin"),
    format: OutputFormat = FormatOption,
) -> None:
    """Print the record hash (association id) and its EIP-712 components."""
    sar = load_sar(source)
    try:
        result = {
            "associationId": encode_hex(hash_record(sar.record)),
            "domainSeparator": encode_hex(domain_separator()),
            "structHash": encode_hex(struct_hash(sar.record)),
            "typedData": typed_data(sar.record),
        }
    except AssociationError as e:
        output_error(e.code, e.message, EXIT_PARSE_ERROR)
    output(result, format)


async def _validate(
    sar: SignedAssociationRecord,
    rpc_url: Optional[str],
    validator: Optional[str],
    now: Optional[int],
):
    if rpc_url is None:
        return await validate_sar(sar, chain=None, now=now)
    async with JsonRpcChainClient(rpc_url, validator_address=validator or UNIVERSAL_VALIDATOR_ADDRESS) as chain:
        return await validate_sar(sar, chain=chain, now=now)


@app.command("validate")
def validate_cmd(
    source: str = typer.Argument(..., help="Signed record JSON, file path, or '-' for stdin"),
    rpc_url: Optional[str] = typer.Option(
        None, "--rpc-url", help="JSON-RPC endpoint for contract signatures"
    ),
    validator: Optional[str] = typer.Option(
        None, "--validator", help="ERC-6492 universal validator address (overrides AAV_UNIVERSAL_VALIDATOR_ADDRESS)"
    ),
    now: Optional[int] = typer.Option(None, "--now", help="Unix seconds to validate at"),
    format: OutputFormat = FormatOption,
) -> None:
    """Validate a signed record. Exits 1 when the association is not valid."""
    sar = load_sar(source)
    try:
        verdict = asyncio.run(_validate(sar, rpc_url, validator, now))
    except AssociationError as e:
        output_error(e.code, e.message, EXIT_PARSE_ERROR)

    result = verdict.model_dump(mode="json")
    result["associationId"] = encode_hex(hash_record(sar.record))
    output(result, format)
    if not verdict.valid:
        raise typer.Exit(EXIT_VALIDATION_FAILURE)


@address_app.command("extract")
def address_extract_cmd(
    binary_id: str = typer.Argument(..., help="Interoperable address as 0x hex"),
    format: OutputFormat = FormatOption,
) -> None:
    """Print the account address (and chain id when the layout is well formed)."""
    try:
        raw = decode_hex(binary_id)
    except ValueError as e:
        output_error("INTEROP_ADDRESS_INVALID", str(e), EXIT_PARSE_ERROR)

    result = {"address": extract_address(raw), "chainId": None}
    try:
        result["chainId"] = parse_interop_address(raw).chain_id
    except AssociationError:
        pass  # tail extraction still applies to non-standard layouts
    output(result, format)


@address_app.command("encode")
def address_encode_cmd(
    address: str = typer.Argument(..., help="20-byte EVM address"),
    chain_id: int = typer.Option(DEFAULT_CHAIN_ID, "--chain-id", help="EIP-155 chain id"),
    format: OutputFormat = FormatOption,
) -> None:
    """Build a version 1 eip155 interoperable address."""
    try:
        binary_id = address_to_binary_id(address, chain_id)
    except AssociationError as e:
        output_error(e.code, e.message, EXIT_PARSE_ERROR)
    output({"binaryId": encode_hex(binary_id), "chainId": chain_id}, format)


async def _resolve(signature: bytes, signer: str, rpc_url: Optional[str]) -> KeyType:
    if rpc_url is None:
        return await resolve_key_type(signature, signer, None)
    async with JsonRpcChainClient(rpc_url) as chain:
        return await resolve_key_type(signature, signer, chain)


@app.command("key-type")
def key_type_cmd(
    signature: str = typer.Argument(..., help="Signature as 0x hex"),
    signer: str = typer.Argument(..., help="Signer address"),
    rpc_url: Optional[str] = typer.Option(
        None, "--rpc-url", help="JSON-RPC endpoint used to check for contract code"
    ),
    format: OutputFormat = FormatOption,
) -> None:
    """Classify a signature as K1, ERC1271 or ERC6492.

    Without --rpc-url the contract-code check is skipped.
    """
    try:
        raw = decode_hex(signature)
    except ValueError as e:
        output_error("RECORD_PARSE_FAILED", f"Invalid signature hex: {e}", EXIT_PARSE_ERROR)
    key_type = asyncio.run(_resolve(raw, signer, rpc_url))
    output({"keyType": key_type.name, "value": f"0x{key_type.value:04x}"}, format)


if __name__ == "__main__":
    app()
