#!/usr/bin/env python3
"""
Fungible Token Governance - Command Line Interface

A thin CLI over the client library: canonicalize and hash payloads,
validate payloads against the wire schemas, inspect token and account state
on a ledger node, and manage configuration.
"""

import asyncio
import functools
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml
from tabulate import tabulate

from cli import __version__
from cli.config import OUTPUT_FORMATS, ConfigurationManager
from crypto.keys import PrivateKey
from crypto.signer import LocalSigner
from errors import TokenError
from governance.actions import ACTION_SCHEMAS
from network.provider import JsonRpcProvider
from network.rpc import RPCError
from transaction.canonical import canonical_json, canonicalize, payload_hash
from validator.core import validate
from validator.schemas import (
    ACCOUNT_STATE_SCHEMA,
    RECEIPT_SCHEMA,
    TOKEN_PROPERTIES_SCHEMA,
    TOKEN_STATE_SCHEMA,
    TRANSACTION_ENVELOPE_SCHEMA,
)


# Schemas addressable by name from the command line
NAMED_SCHEMAS = {
    'token-properties': TOKEN_PROPERTIES_SCHEMA,
    'token-state': TOKEN_STATE_SCHEMA,
    'account-state': ACCOUNT_STATE_SCHEMA,
    'receipt': RECEIPT_SCHEMA,
    'transaction': TRANSACTION_ENVELOPE_SCHEMA,
    **ACTION_SCHEMAS,
}


class CLIContext:
    """CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.config: Optional[ConfigurationManager] = None
        self.logger = logging.getLogger('ftgov')

    def setup_logging(self):
        """Configure a stderr handler whose level follows -v / -vv."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

        root = logging.getLogger()
        root.setLevel(level)
        root.handlers = [handler]

        # third-party transport logs only at -vv
        if self.verbose < 2:
            logging.getLogger('requests').setLevel(logging.WARNING)
            logging.getLogger('urllib3').setLevel(logging.WARNING)

    def load_config(self):
        self.config = ConfigurationManager(self.config_file, self.profile)
        self.config.load()
        if self.output_format is None:
            self.output_format = self.config.get('cli.output_format', 'table')

    def output(self, data: Any):
        """Output data in the selected format."""
        if self.output_format == "json":
            click.echo(json.dumps(data, indent=2, default=str))
        elif self.output_format == "yaml":
            click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)
        else:
            self._output_table(data)

    def _output_table(self, data: Any):
        if isinstance(data, dict):
            rows = [
                [key, json.dumps(value, default=str) if isinstance(value, (dict, list)) else value]
                for key, value in data.items()
            ]
            click.echo(tabulate(rows, tablefmt="plain", disable_numparse=True))
        else:
            click.echo(str(data))

    def provider(self) -> JsonRpcProvider:
        return JsonRpcProvider(config=self.config.rpc_config())


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Report library errors as a one-line message and exit 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (TokenError, RPCError, ValueError, OSError) as e:
            ctx = click.get_current_context().find_object(CLIContext)
            click.echo(f"Error: {e}", err=True)
            if ctx and ctx.verbose >= 2:
                click.echo(traceback.format_exc(), err=True)
            sys.exit(1)

    return wrapper


def load_json_input(source: str) -> Any:
    """Load JSON from a file path, or stdin for '-'."""
    if source == '-':
        text = click.get_text_stream('stdin').read()
    else:
        path = Path(source)
        if not path.exists():
            raise click.BadParameter(f"File not found: {source}")
        text = path.read_text()

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON in {source}: {e}")


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c', help='Path to configuration file')
@click.option('--profile', '-p', help='Configuration profile')
@click.option('--output-format', '-o', type=click.Choice(OUTPUT_FORMATS), default=None,
              help='Output format')
@click.option('--verbose', '-v', count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='ftgov')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: Optional[str], verbose: int):
    """
    Fungible token governance client.

    Examples:
        ftgov canonicalize payload.json
        ftgov validate transfer intent.json
        ftgov state FIX1
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.verbose = verbose

    ctx.setup_logging()
    try:
        ctx.load_config()
    except (ValueError, OSError, yaml.YAMLError) as e:
        raise click.ClickException(f"Failed to load configuration: {e}")

    ctx.logger.debug("CLI initialized with context")


@cli.command('canonicalize')
@click.argument('source', default='-')
@click.option('--hash-only', is_flag=True, help='Print only the payload hash')
@pass_context
@handle_cli_error
def canonicalize_command(ctx: CLIContext, source: str, hash_only: bool):
    """Print the canonical JSON and hash of a JSON payload."""
    payload = load_json_input(source)
    digest = payload_hash(payload)
    if hash_only:
        click.echo(digest)
        return
    ctx.output({"canonical": canonical_json(payload), "hash": digest})


@cli.command('validate')
@click.argument('schema_name', type=click.Choice(sorted(NAMED_SCHEMAS)))
@click.argument('source', default='-')
@pass_context
@handle_cli_error
def validate_command(ctx: CLIContext, schema_name: str, source: str):
    """Validate a JSON payload against a named wire schema."""
    outcome = validate(NAMED_SCHEMAS[schema_name], load_json_input(source))
    if not outcome.ok:
        click.echo(f"Invalid: {outcome.error}", err=True)
        sys.exit(1)
    ctx.output(canonicalize(outcome.value))


@cli.command('state')
@click.argument('symbol')
@pass_context
@handle_cli_error
def state_command(ctx: CLIContext, symbol: str):
    """Show the current state of a token."""
    provider = ctx.provider()
    try:
        state = asyncio.run(provider.query(symbol))
    finally:
        provider.close()

    if state is None:
        click.echo(f"Token {symbol} not found", err=True)
        sys.exit(1)
    ctx.output(canonicalize(state.to_wire()))


@cli.command('balance')
@click.argument('symbol')
@click.argument('address')
@pass_context
@handle_cli_error
def balance_command(ctx: CLIContext, symbol: str, address: str):
    """Show an account's balance and status for a token."""
    provider = ctx.provider()
    try:
        account = asyncio.run(provider.query_account(symbol, address))
    finally:
        provider.close()
    ctx.output(canonicalize(account.to_wire()))


@cli.command('keygen')
@pass_context
def keygen_command(ctx: CLIContext):
    """Generate a signing key and print its address."""
    prefix = ctx.config.get('signer.address_prefix', 'ftg1')
    private_key = PrivateKey()
    signer = LocalSigner(private_key, address_prefix=prefix)
    ctx.output({
        "address": signer.address,
        "public_key": signer.public_key.hex,
        "private_key": private_key.hex,
    })


@cli.group('config')
def config_group():
    """Configuration management commands."""


@config_group.command('show')
@click.argument('key_path', required=False)
@pass_context
def config_show(ctx: CLIContext, key_path: Optional[str]):
    """Show the merged configuration, or one dot-path value."""
    if key_path:
        value = ctx.config.get(key_path)
        if value is None:
            click.echo(f"No value for {key_path}", err=True)
            sys.exit(1)
        ctx.output(value if isinstance(value, dict) else {key_path: value})
        return
    ctx.output(ctx.config.load())


@config_group.command('validate')
@pass_context
def config_validate(ctx: CLIContext):
    """Validate the merged configuration."""
    errors = ctx.config.validate()
    for error in errors:
        click.echo(f"  - {error}", err=True)
    if errors:
        sys.exit(1)
    sources = ", ".join(ctx.config.get_sources())
    click.echo(f"Configuration OK ({sources})")


def main():
    cli(prog_name='ftgov')


if __name__ == '__main__':
    main()
