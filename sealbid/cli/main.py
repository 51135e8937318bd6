"""
Sealbid CLI - Command Line Interface for sealed-bid auctions

Runs every command against a local ledger persisted in the data directory.
Identities are kept as encrypted wallet files under <data-dir>/wallets.
"""

import json
from contextlib import contextmanager
from pathlib import Path

import click

from sealbid import __version__
from sealbid.core.config import load_config
from sealbid.utils.logger import configure_logging, get_logger

logger = get_logger("cli")


def wallet_options(f):
    """--wallet / --password options shared by commands that sign."""
    f = click.option(
        "--password",
        envvar="SEALBID_WALLET_PASSWORD",
        prompt=True,
        hide_input=True,
        help="Wallet password",
    )(f)
    f = click.option("--wallet", "wallet_name", required=True, help="Wallet name")(f)
    return f


@contextmanager
def reporting_errors():
    """Turn protocol errors into a message and a non-zero exit code."""
    from sealbid.core.errors import SealbidError

    try:
        yield
    except SealbidError as e:
        click.echo(f"❌ {type(e).__name__}: {e}")
        if e.retryable:
            click.echo("   This request can be retried later.")
        raise click.exceptions.Exit(1)


def get_ledger(ctx):
    """Open the data directory's ledger once per invocation."""
    from sealbid.core.auction import AuctionContract
    from sealbid.core.ledger import LocalLedger
    from sealbid.core.storage import StorageManager

    root = ctx.find_root()
    if "ledger" not in root.obj:
        config = root.obj["config"]
        ledger = LocalLedger(storage_manager=StorageManager(config.data_dir, config.db_name))
        ledger.install(AuctionContract(config))
        root.obj["ledger"] = ledger
        root.call_on_close(ledger.close)
        logger.debug(f"Opened {ledger!r} from {config.db_path}")
    return root.obj["ledger"]


def wallet_path(ctx, name: str) -> Path:
    return ctx.find_root().obj["config"].data_dir / "wallets" / f"{name}.json"


def get_client(ctx, wallet_name: str, password: str):
    from sealbid.client import AuctionClient, Wallet

    wallet = Wallet.load(wallet_path(ctx, wallet_name), password)
    ledger = get_ledger(ctx)
    wallet.enroll(ledger)
    return AuctionClient.connect(ledger, wallet)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (default: $SEALBID_DATA_DIR or ./data)")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, debug, data_dir):
    """Sealbid - sealed-bid auctions over a shared ledger"""
    overrides = {}
    if data_dir:
        overrides["data_dir"] = Path(data_dir).expanduser()
        overrides["log_dir"] = overrides["data_dir"] / "logs"
    config = load_config(**overrides)
    config.ensure_dirs()

    configure_logging(config, debug=debug)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Identity Commands
# =============================================================================


@cli.group()
def identity():
    """Identity (wallet) management commands"""
    pass


@identity.command("create")
@click.option("--name", required=True, help="Identity name")
@click.option("--org", required=True, help="Organization")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Encryption password")
@click.pass_context
def identity_create(ctx, name, org, password):
    """Create an encrypted wallet and enroll it on the ledger"""
    from sealbid.client import Wallet

    path = wallet_path(ctx, name)
    if path.exists():
        click.echo(f"❌ Wallet '{name}' already exists at {path}")
        raise click.exceptions.Exit(1)

    wallet = Wallet.create(name, org)
    with reporting_errors():
        wallet.enroll(get_ledger(ctx))
    wallet.save(path, password)

    click.echo(f"✓ Identity created: {wallet.identity}")
    click.echo(f"  Id: {wallet.identity.id}")
    click.echo(f"  Saved to: {path}")
    click.echo(f"  ⚠️  Remember your password - it cannot be recovered!")


@identity.command("list")
@click.pass_context
def identity_list(ctx):
    """List all wallets"""
    from sealbid.client import Wallet

    wallet_dir = ctx.find_root().obj["config"].data_dir / "wallets"
    files = sorted(wallet_dir.glob("*.json")) if wallet_dir.exists() else []
    if not files:
        click.echo("No identities found.")
        return

    for wallet_file in files:
        summary = Wallet.read_summary(wallet_file)
        click.echo(f"  {summary['name']}@{summary['org']}: {summary['address']}")


# =============================================================================
# Auction Commands
# =============================================================================


@cli.group()
def auction():
    """Auction lifecycle commands"""
    pass


@auction.command("create")
@click.argument("auction_id")
@click.argument("item")
@wallet_options
@click.pass_context
def auction_create(ctx, auction_id, item, wallet_name, password):
    """Open an auction for ITEM"""
    with reporting_errors():
        client = get_client(ctx, wallet_name, password)
        client.create_auction(auction_id, item)
    click.echo(f"✓ Auction {auction_id} created for {item!r}")


@auction.command("query")
@click.argument("auction_id")
@wallet_options
@click.pass_context
def auction_query(ctx, auction_id, wallet_name, password):
    """Print the public auction record"""
    with reporting_errors():
        record = get_client(ctx, wallet_name, password).query_auction(auction_id)
    click.echo(json.dumps(record.model_dump(mode="json"), indent=2))


@auction.command("close")
@click.argument("auction_id")
@wallet_options
@click.pass_context
def auction_close(ctx, auction_id, wallet_name, password):
    """Stop bidding and start the reveal phase"""
    with reporting_errors():
        get_client(ctx, wallet_name, password).close_auction(auction_id)
    click.echo(f"✓ Auction {auction_id} closed")


@auction.command("end")
@click.argument("auction_id")
@wallet_options
@click.pass_context
def auction_end(ctx, auction_id, wallet_name, password):
    """Finalize the auction and select the winner"""
    with reporting_errors():
        client = get_client(ctx, wallet_name, password)
        winner = client.end_auction(auction_id)
        record = client.query_auction(auction_id)
    click.echo(f"✓ Auction {auction_id} ended")
    click.echo(f"  Winner: {winner}")
    click.echo(f"  Price: {record.best_price}")


# =============================================================================
# Bid Commands
# =============================================================================


@cli.group()
def bid():
    """Bidding commands"""
    pass


@bid.command("create")
@click.argument("auction_id")
@click.argument("price", type=int)
@wallet_options
@click.pass_context
def bid_create(ctx, auction_id, price, wallet_name, password):
    """Store a bid in your organization's private collection"""
    with reporting_errors():
        bid_key = get_client(ctx, wallet_name, password).create_bid(auction_id, price)
    click.echo(f"✓ Bid stored")
    click.echo(f"  Bid key: {bid_key}")


@bid.command("query")
@click.argument("auction_id")
@click.argument("bid_key")
@wallet_options
@click.pass_context
def bid_query(ctx, auction_id, bid_key, wallet_name, password):
    """Print one of your own stored bids"""
    with reporting_errors():
        stored = get_client(ctx, wallet_name, password).query_bid(auction_id, bid_key)
    click.echo(json.dumps(stored.model_dump(), indent=2))


@bid.command("submit")
@click.argument("auction_id")
@click.argument("bid_key")
@wallet_options
@click.pass_context
def bid_submit(ctx, auction_id, bid_key, wallet_name, password):
    """Commit a stored bid to the auction"""
    with reporting_errors():
        commitment = get_client(ctx, wallet_name, password).submit_bid(auction_id, bid_key)
    click.echo(f"✓ Bid committed")
    click.echo(f"  Commitment: {commitment}")


@bid.command("reveal")
@click.argument("auction_id")
@click.argument("bid_key")
@wallet_options
@click.pass_context
def bid_reveal(ctx, auction_id, bid_key, wallet_name, password):
    """Reveal a committed bid"""
    with reporting_errors():
        get_client(ctx, wallet_name, password).reveal_bid(auction_id, bid_key)
    click.echo(f"✓ Bid {bid_key} revealed")


if __name__ == "__main__":
    cli()
