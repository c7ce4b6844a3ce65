#!/usr/bin/env python3
"""
ZSE Sync Runner - Pulls Zendesk organizations, users, tickets, comments and
topics and writes normalized records to JSON lines or ArangoDB.
"""

import logging
import signal
import sys
import threading

import click
import structlog
from pydantic import ValidationError

from services.ingest.client import AuthenticationError, ZendeskClient
from services.ingest.sinks import JsonLinesSink
from services.pipeline.config import SyncConfig
from services.pipeline.scheduler import SyncEngine

log = structlog.get_logger()


def configure_logging(verbose: bool):
    """Log to stderr so stdout stays free for JSON lines"""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def load_config(**options) -> SyncConfig:
    try:
        return SyncConfig.from_env(**options)
    except ValidationError as e:
        raise click.UsageError(f"Invalid configuration:\n{e}")


def credential_options(func):
    """Options shared by every command that talks to Zendesk"""
    options = [
        click.option("--domain", envvar="ZENDESK_DOMAIN", help="Zendesk domain, e.g. company.zendesk.com"),
        click.option("--user", envvar="ZENDESK_USER", help="Zendesk user (admin role)"),
        click.option("--password", envvar="ZENDESK_PASSWORD", help="Password (or use --api-token)"),
        click.option("--api-token", envvar="ZENDESK_API_TOKEN", help="API token (or use --password)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """Zendesk sync engine."""
    configure_logging(verbose)


@main.command()
@credential_options
def test(domain, user, password, api_token):
    """Check that the Zendesk credentials are valid."""
    config = load_config(domain=domain, user=user, password=password, api_token=api_token)
    with ZendeskClient(**config.client_kwargs()) as client:
        try:
            me = client.verify_credentials()
        except Exception as e:
            click.echo(f"❌ Zendesk connection failed: {e}", err=True)
            sys.exit(1)
    click.echo(f"✅ Connected to {config.domain} as {me.get('name')} (id {me.get('id')})")


@main.command()
@credential_options
@click.option("--organizations/--no-organizations", default=None, help="Fetch organizations")
@click.option("--users/--no-users", default=None, help="Fetch users")
@click.option("--tickets/--no-tickets", default=None, help="Fetch tickets")
@click.option("--topics/--no-topics", default=None, help="Fetch forum topics")
@click.option("--days", "days", type=float, default=None,
              help="Tickets updated in the last N days (-1 = all tickets, run once)")
@click.option("--comments/--no-comments", default=None, help="Fetch ticket comments")
@click.option("--append-comments/--no-append-comments", default=None,
              help="Attach comments to each ticket as one text field")
@click.option("--sleep", "sleep_minutes", type=float, default=None, help="Minutes between runs")
@click.option("--max-cycles", type=int, default=None, help="Stop after N runs")
@click.option("--sink", type=click.Choice(["jsonl", "arango"]), default="jsonl", help="Record destination")
@click.option("--output", "-o", default="-", help="JSON lines file (default: stdout)")
@click.option("--arango-host", envvar="ARANGODB_HOST", default="localhost", help="ArangoDB host")
@click.option("--arango-port", envvar="ARANGODB_PORT", type=int, default=8529, help="ArangoDB port")
@click.option("--arango-db", envvar="ARANGODB_DB", default="zse", help="ArangoDB database")
@click.option("--arango-password", envvar="ARANGODB_PASSWORD", default="", help="ArangoDB root password")
def run(domain, user, password, api_token, organizations, users, tickets, topics, days,
        comments, append_comments, sleep_minutes, max_cycles, sink, output,
        arango_host, arango_port, arango_db, arango_password):
    """Run the sync engine."""
    config = load_config(
        domain=domain,
        user=user,
        password=password,
        api_token=api_token,
        organizations=organizations,
        users=users,
        tickets=tickets,
        topics=topics,
        tickets_last_updated_n_days_ago=days,
        comments=comments,
        append_comments_to_tickets=append_comments,
        sleep_between_runs=sleep_minutes,
    )
    log.info(
        "Sync config",
        domain=config.domain,
        days=config.tickets_last_updated_n_days_ago,
        comments=config.comments,
        sink=sink,
    )

    if sink == "arango":
        from services.ingest.storage import ArangoStorage
        record_sink = ArangoStorage(
            host=arango_host, port=arango_port, database=arango_db, password=arango_password
        )
    else:
        record_sink = JsonLinesSink(output)

    stop_event = threading.Event()

    def request_stop(signum, frame):
        log.info("Shutdown requested", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    with ZendeskClient(**config.client_kwargs()) as client:
        engine = SyncEngine(config, client, record_sink)
        try:
            engine.run(stop_event=stop_event, max_cycles=max_cycles)
        except AuthenticationError as e:
            log.error("Authentication failed", error=str(e))
            sys.exit(1)
        finally:
            if isinstance(record_sink, JsonLinesSink):
                record_sink.close()


if __name__ == "__main__":
    main()
