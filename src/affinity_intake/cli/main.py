"""Main CLI entry point for affinity-intake.

Provides command group with global options and subcommands for intake operations.
"""

import logging
from pathlib import Path

import click

from affinity_intake import __version__
from affinity_intake.config.loader import load_config
from affinity_intake.indications import INDICATIONS
from affinity_intake.cli.runs_cmd import runs
from affinity_intake.cli.serve_cmd import serve
from affinity_intake.cli.submit_cmd import submit
from affinity_intake.persistence import RunStore


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to intake configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """affinity-intake: ligand x target run intake with dedup and association scoring.

    Parses ligand and target tables, builds every pair, reuses prior
    results by input hash, and records runs in DuckDB.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display intake information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"affinity-intake v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        click.echo(f"Config Hash: {config.config_hash()[:16]}...")
        click.echo(f"Model Version: {config.model_version or '(not set)'}")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Cache Directory: {config.cache_dir}")
        click.echo(f"  DuckDB Path: {config.duckdb_path}")
        click.echo()

        click.echo(click.style("Enrichment:", bold=True))
        click.echo(f"  Ensembl Lookup: {config.enrichment.ensembl_lookup_url}")
        click.echo(f"  Open Targets: {config.enrichment.opentargets_graphql_url}")
        click.echo(f"  Page Size: {config.enrichment.page_size}")
        click.echo(
            "  Indications: "
            + ", ".join(f"{option.id} ({option.label})" for option in INDICATIONS)
        )
        click.echo()

        click.echo(click.style("API Configuration:", bold=True))
        click.echo(f"  Rate Limit: {config.api.rate_limit_per_second} req/s")
        click.echo(f"  Max Attempts: {config.api.max_attempts}")
        click.echo(f"  Cache TTL: {config.api.cache_ttl_seconds}s")

        missing = config.missing_server_settings()
        if missing:
            click.echo()
            click.echo(click.style(
                f"Missing server settings: {', '.join(missing)}", fg='yellow'
            ))

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


@cli.command('init-db')
@click.pass_context
def init_db(ctx):
    """Create the runs table in the configured DuckDB database."""
    config = load_config(ctx.obj['config_path'])
    with RunStore.from_config(config) as store:
        click.echo(click.style(
            f"Runs table ready at {config.duckdb_path} ({store.count_runs()} runs)",
            fg='green',
        ))


cli.add_command(submit)
cli.add_command(runs)
cli.add_command(serve)


if __name__ == '__main__':
    cli()
