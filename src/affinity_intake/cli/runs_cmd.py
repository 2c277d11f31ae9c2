"""Runs command: list stored runs for a user."""

import click

from affinity_intake.config.loader import load_config
from affinity_intake.persistence import DEFAULT_SORT, SORT_ORDERS, RunStore


def _fmt(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.3f}"
    if isinstance(value, list):
        return ",".join(value) or "-"
    return str(value)


@click.command('runs')
@click.option('--user-id', required=True, help='Owner of the runs')
@click.option('--q', 'search', default=None, help='Search memo, ligand or gene name')
@click.option(
    '--sort',
    type=click.Choice(sorted(SORT_ORDERS)),
    default=DEFAULT_SORT,
    show_default=True,
    help='Sort order'
)
@click.option('--page', type=int, default=0, show_default=True, help='Zero-based page index')
@click.option('--page-size', type=int, default=20, show_default=True, help='Rows per page')
@click.pass_context
def runs(ctx, user_id, search, sort, page, page_size):
    """List stored runs for a user."""
    config = load_config(ctx.obj['config_path'])

    with RunStore.from_config(config) as store:
        df, total = store.list_runs(
            user_id,
            search=search,
            sort=sort,
            page=page,
            page_size=page_size,
        )

    click.echo(f"{total} runs (page {page}, {df.height} shown)")
    for row in df.iter_rows(named=True):
        click.echo(
            f"{row['id'][:8]}  {row['status']:<7}  "
            f"{_fmt(row['ligand_name']):<16}  {_fmt(row['gene_name']):<10}  "
            f"affinity={_fmt(row['affinity_value'])}  "
            f"assoc={_fmt(row['association_score'])}  "
            f"warnings={_fmt(row['warnings'])}"
        )
