"""Submit command: run the intake pipeline on local CSV files."""

import sys
from pathlib import Path

import click

from affinity_intake.config.loader import load_config_with_overrides
from affinity_intake.errors import IntakeError
from affinity_intake.indications import get_indication_label
from affinity_intake.pipeline import Submission, SubmissionPipeline


@click.command('submit')
@click.option(
    '--ligands',
    'ligands_path',
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Ligand CSV with a smiles column (optional name column)'
)
@click.option(
    '--targets',
    'targets_path',
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Target CSV with a sequence column (optional name column)'
)
@click.option('--user-id', required=True, help='User id recorded on every run')
@click.option('--memo', default='', help='Memo copied to every run')
@click.option(
    '--indication',
    default=None,
    help='Indication ID for association scoring (e.g. EFO_0000565)'
)
@click.option(
    '--model-version',
    default=None,
    help='Override the model version from the config file'
)
@click.pass_context
def submit(ctx, ligands_path, targets_path, user_id, memo, indication, model_version):
    """Submit ligand and target tables as runs.

    Builds every ligand x target pair, reuses done results with the same
    input hash, scores targets against the indication when given, and
    inserts all runs in one transaction.

    Examples:

        affinity-intake submit --ligands ligands.csv --targets targets.csv \\
            --user-id alice --indication EFO_0000565
    """
    config_path = ctx.obj['config_path']
    overrides = {'model_version': model_version} if model_version else {}

    pipeline = None
    try:
        config = load_config_with_overrides(config_path, overrides)
        pipeline = SubmissionPipeline.from_config(config)

        if indication:
            click.echo(f"Indication: {indication} ({get_indication_label(indication)})")

        result = pipeline.submit(
            Submission(
                ligand_data=ligands_path.read_bytes(),
                target_data=targets_path.read_bytes(),
                memo=memo,
                indication_id=indication,
            ),
            user_id=user_id,
        )

        summary = result.summary
        click.echo(click.style("=== Submission Summary ===", bold=True))
        click.echo(f"  Total:  {summary.total}")
        click.echo(click.style(f"  Queued: {summary.queued}", fg='green'))
        click.echo(click.style(f"  Done:   {summary.done}", fg='cyan'))
        click.echo(click.style(f"  Failed: {summary.failed}", fg='red' if summary.failed else None))

    except IntakeError as e:
        click.echo(click.style(f"Submission rejected: {e.message}", fg='red'), err=True)
        sys.exit(1)
    finally:
        if pipeline is not None:
            pipeline.close()
