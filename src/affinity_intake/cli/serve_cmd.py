"""Serve command: run the HTTP API with uvicorn."""

import os

import click
import uvicorn

from affinity_intake.config.loader import CONFIG_PATH_ENV


@click.command('serve')
@click.option('--host', default='127.0.0.1', show_default=True, help='Bind address')
@click.option('--port', type=int, default=8000, show_default=True, help='Bind port')
@click.pass_context
def serve(ctx, host, port):
    """Serve POST /runs and GET /runs.

    The API reads the same config file; MODEL_VERSION, IDENTITY_URL and
    IDENTITY_API_KEY environment variables override it.
    """
    os.environ.setdefault(CONFIG_PATH_ENV, str(ctx.obj['config_path']))
    uvicorn.run(
        "affinity_intake.api.main:create_logged_app",
        factory=True,
        host=host,
        port=port,
    )
