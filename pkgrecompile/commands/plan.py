"""
The `plan` command: show the tasks a run would perform, without compiling.
"""

import logging

import click

from ..cli_utils import add_common_options, standard_command
from ..config import configure_logging, load_config
from ..infra.file_system import FileSystem
from ..main import analyze
from .run import build_options

logger = logging.getLogger(__name__)


@click.command("plan")
@add_common_options('source', 'properties', 'target', 'first_only', 'tsconfig', 'loglevel')
@click.option('--table', 'as_table', is_flag=True, help='Render as a table instead of JSONL')
@add_common_options('quiet')
@standard_command
def plan_cmd(source, properties, target, first_only, tsconfig, loglevel, as_table, quiet):
    """List the planned tasks in processing order.

    Nothing is written. Formats already marked processed are left out, and
    entry-points with none of the considered formats are reported as a
    warning.
    """
    config = load_config()
    configure_logging(loglevel or config.get("logging", {}).get("level", "info"))

    options = build_options(
        config,
        source=source,
        properties=properties,
        target=target,
        first_only=first_only,
        tsconfig=tsconfig,
    )
    analysis = analyze(FileSystem(), None, options)
    unprocessable = analysis.unprocessable_error()
    if unprocessable is not None:
        logger.warning(str(unprocessable))
    rows = [dict(task.to_dict(), order=index) for index, task in enumerate(analysis.tasks, start=1)]

    if as_table:
        from ..render import render_plan_table
        render_plan_table(rows)
        return None

    return rows
