#!/usr/bin/env python3

import click

from pkgrecompile import __version__
from pkgrecompile.commands.run import run_cmd
from pkgrecompile.commands.plan import plan_cmd
from pkgrecompile.commands.config import config_cmd


@click.group()
@click.version_option(__version__, prog_name="pkgrecompile")
def cli():
    """pkgrecompile - Recompile installed packages, once per format.

    Discovers the packages under a node_modules-style directory, orders them
    by their dependencies and recompiles every format that has not been
    processed yet.
    """
    pass


cli.add_command(run_cmd)
cli.add_command(plan_cmd)
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
