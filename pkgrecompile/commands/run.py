"""
The `run` command: recompile every package under a source directory.
"""

import logging
import time

import click

from ..cli_utils import add_common_options, standard_command
from ..config import configure_logging, load_config
from ..domain.path_mappings import PathMappings
from ..exit_codes import ConfigError
from ..main import RecompileOptions, run

logger = logging.getLogger(__name__)


def build_options(config, source=None, properties=(), target=None, first_only=False,
                  tsconfig=None, **overrides):
    """
    Merge command-line values over the `run` section of the configuration.

    Only values actually given on the command line win over the config.
    """
    run_config = config.get("run", {})

    properties_to_consider = list(properties) or run_config.get("properties")
    if isinstance(properties_to_consider, str):
        properties_to_consider = [p.strip() for p in properties_to_consider.split(',') if p.strip()]

    path_mappings = None
    if tsconfig:
        try:
            path_mappings = PathMappings.from_tsconfig(tsconfig)
        except ValueError as e:
            raise ConfigError(f"Cannot read path mappings from {tsconfig}: {e}")

    kwargs = dict(
        base_path=source or run_config.get("source", "./node_modules"),
        target_entry_point_path=target,
        properties_to_consider=properties_to_consider,
        compile_all_formats=not first_only and run_config.get("compile_all_formats", True),
        create_new_entry_point_formats=run_config.get("create_new_entry_points", False),
        backup_originals=run_config.get("backup", True),
        path_mappings=path_mappings,
        async_mode=run_config.get("async_mode", False),
        max_workers=run_config.get("max_workers", 8),
        transformer=run_config.get("transformer"),
    )
    kwargs.update({key: value for key, value in overrides.items() if value is not None})
    if kwargs["transformer"] is None:
        del kwargs["transformer"]
    return RecompileOptions(**kwargs)


@click.command("run")
@add_common_options('source', 'properties', 'target', 'first_only')
@click.option('--create-new-entry-points', is_flag=True,
              help='Write recompiled bundles under __pkgrecompile__/ instead of in place')
@click.option('--no-backup', is_flag=True, help='Do not keep .__pkgrecompile_bak copies of overwritten files')
@click.option('--async', 'async_mode', is_flag=True,
              help='Run asynchronously, on several worker processes when possible')
@click.option('--max-workers', type=click.IntRange(min=1), help='Upper bound on worker processes (default: 8)')
@add_common_options('tsconfig', 'loglevel')
@click.option('--transformer', help="Transformer to use, as 'module:attribute'")
@add_common_options('quiet')
@standard_command
def run_cmd(source, properties, target, first_only, create_new_entry_points, no_backup,
            async_mode, max_workers, tsconfig, loglevel, transformer, quiet):
    """Recompile packages and mark them as processed.

    Already processed formats are skipped, so running twice is safe.

    \b
    Examples:
        pkgrecompile run -s ./node_modules
        pkgrecompile run -p esm5 -p module --first-only
        pkgrecompile run -t ./node_modules/@scope/lib --async
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
        create_new_entry_point_formats=True if create_new_entry_points else None,
        backup_originals=False if no_backup else None,
        async_mode=True if async_mode else None,
        max_workers=max_workers,
        transformer=transformer,
    )
    logger.debug(f"Options: {options.to_dict()}")

    start_time = time.time()
    run(options)

    return {
        "status": "success",
        "base_path": str(options.base_path),
        "target": str(options.target_entry_point_path) if options.target_entry_point_path else None,
        "duration_seconds": round(time.time() - start_time, 2),
    }
