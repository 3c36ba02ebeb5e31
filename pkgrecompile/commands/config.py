import click
from pkgrecompile.config import load_config
import json


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
def show_config(pretty):
    """Show the current configuration with all merges applied.

    Defaults, then the user config file, then PKGRECOMPILE_* environment
    variables.
    """
    config = load_config()

    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))


@config_cmd.command("path")
def config_path():
    """Show the config file path being used."""
    from pkgrecompile.config import get_config_path

    config_path = get_config_path()
    print(json.dumps({"config_path": str(config_path), "exists": config_path.exists()}))
