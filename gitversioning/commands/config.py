"""
Config command for gitversioning.

Prints the effective versioning configuration of a project directory.
"""

from pathlib import Path

import click

from ..cli_utils import standard_command
from ..config import config_to_dict, find_build_state_directory, load_config


@click.command('config')
@click.argument('directory', type=click.Path(exists=True, file_okay=False, path_type=Path), default='.')
@standard_command
def config_cmd(directory: Path):
    """Show the effective configuration for DIRECTORY."""
    return config_to_dict(load_config(find_build_state_directory(directory)))
