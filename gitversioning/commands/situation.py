"""
Situation command for gitversioning.

Shows what the versioning pass would see: the git situation (with
overrides applied) and the ref rule it matches.
"""

import os
from pathlib import Path
from typing import Tuple

import click

from ..cli_utils import parse_user_properties, standard_command
from ..config import CommandOptions, find_build_state_directory, load_config
from ..resolver import resolve
from ..situation import build_git_situation


@click.command('situation')
@click.argument('directory', type=click.Path(exists=True, file_okay=False, path_type=Path), default='.')
@click.option('-D', 'defines', multiple=True, metavar='NAME=VALUE', help='Command option, e.g. -D git.tag=v1.0.0')
@click.option('--pretty', is_flag=True, help='Render a table instead of JSON')
@standard_command
def situation_handler(directory: Path, defines: Tuple[str, ...], pretty: bool):
    """Show the git situation and the matching ref rule of DIRECTORY."""
    options = CommandOptions(parse_user_properties(defines))
    situation = build_git_situation(directory, options, os.environ)
    config = load_config(find_build_state_directory(directory))
    match = resolve(situation, config.refs, config.rev, config.consider_tags_on_branches)

    row = {
        'root_directory': str(situation.root_directory),
        'commit': situation.rev,
        'timestamp': situation.timestamp.isoformat(),
        'branch': situation.branch,
        'tags': list(situation.tags),
        'clean': situation.clean,
        'match': None if match is None else {
            'type': match.ref_type.value,
            'ref': match.ref_name,
            'pattern': match.rule.pattern_string,
            'version': match.rule.version,
        },
    }

    if not pretty:
        return row

    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(show_header=True, header_style="bold")
    table.add_column("key")
    table.add_column("value")
    for key, value in row.items():
        if key == 'match':
            continue
        table.add_row(key, _format_value(value))
    if match is None:
        table.add_row("match", "[yellow]no matching ref configuration[/yellow]")
    else:
        table.add_row("match", f"{match.ref_type.name} - {match.ref_name} (pattern: {match.rule.pattern_string})")
        table.add_row("version format", str(match.rule.version))
    console.print(table)
    return None


def _format_value(value) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if isinstance(value, list):
        return ', '.join(str(v) for v in value)
    return str(value)
