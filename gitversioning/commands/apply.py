"""
Apply command for gitversioning.

Versions the project in a directory and all of its module projects,
writing a `.git-versioned-pom.xml` next to every related descriptor.
"""

from pathlib import Path
from typing import Tuple

import click

from ..cli_utils import parse_user_properties, standard_command
from ..config import CommandOptions, OPTION_NAME_UPDATE_POM
from ..domain.gav import GAV
from ..infra.pom_reader import POM_FILE_NAME
from ..services.versioning_service import BuildContext, VersioningService, GIT_VERSIONING_POM_NAME


@click.command('apply')
@click.argument('project_dir', type=click.Path(exists=True, file_okay=False, path_type=Path), default='.')
@click.option('-D', 'defines', multiple=True, metavar='NAME=VALUE',
              help='Build parameter, e.g. -D git.branch=main (available as ${property.NAME})')
@click.option('--update-pom', is_flag=True, default=None, help='Overwrite the original descriptor files')
@standard_command
def apply_handler(project_dir: Path, defines: Tuple[str, ...], update_pom: bool):
    """Version PROJECT_DIR/pom.xml and its modules from the git situation."""
    user_properties = parse_user_properties(defines)
    if update_pom:
        user_properties[OPTION_NAME_UPDATE_POM] = 'true'

    context = BuildContext(execution_root=project_dir.resolve(), options=CommandOptions(user_properties))
    service = VersioningService(context)
    models = service.process_build(project_dir / POM_FILE_NAME)

    results = []
    for model in models:
        versioned_pom_file = model.project_directory / GIT_VERSIONING_POM_NAME
        gav = GAV.of(model)
        results.append({
            'project': gav.project_id,
            'version': gav.version,
            'pom': str(model.pom_file),
            'versioned_pom': str(versioned_pom_file) if versioned_pom_file.exists() else None,
        })
    return results
