#!/usr/bin/env python3

import click

from gitversioning import __version__
from gitversioning.commands.apply import apply_handler
from gitversioning.commands.situation import situation_handler
from gitversioning.commands.config import config_cmd


@click.group()
@click.version_option(version=__version__)
def cli():
    """gitversioning - Derive Maven project versions from git.

    Matches the current branch or tag against configured ref rules and
    rewrites the versions of all related project descriptors.
    """
    pass


cli.add_command(apply_handler, name='apply')
cli.add_command(situation_handler, name='situation')
cli.add_command(config_cmd, name='config')


def main():
    cli()

if __name__ == "__main__":
    main()
