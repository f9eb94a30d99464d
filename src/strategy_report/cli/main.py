"""Main CLI entry point for Strategy Report."""

import click

from strategy_report import __version__
from strategy_report.cli.commands.analyze import analyze_command


@click.group()
@click.version_option(version=__version__)
def main():
    """Strategy Report - Trading Strategy Report Analyzer"""
    pass


main.add_command(analyze_command)


if __name__ == "__main__":
    main()
