"""
CLI argument parsing module for the OpenDMA XML exporter.
Handles command-line interface, argument validation and the run entry point.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich import print as rprint

from .. import __version__
from ..config import Config
from ..exceptions import ExporterError
from ..export import print_export_summary, run_export
from ..utils import logger, setup_logging

PROPERTIES_HELP = """
The properties file contains a key-value list defining the source and target of this export.
Each entry is one key=value line. The key: value and key value forms and backslash
line continuations of Java properties files are not supported.
Possible keys are:
  SystemProperty.xxxx : Will be set as environment variable xxxx before export
  AdaptorClass        : Module path of the adaptor providing get_session(properties)
  AdaptorSystemId     : Registered name of the adaptor to be used (e.g. memory)
  Session.xxxx        : Set property xxxx for session setup
  Repository          : The ID of the repository to be exported
  ExcludeClasses      : blank separated list of class name patterns to be excluded from export
  ExcludeIds          : blank separated list of IDs of objects to be excluded from export
  Outfile             : The file where the XML export is written to. Default is OpenDMA.xml
  ContentDirectory    : The directory where data files are written to. Only if ExportContent=true. Default is 'data'
  ExportContent       : true/false Export also Content. Default is false
  Verbose             : 0/1/2 Degree of progress messages. Default is 1
"""


class ExporterArgumentParser:
    """
    Command-line argument parser for the exporter.
    """

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="odma-xml-export",
            description="OpenDMA XML Exporter",
            epilog=PROPERTIES_HELP,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument(
            "properties",
            nargs="?",
            type=Path,
            help="Properties file defining source and target of the export",
        )
        parser.add_argument(
            "--env",
            type=Path,
            metavar="ENV_FILE",
            help="Read ODMA_* settings from the environment and this .env file instead",
        )

        overrides = parser.add_argument_group("Overrides")
        overrides.add_argument("--outfile", type=Path, help="Output XML file")
        overrides.add_argument(
            "--content-directory", type=str, help="Directory for content data files"
        )
        overrides.add_argument(
            "--export-content",
            action="store_true",
            default=None,
            help="Export content streams into data files",
        )
        overrides.add_argument(
            "--verbose",
            "-v",
            type=int,
            choices=[0, 1, 2],
            help="Degree of progress messages",
        )
        parser.add_argument(
            "--version", action="version", version=f"%(prog)s {__version__}"
        )
        return parser

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        parsed = self.parser.parse_args(args)
        self._validate_args(parsed)
        return parsed

    def _validate_args(self, args: argparse.Namespace):
        if args.properties is None and args.env is None:
            self.parser.error("either a properties file or --env is required")
        if args.properties is not None and args.env is not None:
            self.parser.error("a properties file and --env are mutually exclusive")

    def create_config_from_args(self, args: argparse.Namespace) -> Config:
        if args.env is not None:
            config = Config.from_env(args.env)
        else:
            config = Config.from_properties(args.properties)

        if args.outfile is not None:
            config.outfile = args.outfile
        if args.content_directory is not None:
            config.content_directory = args.content_directory
        if args.export_content:
            config.export_content = True
        if args.verbose is not None:
            config.verbose = args.verbose
        return config


def main(argv: Optional[List[str]] = None) -> int:
    rprint(f"[bold]OpenDMA XML Exporter[/bold] version {__version__}")
    parser = ExporterArgumentParser()
    args = parser.parse_args(argv)

    try:
        config = parser.create_config_from_args(args)
    except ExporterError as e:
        rprint(f"[bold red]Configuration error:[/bold red] {e}")
        return 1

    setup_logging(config.verbose)
    try:
        statistics = run_export(config)
    except ExporterError as e:
        logger.error(f"Error performing export: {e}")
        return 1
    except Exception as e:
        logger.opt(exception=e).error("Error performing export:")
        return 1

    print_export_summary(statistics)
    return 0


if __name__ == "__main__":
    sys.exit(main())
