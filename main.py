#!/usr/bin/env python3
"""
OpenDMA XML Exporter
Main entry point for the application.
"""

import signal
import sys

from rich import print as rprint

from odmaexport.cli import main


def handle_sigint(signum, frame):
    """Handle SIGINT (Ctrl+C) signal."""
    rprint("\n[bold yellow]Export interrupted, output file is incomplete.[/bold yellow]")
    sys.exit(130)


if __name__ == "__main__":
    signal.signal(signal.SIGINT, handle_sigint)
    sys.exit(main())
