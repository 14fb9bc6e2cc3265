"""
CLI module for the OpenDMA XML exporter.

This module provides:
- Command-line argument parsing and validation
- Configuration creation from a properties file or the environment
- The console script entry point
"""

from .parser import ExporterArgumentParser, main

__all__ = ["ExporterArgumentParser", "main"]
