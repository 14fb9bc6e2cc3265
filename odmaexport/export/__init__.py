"""
Export engine for the OpenDMA XML exporter.

This module provides:
- Export driver and run orchestration (XmlExporter, run_export)
- Object and property element writers (ObjectDumper, PropertySerializer)
- Typed value rendering (ValueEncoder)
- Class hierarchy traversal (ClassTreeWalker)
- Reference exclusion policy (ExclusionFilter)
- Buffered output file (BufferedWriter)
"""

from .class_tree import ClassTreeWalker
from .context import ExportContext, ExportStatistics
from .dumper import ObjectDumper, PropertySerializer
from .encoder import ValueEncoder, escape_xml, format_datetime
from .exporter import XmlExporter, print_export_summary, run_export
from .filter import ExclusionFilter
from .writer import BufferedWriter

__all__ = [
    "BufferedWriter",
    "ClassTreeWalker",
    "ExclusionFilter",
    "ExportContext",
    "ExportStatistics",
    "ObjectDumper",
    "PropertySerializer",
    "ValueEncoder",
    "XmlExporter",
    "escape_xml",
    "format_datetime",
    "print_export_summary",
    "run_export",
]
