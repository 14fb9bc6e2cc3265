"""
OpenDMA XML Exporter
Main package exports.
"""

__version__ = "0.7.0"

from .api import SYSTEM_NAMESPACE, DataType, QName
from .config import Config
from .exceptions import (
    AdaptorError,
    ConfigError,
    ContentIOError,
    ExporterError,
    InvariantViolation,
    ObjectNotFoundError,
)
from .export import ExportStatistics, XmlExporter, run_export
from .utils import logger, setup_logging

__all__ = [
    "__version__",
    # Model
    "DataType",
    "QName",
    "SYSTEM_NAMESPACE",
    # Configuration
    "Config",
    # Export
    "XmlExporter",
    "ExportStatistics",
    "run_export",
    # Exceptions
    "ExporterError",
    "ConfigError",
    "AdaptorError",
    "ObjectNotFoundError",
    "InvariantViolation",
    "ContentIOError",
    # Utilities
    "logger",
    "setup_logging",
]
