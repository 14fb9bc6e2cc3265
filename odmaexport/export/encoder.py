"""
Typed value rendering for property elements.

Every data type has exactly one handler. Handlers return the text placed in a
<Value> element, or None when nothing is written for the value. Reference
and content values have side effects on the export context: references are
queued or put on the caller's non-retrievable frontier, content streams are
copied into numbered data files.
"""

import base64
import math
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..api import SYSTEM_NAMESPACE, DataType, OdmaObject, QName
from ..exceptions import ContentIOError, InvariantViolation
from ..utils import logger
from .context import ExportContext
from .filter import ExclusionFilter

Frontier = Dict[str, OdmaObject]

_XML_ESCAPES = str.maketrans(
    {
        '"': "&#x0022;",
        "&": "&#x0026;",
        "'": "&#x0027;",
        "<": "&#x003C;",
        ">": "&#x003E;",
    }
)


def escape_xml(text: str) -> str:
    """Replace the five XML special characters with numeric references."""
    return text.translate(_XML_ESCAPES)


def format_datetime(value: datetime) -> str:
    """yyyy-MM-dd HH:mm:ss, sub-second part dropped, no timezone conversion."""
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


class ValueEncoder:
    def __init__(
        self,
        context: ExportContext,
        exclusion_filter: ExclusionFilter,
        export_content: bool = False,
        content_directory: str = "data",
    ):
        self.context = context
        self.exclusion_filter = exclusion_filter
        self.export_content = export_content
        self.content_directory = content_directory
        self._handlers: Dict[DataType, Callable[..., Optional[str]]] = {
            data_type: getattr(self, method)
            for data_type, method in _HANDLERS.items()
        }

    def encode(
        self,
        value: Any,
        data_type: DataType,
        property_qname: QName,
        frontier: Frontier,
    ) -> Optional[str]:
        handler = self._handlers.get(data_type)
        if handler is None:
            if data_type is DataType.GUID:
                raise InvariantViolation(
                    "GUID properties should have been omitted",
                    data_type=data_type,
                    property_name=str(property_qname),
                )
            raise InvariantViolation(
                f"Unhandled property type {data_type}",
                data_type=data_type,
                property_name=str(property_qname),
            )
        if data_type is DataType.REFERENCE:
            return handler(value, frontier)
        return handler(value)

    def _encode_string(self, value: str) -> str:
        return escape_xml(value)

    def _encode_number(self, value: Any) -> str:
        if isinstance(value, float):
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "Infinity" if value > 0 else "-Infinity"
            return repr(value)
        return str(value)

    def _encode_boolean(self, value: bool) -> str:
        return "true" if value else "false"

    def _encode_datetime(self, value: datetime) -> str:
        return format_datetime(value)

    def _encode_blob(self, value: bytes) -> str:
        return base64.b64encode(bytes(value)).decode("ascii")

    def _encode_id(self, value: Any) -> str:
        return escape_xml(str(value))

    def _encode_reference(self, referenced: OdmaObject, frontier: Frontier) -> Optional[str]:
        referenced_class = referenced.odma_class
        referenced_id = str(referenced.id)

        # System classes are referenced by id only and never exported
        if referenced_class.namespace == SYSTEM_NAMESPACE:
            return escape_xml(referenced_id)

        if not self.exclusion_filter.is_followable(
            referenced_id, str(referenced_class.qname)
        ):
            return None

        if not self.context.is_exported(referenced_id):
            if not referenced_class.retrievable:
                if referenced_id not in frontier:
                    frontier[referenced_id] = referenced
            elif self.context.enqueue(referenced_id, referenced_class.qname):
                logger.debug(f"      queued {referenced_id} ({referenced_class.qname})")
        return escape_xml(referenced_id)

    def _encode_content(self, content: Any) -> Optional[str]:
        if not self.export_content:
            return None

        number = self.context.next_content_number()
        filename = f"{self.content_directory}/content{number}.dat"
        data_dir = Path(self.content_directory)
        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ContentIOError(
                "Error creating directory for content data files", path=data_dir
            ) from e

        try:
            stream = content.get_stream()
            try:
                with open(filename, "wb") as fos:
                    shutil.copyfileobj(stream, fos)
            finally:
                stream.close()
        except Exception as e:
            raise ContentIOError(
                "Error exporting content into data file", path=filename
            ) from e

        self.context.statistics.content_files += 1
        return filename


_HANDLERS: Dict[DataType, str] = {
    DataType.STRING: "_encode_string",
    DataType.INTEGER: "_encode_number",
    DataType.SHORT: "_encode_number",
    DataType.LONG: "_encode_number",
    DataType.FLOAT: "_encode_number",
    DataType.DOUBLE: "_encode_number",
    DataType.BOOLEAN: "_encode_boolean",
    DataType.DATETIME: "_encode_datetime",
    DataType.BLOB: "_encode_blob",
    DataType.REFERENCE: "_encode_reference",
    DataType.CONTENT: "_encode_content",
    DataType.ID: "_encode_id",
}

# GUID values never reach the encoder; every other type needs a handler.
_unhandled = set(DataType) - set(_HANDLERS) - {DataType.GUID}
if _unhandled:
    raise InvariantViolation(
        f"No value handler for {sorted(t.type_name for t in _unhandled)}"
    )
