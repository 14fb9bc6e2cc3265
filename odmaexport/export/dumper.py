"""
Object and property element writers.

ObjectDumper owns the exported-set check that breaks reference cycles and
the inline embedding of non-retrievable objects. PropertySerializer writes
one <Property> element and isolates failures to that element.
"""

from typing import TextIO

from ..api import DataType, OdmaObject, OdmaPropertyInfo
from ..exceptions import FATAL_ERRORS
from ..utils import logger
from .context import ExportContext
from .encoder import Frontier, ValueEncoder, escape_xml


class PropertySerializer:
    def __init__(self, out: TextIO, encoder: ValueEncoder, context: ExportContext):
        self.out = out
        self.encoder = encoder
        self.context = context

    def serialize(self, pi: OdmaPropertyInfo, obj: OdmaObject, frontier: Frontier):
        data_type = DataType.from_value(pi.data_type)
        if data_type is DataType.GUID:
            return

        self.out.write(
            f'        <Property namespace="{escape_xml(pi.namespace)}"'
            f' name="{escape_xml(pi.name)}" type="{data_type.type_name}"'
            f' multiValue="{"true" if pi.multi_value else "false"}">'
        )
        try:
            prop = obj.get_property(pi.qname)
            if prop.multi_value:
                self._write_multi_value(prop, frontier)
            else:
                self._write_single_value(prop, frontier)
        except FATAL_ERRORS:
            raise
        except Exception as e:
            self.context.statistics.property_errors += 1
            logger.opt(exception=e).error(
                f"----> Error dumping value of property {pi.qname} of object "
                f"{obj.id} ({obj.odma_class.qname})"
            )
        self.out.write("</Property>\n")

    def _write_multi_value(self, prop, frontier: Frontier):
        data_type = DataType.from_value(prop.data_type)
        if data_type is DataType.REFERENCE:
            values = prop.reference_iterable()
        else:
            values = prop.value
        if values is None:
            return
        for value in values:
            self._write_value(value, data_type, prop, frontier)

    def _write_single_value(self, prop, frontier: Frontier):
        value = prop.value
        if value is None:
            return
        self._write_value(value, DataType.from_value(prop.data_type), prop, frontier)

    def _write_value(self, value, data_type: DataType, prop, frontier: Frontier):
        text = self.encoder.encode(value, data_type, prop.qname, frontier)
        if text is not None:
            self.out.write(f"<Value>{text}</Value>")


class ObjectDumper:
    """Writes <OdmaObject> elements, each object id at most once per run."""

    def __init__(self, out: TextIO, context: ExportContext, encoder: ValueEncoder):
        self.out = out
        self.context = context
        self.serializer = PropertySerializer(out, encoder, context)

    def dump(self, obj: OdmaObject):
        object_id = str(obj.id)
        self.context.dequeue(object_id)
        frontier: Frontier = {}
        if not self._write_object(obj, frontier, inline=False):
            return

        while frontier:
            inline_id = next(iter(frontier))
            inline_obj = frontier.pop(inline_id)
            if inline_id in self.context.pending:
                logger.warning(
                    f"ID of non-retrievable object {inline_id} has been found in the "
                    "export queue. This is an indicator for duplicate IDs in the repository."
                )
            try:
                written = self._write_object(inline_obj, frontier, inline=True)
            except FATAL_ERRORS:
                raise
            except Exception as e:
                self.context.statistics.object_errors += 1
                logger.opt(exception=e).error(
                    f"----> Error dumping non-retrievable object {inline_id}"
                )
                continue
            if written:
                self.context.statistics.inline_objects += 1

    def _write_object(self, obj: OdmaObject, frontier: Frontier, inline: bool) -> bool:
        object_id = str(obj.id)
        if self.context.is_exported(object_id):
            self.context.statistics.duplicates_skipped += 1
            logger.warning(f"Tried to export an already exported object: {object_id}")
            return False

        # Resolved before anything is written, so a failing class lookup
        # leaves no partial element behind.
        odma_class = obj.odma_class
        properties = list(odma_class.properties or ())
        if inline:
            logger.debug(f"    >> {object_id} ({odma_class.qname})")
        else:
            logger.debug(f"    > {object_id}")

        # Marked before the properties are written so that references back
        # to this object are not queued again.
        self.context.mark_exported(object_id)
        self.out.write(
            f'    <OdmaObject classNamespace="{escape_xml(odma_class.namespace)}"'
            f' className="{escape_xml(odma_class.name)}">\n'
        )
        for pi in properties:
            logger.debug(f"        {'>>' if inline else '>'} {pi.qname}")
            try:
                self.serializer.serialize(pi, obj, frontier)
            except FATAL_ERRORS:
                raise
            except Exception as e:
                self.context.statistics.property_errors += 1
                kind = "non-retrievable object" if inline else "object"
                logger.opt(exception=e).error(
                    f"----> Error dumping property {pi.qname} of {kind} {object_id}"
                )
        self.out.write("    </OdmaObject>\n")
        return True
