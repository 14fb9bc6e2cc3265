from ..api import SYSTEM_NAMESPACE, OdmaClass
from ..utils import logger
from .context import ExportContext
from .dumper import ObjectDumper


class ClassTreeWalker:
    """
    Pre-order walk over the class hierarchy.

    Classes and their declared property descriptors are exported as ordinary
    objects. Classes of the system namespace are not exported themselves, but
    their sub classes are still visited.
    """

    def __init__(self, dumper: ObjectDumper, context: ExportContext):
        self.dumper = dumper
        self.context = context

    def walk(self, cls: OdmaClass):
        if cls.namespace != SYSTEM_NAMESPACE:
            logger.info(f"Processing class {cls.qname}")
            # A non-retrievable class may already have been written inline
            # with a referencing object.
            if not self.context.is_exported(str(cls.id)):
                self.dumper.dump(cls)
                self.context.statistics.classes_exported += 1
            for pi in cls.declared_properties or ():
                logger.info(f"    Processing property {pi.qname}")
                if not self.context.is_exported(str(pi.id)):
                    self.dumper.dump(pi)
                    self.context.statistics.property_infos_exported += 1

        for sub_class in cls.sub_classes or ():
            self.walk(sub_class)
