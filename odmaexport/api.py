"""
Repository model consumed by the exporter.

The exporter never talks to a concrete repository implementation. Everything
it needs from an adaptor is described by the protocols in this module; see
odmaexport.adaptors.memory for a complete implementation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import IO, Any, Iterable, List, Optional, Protocol, Union

from .exceptions import InvariantViolation

SYSTEM_NAMESPACE = "opendma"


class DataType(Enum):
    """Closed set of property data types with their OpenDMA numeric ids."""

    STRING = 1
    INTEGER = 2
    SHORT = 3
    LONG = 4
    FLOAT = 5
    DOUBLE = 6
    BOOLEAN = 7
    DATETIME = 8
    BLOB = 9
    REFERENCE = 10
    CONTENT = 11
    ID = 100
    GUID = 101

    @property
    def type_name(self) -> str:
        return self.name.lower()

    @classmethod
    def from_value(cls, value: Union["DataType", int, str]) -> "DataType":
        """Resolve a member, numeric id or type name."""
        if isinstance(value, cls):
            return value
        try:
            if isinstance(value, str) and not value.isdigit():
                return cls[value.upper()]
            return cls(int(value))
        except (KeyError, ValueError, TypeError) as e:
            raise InvariantViolation(
                f"No data type for {value!r}", data_type=value
            ) from e


@dataclass(frozen=True)
class QName:
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}:{self.name}"

    @classmethod
    def parse(cls, text: str) -> "QName":
        namespace, _, name = text.rpartition(":")
        return cls(namespace, name)


class OdmaContent(Protocol):
    def get_stream(self) -> IO[bytes]:
        ...


class OdmaProperty(Protocol):
    qname: QName
    data_type: DataType
    multi_value: bool

    @property
    def value(self) -> Any:
        ...

    def reference_iterable(self) -> Optional[Iterable["OdmaObject"]]:
        ...


class OdmaObject(Protocol):
    @property
    def id(self) -> str:
        ...

    @property
    def odma_class(self) -> "OdmaClass":
        ...

    def get_property(self, qname: QName) -> OdmaProperty:
        ...


class OdmaPropertyInfo(OdmaObject, Protocol):
    namespace: str
    name: str
    data_type: DataType
    multi_value: bool

    @property
    def qname(self) -> QName:
        ...


class OdmaClass(OdmaObject, Protocol):
    namespace: str
    name: str
    retrievable: bool

    @property
    def qname(self) -> QName:
        ...

    @property
    def properties(self) -> List[OdmaPropertyInfo]:
        """Inherited and declared property descriptors, inherited first."""
        ...

    @property
    def declared_properties(self) -> List[OdmaPropertyInfo]:
        ...

    @property
    def sub_classes(self) -> List["OdmaClass"]:
        ...


class OdmaRepository(OdmaObject, Protocol):
    @property
    def root_class(self) -> OdmaClass:
        ...


class OdmaSession(Protocol):
    def get_repository(self, repository_id: str) -> OdmaRepository:
        ...

    def get_object(self, repository_id: str, object_id: str) -> OdmaObject:
        """Fetch a retrievable object; raises ObjectNotFoundError if unknown."""
        ...
