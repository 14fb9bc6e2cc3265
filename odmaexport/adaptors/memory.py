"""
In-memory repository adaptor.

Holds a complete OpenDMA style object model in memory: the system namespace
meta classes (opendma:Object, opendma:Class, opendma:PropertyInfo,
opendma:Repository), user defined classes and their instances. Classes and
property descriptors are objects themselves and expose their attributes as
properties, so the exporter can write them like any other object.

Repositories are built programmatically or loaded from a JSON document:

    {
      "id": "repo1",
      "rootFolder": "doc1",
      "name": "Sample",
      "classes": [
        {"namespace": "custom", "name": "Doc", "parent": "opendma:Object",
         "retrievable": true,
         "properties": [{"name": "owner", "type": "reference"},
                        {"name": "tags", "type": "string", "multiValue": true}]}
      ],
      "objects": [
        {"id": "doc1", "class": "custom:Doc",
         "properties": {"custom:owner": "person1", "custom:tags": ["a", "b"]}}
      ]
    }
"""

import base64
import io
import uuid
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Dict, Iterable, Iterator, List, Optional, Union

import ujson

from ..api import SYSTEM_NAMESPACE, DataType, QName
from ..exceptions import AdaptorError, ObjectNotFoundError


def _sys(name: str) -> QName:
    return QName(SYSTEM_NAMESPACE, name)


ID = _sys("Id")
GUID = _sys("Guid")
NAME = _sys("Name")
NAMESPACE = _sys("Namespace")
PARENT = _sys("Parent")
RETRIEVABLE = _sys("Retrievable")
DECLARED_PROPERTIES = _sys("DeclaredProperties")
DATA_TYPE = _sys("DataType")
MULTI_VALUE = _sys("MultiValue")
ROOT_CLASS = _sys("RootClass")
ROOT_FOLDER = _sys("RootFolder")

QNameLike = Union[QName, str]


def _qname(value: QNameLike) -> QName:
    return value if isinstance(value, QName) else QName.parse(value)


class MemoryContent:
    """Binary content held in memory."""

    def __init__(self, data: bytes):
        self.data = bytes(data)

    def get_stream(self) -> IO[bytes]:
        return io.BytesIO(self.data)


class MemoryProperty:
    def __init__(self, info: "MemoryPropertyInfo", value: Any):
        self.qname = info.qname
        self.data_type = info.data_type
        self.multi_value = info.multi_value
        self._value = value

    @property
    def value(self) -> Any:
        if self.multi_value and self._value is not None:
            return list(self._value)
        return self._value

    def reference_iterable(self) -> Optional[Iterator["MemoryObject"]]:
        if self.data_type is not DataType.REFERENCE or not self.multi_value:
            raise TypeError(f"{self.qname} is not a multi valued reference property")
        if self._value is None:
            return None
        return (obj for obj in self._value)


class MemoryObject:
    def __init__(self, object_id: str, odma_class: Optional["MemoryClass"]):
        self._id = str(object_id)
        self._class = odma_class
        self._values: Dict[QName, Any] = {}
        self.guid = str(uuid.uuid5(uuid.NAMESPACE_URL, self._id))

    @property
    def id(self) -> str:
        return self._id

    @property
    def odma_class(self) -> "MemoryClass":
        return self._class

    def set(self, qname: QNameLike, value: Any) -> "MemoryObject":
        self._values[_qname(qname)] = value
        return self

    def _value_of(self, qname: QName) -> Any:
        if qname == ID:
            return self._id
        if qname == GUID:
            return self.guid
        return self._values.get(qname)

    def get_property(self, qname: QNameLike) -> MemoryProperty:
        qname = _qname(qname)
        for info in self.odma_class.properties:
            if info.qname == qname:
                return MemoryProperty(info, self._value_of(qname))
        raise KeyError(f"Class {self.odma_class.qname} has no property {qname}")

    def __repr__(self):
        return f"{type(self).__name__}(id={self._id!r})"


class MemoryPropertyInfo(MemoryObject):
    def __init__(
        self,
        object_id: str,
        namespace: str,
        name: str,
        data_type: DataType,
        multi_value: bool = False,
        odma_class: Optional["MemoryClass"] = None,
    ):
        super().__init__(object_id, odma_class)
        self.namespace = namespace
        self.name = name
        self.data_type = DataType.from_value(data_type)
        self.multi_value = multi_value

    @property
    def qname(self) -> QName:
        return QName(self.namespace, self.name)

    def _value_of(self, qname: QName) -> Any:
        if qname == NAME:
            return self.name
        if qname == NAMESPACE:
            return self.namespace
        if qname == DATA_TYPE:
            return self.data_type.value
        if qname == MULTI_VALUE:
            return self.multi_value
        return super()._value_of(qname)


class MemoryClass(MemoryObject):
    def __init__(
        self,
        object_id: str,
        namespace: str,
        name: str,
        parent: Optional["MemoryClass"] = None,
        retrievable: bool = True,
        odma_class: Optional["MemoryClass"] = None,
    ):
        super().__init__(object_id, odma_class)
        self.namespace = namespace
        self.name = name
        self.parent = parent
        self.retrievable = retrievable
        self._declared: List[MemoryPropertyInfo] = []
        self._sub_classes: List["MemoryClass"] = []
        if parent is not None:
            parent._sub_classes.append(self)

    @property
    def qname(self) -> QName:
        return QName(self.namespace, self.name)

    @property
    def properties(self) -> List[MemoryPropertyInfo]:
        inherited = self.parent.properties if self.parent is not None else []
        return inherited + self._declared

    @property
    def declared_properties(self) -> List[MemoryPropertyInfo]:
        return list(self._declared)

    @property
    def sub_classes(self) -> List["MemoryClass"]:
        return list(self._sub_classes)

    def _value_of(self, qname: QName) -> Any:
        if qname == NAME:
            return self.name
        if qname == NAMESPACE:
            return self.namespace
        if qname == PARENT:
            return self.parent
        if qname == RETRIEVABLE:
            return self.retrievable
        if qname == DECLARED_PROPERTIES:
            return list(self._declared)
        return super()._value_of(qname)


class MemoryRepository(MemoryObject):
    """
    A repository and its object store.

    Only objects of retrievable classes can be fetched by id; instances of
    non-retrievable classes exist only as property values of other objects.
    """

    def __init__(self, repository_id: str, name: Optional[str] = None):
        self._objects: Dict[str, MemoryObject] = {}
        self._classes: Dict[QName, MemoryClass] = {}

        object_class = self._add_class(MemoryClass(_class_id(_sys("Object")), SYSTEM_NAMESPACE, "Object"))
        class_class = self._add_class(MemoryClass(_class_id(_sys("Class")), SYSTEM_NAMESPACE, "Class", object_class))
        info_class = self._add_class(MemoryClass(_class_id(_sys("PropertyInfo")), SYSTEM_NAMESPACE, "PropertyInfo", object_class))
        repository_class = self._add_class(MemoryClass(_class_id(_sys("Repository")), SYSTEM_NAMESPACE, "Repository", object_class))
        for cls in (object_class, class_class, info_class, repository_class):
            cls._class = class_class

        self.define_property(object_class, "Id", DataType.ID)
        self.define_property(object_class, "Guid", DataType.GUID)
        self.define_property(class_class, "Name", DataType.STRING)
        self.define_property(class_class, "Namespace", DataType.STRING)
        self.define_property(class_class, "Parent", DataType.REFERENCE)
        self.define_property(class_class, "Retrievable", DataType.BOOLEAN)
        self.define_property(class_class, "DeclaredProperties", DataType.REFERENCE, multi_value=True)
        self.define_property(info_class, "Name", DataType.STRING)
        self.define_property(info_class, "Namespace", DataType.STRING)
        self.define_property(info_class, "DataType", DataType.INTEGER)
        self.define_property(info_class, "MultiValue", DataType.BOOLEAN)
        self.define_property(repository_class, "Name", DataType.STRING)
        self.define_property(repository_class, "RootClass", DataType.REFERENCE)
        self.define_property(repository_class, "RootFolder", DataType.REFERENCE)

        super().__init__(repository_id, repository_class)
        self.name = name or repository_id
        self.root_class = object_class
        self.root_folder: Optional[MemoryObject] = None
        self._objects[self.id] = self

    def _add_class(self, cls: MemoryClass) -> MemoryClass:
        self._classes[cls.qname] = cls
        self._objects[cls.id] = cls
        return cls

    def _value_of(self, qname: QName) -> Any:
        if qname == NAME:
            return self.name
        if qname == ROOT_CLASS:
            return self.root_class
        if qname == ROOT_FOLDER:
            return self.root_folder
        return super()._value_of(qname)

    def get_class(self, qname: QNameLike) -> MemoryClass:
        try:
            return self._classes[_qname(qname)]
        except KeyError:
            raise ObjectNotFoundError(f"Class {qname} not found") from None

    def define_class(
        self,
        qname: QNameLike,
        parent: Optional[Union[MemoryClass, QNameLike]] = None,
        retrievable: bool = True,
    ) -> MemoryClass:
        qname = _qname(qname)
        if qname in self._classes:
            raise ValueError(f"Class {qname} already defined")
        if parent is None:
            parent = self.root_class
        elif not isinstance(parent, MemoryClass):
            parent = self.get_class(parent)
        cls = MemoryClass(
            _class_id(qname),
            qname.namespace,
            qname.name,
            parent,
            retrievable,
            odma_class=self._classes[_sys("Class")],
        )
        return self._add_class(cls)

    def define_property(
        self,
        odma_class: MemoryClass,
        name: str,
        data_type: Union[DataType, int, str],
        multi_value: bool = False,
        namespace: Optional[str] = None,
    ) -> MemoryPropertyInfo:
        namespace = namespace or odma_class.namespace
        info = MemoryPropertyInfo(
            f"prop:{odma_class.qname}/{namespace}:{name}",
            namespace,
            name,
            data_type,
            multi_value,
            odma_class=self._classes[_sys("PropertyInfo")],
        )
        odma_class._declared.append(info)
        self._objects[info.id] = info
        return info

    def create_object(
        self,
        odma_class: Union[MemoryClass, QNameLike],
        object_id: Optional[str] = None,
        values: Optional[Dict[QNameLike, Any]] = None,
    ) -> MemoryObject:
        if not isinstance(odma_class, MemoryClass):
            odma_class = self.get_class(odma_class)
        obj = MemoryObject(object_id or str(uuid.uuid4()), odma_class)
        for qname, value in (values or {}).items():
            obj.set(qname, value)
        if odma_class.retrievable:
            if obj.id in self._objects:
                raise ValueError(f"Duplicate object id {obj.id}")
            self._objects[obj.id] = obj
        return obj

    def get_object(self, object_id: str) -> MemoryObject:
        try:
            return self._objects[str(object_id)]
        except KeyError:
            raise ObjectNotFoundError(
                "Object not found", object_id=str(object_id)
            ) from None


class MemorySession:
    def __init__(self, repositories: Iterable[MemoryRepository] = ()):
        self._repositories: Dict[str, MemoryRepository] = {r.id: r for r in repositories}

    def add_repository(self, repository: MemoryRepository):
        self._repositories[repository.id] = repository

    def get_repository(self, repository_id: str) -> MemoryRepository:
        try:
            return self._repositories[str(repository_id)]
        except KeyError:
            raise ObjectNotFoundError(
                "Repository not found", object_id=str(repository_id)
            ) from None

    def get_object(self, repository_id: str, object_id: str) -> MemoryObject:
        return self.get_repository(repository_id).get_object(object_id)


def _class_id(qname: QName) -> str:
    return f"class:{qname}"


def load_repository(path: Union[str, Path]) -> MemoryRepository:
    path = Path(path)
    data = ujson.loads(path.read_bytes().decode("utf-8"))
    return repository_from_dict(data, base_path=path.parent)


def repository_from_dict(data: Dict[str, Any], base_path: Path = Path(".")) -> MemoryRepository:
    repository = MemoryRepository(data["id"], data.get("name"))

    for class_data in data.get("classes", []):
        cls = repository.define_class(
            QName(class_data["namespace"], class_data["name"]),
            parent=class_data.get("parent"),
            retrievable=class_data.get("retrievable", True),
        )
        for prop_data in class_data.get("properties", []):
            repository.define_property(
                cls,
                prop_data["name"],
                prop_data["type"],
                multi_value=prop_data.get("multiValue", False),
                namespace=prop_data.get("namespace"),
            )

    # References may point forward, so values are assigned in a second pass
    objects: Dict[str, MemoryObject] = {}
    for object_data in data.get("objects", []):
        obj = repository.create_object(object_data["class"], object_data["id"])
        objects[obj.id] = obj

    def resolve(ref_id: str) -> MemoryObject:
        if ref_id in objects:
            return objects[ref_id]
        return repository.get_object(ref_id)

    for object_data in data.get("objects", []):
        obj = objects[object_data["id"]]
        for qname_str, raw in object_data.get("properties", {}).items():
            info = _find_property(obj.odma_class, _qname(qname_str))
            if raw is None:
                obj.set(info.qname, None)
            elif info.multi_value:
                obj.set(info.qname, [_convert(v, info.data_type, resolve, base_path) for v in raw])
            else:
                obj.set(info.qname, _convert(raw, info.data_type, resolve, base_path))

    if data.get("rootFolder"):
        repository.root_folder = resolve(str(data["rootFolder"]))

    return repository


def _find_property(odma_class: MemoryClass, qname: QName) -> MemoryPropertyInfo:
    for info in odma_class.properties:
        if info.qname == qname:
            return info
    raise ValueError(f"Class {odma_class.qname} has no property {qname}")


def _convert(raw: Any, data_type: DataType, resolve, base_path: Path) -> Any:
    if data_type is DataType.REFERENCE:
        return resolve(str(raw))
    if data_type is DataType.DATETIME:
        return datetime.fromisoformat(raw)
    if data_type is DataType.BLOB:
        return base64.b64decode(raw)
    if data_type is DataType.CONTENT:
        if isinstance(raw, dict) and "file" in raw:
            return MemoryContent((base_path / raw["file"]).read_bytes())
        if isinstance(raw, dict) and "base64" in raw:
            return MemoryContent(base64.b64decode(raw["base64"]))
        return MemoryContent(str(raw).encode("utf-8"))
    if data_type in (DataType.FLOAT, DataType.DOUBLE):
        return float(raw)
    if data_type in (DataType.INTEGER, DataType.SHORT, DataType.LONG):
        return int(raw)
    if data_type is DataType.BOOLEAN:
        return bool(raw)
    return raw


def get_session(properties: Dict[str, str]) -> MemorySession:
    """Adaptor entry point; ``path`` names the JSON repository document."""
    path = properties.get("path")
    if not path:
        raise AdaptorError("Session property 'path' is required", adaptor="memory")
    try:
        repository = load_repository(path)
    except (OSError, ValueError, KeyError, ObjectNotFoundError) as e:
        raise AdaptorError(f"Can not load repository from {path}: {e}", adaptor="memory") from e
    return MemorySession([repository])
