"""
Immutable structures produced by the class file reader.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional, Union, TYPE_CHECKING

from .constants import ConstantPoolTag
from .errors import MethodNotFound

if TYPE_CHECKING:
    from .constant_pool import ConstantPool


@dataclass(frozen=True)
class ConstantClass:
    tag: ClassVar[ConstantPoolTag] = ConstantPoolTag.CLASS
    name_index: int


@dataclass(frozen=True)
class ConstantFieldref:
    tag: ClassVar[ConstantPoolTag] = ConstantPoolTag.FIELDREF
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class ConstantMethodref:
    tag: ClassVar[ConstantPoolTag] = ConstantPoolTag.METHODREF
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class ConstantNameAndType:
    tag: ClassVar[ConstantPoolTag] = ConstantPoolTag.NAME_AND_TYPE
    name_index: int
    descriptor_index: int


@dataclass(frozen=True)
class ConstantUtf8:
    """Raw Utf8 bytes; decoding happens where the text is used."""
    tag: ClassVar[ConstantPoolTag] = ConstantPoolTag.UTF8
    raw: bytes


@dataclass(frozen=True)
class ConstantString:
    tag: ClassVar[ConstantPoolTag] = ConstantPoolTag.STRING
    string_index: int


ConstantPoolEntry = Union[
    ConstantClass,
    ConstantFieldref,
    ConstantMethodref,
    ConstantNameAndType,
    ConstantUtf8,
    ConstantString,
]


@dataclass(frozen=True)
class AttributeInfo:
    """An attribute kept as an opaque body of exactly `length` bytes."""
    name_index: int
    length: int
    body: bytes


@dataclass(frozen=True)
class ExceptionTableEntry:
    """An entry in a Code attribute's exception table (parsed, never applied)."""
    start_pc: int
    end_pc: int
    handler_pc: int
    catch_type: int  # 0 catches everything, otherwise a Class index


@dataclass(frozen=True)
class CodeAttribute:
    name_index: int
    length: int
    max_stack: int
    max_locals: int
    code: bytes
    exception_table: tuple[ExceptionTableEntry, ...] = ()
    attributes: tuple[AttributeInfo, ...] = ()


@dataclass(frozen=True)
class MethodInfo:
    """A method; every attribute it declares is read as a Code attribute."""
    access_flags: int
    name_index: int
    descriptor_index: int
    code_attributes: tuple[CodeAttribute, ...] = ()

    def name(self, cp: "ConstantPool") -> str:
        return cp.get_utf8(self.name_index)

    def descriptor(self, cp: "ConstantPool") -> str:
        return cp.get_utf8(self.descriptor_index)


@dataclass(frozen=True)
class ClassFile:
    """A parsed class file."""
    magic: int
    minor_version: int
    major_version: int
    constant_pool: "ConstantPool"
    access_flags: int
    this_class: int
    super_class: int
    interfaces_count: int
    fields_count: int
    methods: tuple[MethodInfo, ...]
    attributes: tuple[AttributeInfo, ...]

    @property
    def version(self) -> tuple[int, int]:
        return (self.major_version, self.minor_version)

    @property
    def name(self) -> str:
        return self.constant_pool.class_name(self.this_class)

    @property
    def super_name(self) -> Optional[str]:
        if self.super_class == 0:
            return None
        return self.constant_pool.class_name(self.super_class)

    def find_method(self, name: str, descriptor: Optional[str] = None) -> MethodInfo:
        """Return the first method matching name (and descriptor, if given)."""
        cp = self.constant_pool
        for method in self.methods:
            if method.name(cp) != name:
                continue
            if descriptor is not None and method.descriptor(cp) != descriptor:
                continue
            return method
        wanted = name if descriptor is None else f"{name}{descriptor}"
        raise MethodNotFound(f"Method {wanted} not found in class {self.name}")
