"""
Class file writer.

Produces class files in the subset the reader understands: Utf8, Class,
String, Fieldref, Methodref and NameAndType constants, no interfaces or
fields, one Code attribute per method.
"""

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .classfile import ExceptionTableEntry
from .constants import CLASS_MAGIC, AccessFlags, ClassFileVersion, ConstantPoolTag, Opcode
from .constant_pool import encode_modified_utf8
from .descriptors import parse_method_descriptor


class ConstantPoolBuilder:
    """Builds a deduplicated constant pool."""

    def __init__(self):
        self._entries: list[tuple] = [None]  # 1-indexed
        self._cache: dict = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _add(self, entry: tuple) -> int:
        if entry in self._cache:
            return self._cache[entry]
        idx = len(self._entries)
        self._entries.append(entry)
        self._cache[entry] = idx
        return idx

    def add_utf8(self, value: str) -> int:
        return self._add((ConstantPoolTag.UTF8, value))

    def add_class(self, internal_name: str) -> int:
        name_idx = self.add_utf8(internal_name)
        return self._add((ConstantPoolTag.CLASS, name_idx))

    def add_string(self, value: str) -> int:
        utf8_idx = self.add_utf8(value)
        return self._add((ConstantPoolTag.STRING, utf8_idx))

    def add_name_and_type(self, name: str, descriptor: str) -> int:
        name_idx = self.add_utf8(name)
        desc_idx = self.add_utf8(descriptor)
        return self._add((ConstantPoolTag.NAME_AND_TYPE, name_idx, desc_idx))

    def add_fieldref(self, class_name: str, field_name: str, descriptor: str) -> int:
        class_idx = self.add_class(class_name)
        nat_idx = self.add_name_and_type(field_name, descriptor)
        return self._add((ConstantPoolTag.FIELDREF, class_idx, nat_idx))

    def add_methodref(self, class_name: str, method_name: str, descriptor: str) -> int:
        class_idx = self.add_class(class_name)
        nat_idx = self.add_name_and_type(method_name, descriptor)
        return self._add((ConstantPoolTag.METHODREF, class_idx, nat_idx))

    def write(self, out: bytearray):
        out.extend(struct.pack(">H", len(self._entries)))
        for entry in self._entries[1:]:
            tag = entry[0]
            out.append(tag)
            if tag == ConstantPoolTag.UTF8:
                data = encode_modified_utf8(entry[1])
                out.extend(struct.pack(">H", len(data)))
                out.extend(data)
            elif tag in (ConstantPoolTag.CLASS, ConstantPoolTag.STRING):
                out.extend(struct.pack(">H", entry[1]))
            else:
                out.extend(struct.pack(">HH", entry[1], entry[2]))


@dataclass
class CodeBody:
    """Contents of a Code attribute to be written."""
    max_stack: int = 0
    max_locals: int = 0
    code: bytearray = field(default_factory=bytearray)
    exception_table: list[ExceptionTableEntry] = field(default_factory=list)

    def write(self, cp: ConstantPoolBuilder, out: bytearray):
        attr_name_idx = cp.add_utf8("Code")
        data = bytearray()
        data.extend(struct.pack(">H", self.max_stack))
        data.extend(struct.pack(">H", self.max_locals))
        data.extend(struct.pack(">I", len(self.code)))
        data.extend(self.code)
        data.extend(struct.pack(">H", len(self.exception_table)))
        for entry in self.exception_table:
            data.extend(struct.pack(">HHHH",
                entry.start_pc, entry.end_pc, entry.handler_pc, entry.catch_type))
        data.extend(struct.pack(">H", 0))  # no nested attributes

        out.extend(struct.pack(">H", attr_name_idx))
        out.extend(struct.pack(">I", len(data)))
        out.extend(data)


@dataclass
class MethodDefinition:
    """Method in a class file being written."""
    access_flags: int
    name: str
    descriptor: str
    code: Optional[CodeBody] = None

    def write(self, cp: ConstantPoolBuilder, out: bytearray):
        out.extend(struct.pack(">H", self.access_flags))
        out.extend(struct.pack(">H", cp.add_utf8(self.name)))
        out.extend(struct.pack(">H", cp.add_utf8(self.descriptor)))
        out.extend(struct.pack(">H", 1 if self.code else 0))
        if self.code:
            self.code.write(cp, out)


class BytecodeBuilder:
    """Emits the instructions the interpreter supports, tracking stack depth."""

    def __init__(self, cp: ConstantPoolBuilder):
        self.cp = cp
        self.code = bytearray()
        self.max_stack = 0
        self._current_stack = 0

    def _push(self, count: int = 1):
        self._current_stack += count
        self.max_stack = max(self.max_stack, self._current_stack)

    def _pop(self, count: int = 1):
        self._current_stack = max(0, self._current_stack - count)

    def position(self) -> int:
        return len(self.code)

    def emit(self, *data: int):
        """Append raw bytes, e.g. an opcode the builder has no helper for."""
        self.code.extend(data)

    def ldc_string(self, value: str):
        idx = self.cp.add_string(value)
        if idx > 0xFF:
            raise ValueError(f"String constant #{idx} is out of range for ldc")
        self.emit(Opcode.LDC, idx)
        self._push()

    def getstatic(self, class_name: str, field_name: str, descriptor: str):
        idx = self.cp.add_fieldref(class_name, field_name, descriptor)
        self.emit(Opcode.GETSTATIC)
        self.code.extend(struct.pack(">H", idx))
        self._push()

    def invokevirtual(self, class_name: str, method_name: str, descriptor: str):
        idx = self.cp.add_methodref(class_name, method_name, descriptor)
        self.emit(Opcode.INVOKEVIRTUAL)
        self.code.extend(struct.pack(">H", idx))
        desc = parse_method_descriptor(descriptor)
        self._pop(len(desc.parameters) + 1)
        if not desc.is_void:
            self._push()

    def return_(self):
        self.emit(Opcode.RETURN)

    def build(self, max_locals: int = 0) -> CodeBody:
        return CodeBody(max_stack=self.max_stack, max_locals=max_locals, code=self.code)


class ClassFileBuilder:
    """Assembles a class file."""

    def __init__(self, name: str, super_class: Optional[str] = "java/lang/Object",
                 version: tuple[int, int] = ClassFileVersion.JAVA_6):
        self.version = version
        self.access_flags = AccessFlags.PUBLIC | AccessFlags.SUPER
        self.name = name
        self.super_class = super_class
        self.methods: list[MethodDefinition] = []
        self.source_file: Optional[str] = None
        self.cp = ConstantPoolBuilder()

    def add_method(self, method: MethodDefinition):
        self.methods.append(method)

    def bytecode(self) -> BytecodeBuilder:
        """A builder sharing this class's constant pool."""
        return BytecodeBuilder(self.cp)

    def to_bytes(self) -> bytes:
        # Every constant must exist before the pool is written
        this_class_idx = self.cp.add_class(self.name)
        super_class_idx = self.cp.add_class(self.super_class) if self.super_class else 0
        for method in self.methods:
            self.cp.add_utf8(method.name)
            self.cp.add_utf8(method.descriptor)
        if any(m.code for m in self.methods):
            self.cp.add_utf8("Code")
        if self.source_file:
            source_attr_idx = self.cp.add_utf8("SourceFile")
            source_idx = self.cp.add_utf8(self.source_file)

        out = bytearray()
        out.extend(struct.pack(">I", CLASS_MAGIC))
        out.extend(struct.pack(">HH", self.version[1], self.version[0]))
        self.cp.write(out)
        out.extend(struct.pack(">H", self.access_flags))
        out.extend(struct.pack(">H", this_class_idx))
        out.extend(struct.pack(">H", super_class_idx))
        out.extend(struct.pack(">H", 0))  # interfaces
        out.extend(struct.pack(">H", 0))  # fields

        out.extend(struct.pack(">H", len(self.methods)))
        for method in self.methods:
            method.write(self.cp, out)

        if self.source_file:
            out.extend(struct.pack(">H", 1))
            out.extend(struct.pack(">HIH", source_attr_idx, 2, source_idx))
        else:
            out.extend(struct.pack(">H", 0))
        return bytes(out)

    def write(self, path: Union[str, Path]):
        with open(path, "wb") as f:
            f.write(self.to_bytes())
