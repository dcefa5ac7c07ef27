"""
Java class file reader.

Decodes the header, the constant pool (Utf8, Class, String, Fieldref,
Methodref and NameAndType entries) and the method table. Interface and field
tables are not decoded; a class that declares any is rejected. Every
attribute attached to a method is read with the Code layout, without looking
at the attribute name first.
"""

import logging
from pathlib import Path
from typing import Union

from .classfile import (
    AttributeInfo,
    ClassFile,
    CodeAttribute,
    ConstantClass,
    ConstantFieldref,
    ConstantMethodref,
    ConstantNameAndType,
    ConstantPoolEntry,
    ConstantString,
    ConstantUtf8,
    ExceptionTableEntry,
    MethodInfo,
)
from .constant_pool import ConstantPool
from .constants import CLASS_MAGIC, ConstantPoolTag
from .cursor import ByteCursor
from .errors import ClassFileIOError, MalformedClassFile, UnsupportedClassFeature

logger = logging.getLogger(__name__)

# attribute_name_index(2) + attribute_length(4)
ATTRIBUTE_HEADER_SIZE = 6


class ClassReader:
    """Reads one class file from a byte buffer."""

    def __init__(self, data: bytes):
        self.cursor = ByteCursor(data)

    def _read_sized(self, length: int, what: str) -> bytes:
        """Read a length-prefixed run, rejecting lengths past the buffer end."""
        if length > self.cursor.remaining:
            raise MalformedClassFile(
                f"{what} declares {length} byte(s) at offset {self.cursor.position}, "
                f"only {self.cursor.remaining} remain")
        return bytes(self.cursor.read_bytes(length))

    def _read_constant(self, index: int) -> ConstantPoolEntry:
        cur = self.cursor
        tag = cur.read_u1()

        if tag == ConstantPoolTag.UTF8:
            length = cur.read_u2()
            return ConstantUtf8(self._read_sized(length, f"Utf8 constant #{index}"))
        elif tag == ConstantPoolTag.CLASS:
            return ConstantClass(cur.read_u2())
        elif tag == ConstantPoolTag.STRING:
            return ConstantString(cur.read_u2())
        elif tag == ConstantPoolTag.FIELDREF:
            class_idx = cur.read_u2()
            nat_idx = cur.read_u2()
            return ConstantFieldref(class_idx, nat_idx)
        elif tag == ConstantPoolTag.METHODREF:
            class_idx = cur.read_u2()
            nat_idx = cur.read_u2()
            return ConstantMethodref(class_idx, nat_idx)
        elif tag == ConstantPoolTag.NAME_AND_TYPE:
            name_idx = cur.read_u2()
            desc_idx = cur.read_u2()
            return ConstantNameAndType(name_idx, desc_idx)

        raise MalformedClassFile(
            f"Unknown constant pool tag {tag} for entry #{index} "
            f"at offset {cur.position - 1}")

    def _read_constant_pool(self) -> ConstantPool:
        count = self.cursor.read_u2()
        entries: list = [None]  # 1-indexed
        for index in range(1, count):
            entries.append(self._read_constant(index))
        logger.debug("Read %d constant pool entries", len(entries) - 1)
        return ConstantPool(entries)

    def _read_attribute(self) -> AttributeInfo:
        name_idx = self.cursor.read_u2()
        length = self.cursor.read_u4()
        body = self._read_sized(length, f"Attribute (name #{name_idx})")
        return AttributeInfo(name_idx, length, body)

    def _read_attributes(self) -> tuple[AttributeInfo, ...]:
        count = self.cursor.read_u2()
        return tuple(self._read_attribute() for _ in range(count))

    def _read_exception_entry(self) -> ExceptionTableEntry:
        cur = self.cursor
        start_pc = cur.read_u2()
        end_pc = cur.read_u2()
        handler_pc = cur.read_u2()
        catch_type = cur.read_u2()
        return ExceptionTableEntry(start_pc, end_pc, handler_pc, catch_type)

    def _read_code_attribute(self) -> CodeAttribute:
        cur = self.cursor
        start = cur.position
        name_idx = cur.read_u2()
        length = cur.read_u4()
        max_stack = cur.read_u2()
        max_locals = cur.read_u2()
        code_length = cur.read_u4()
        code = self._read_sized(code_length, "Code")
        exc_count = cur.read_u2()
        exception_table = tuple(self._read_exception_entry() for _ in range(exc_count))
        attributes = self._read_attributes()

        consumed = cur.position - start
        if consumed != ATTRIBUTE_HEADER_SIZE + length:
            raise MalformedClassFile(
                f"Code attribute at offset {start} declares length {length} "
                f"but its contents span {consumed - ATTRIBUTE_HEADER_SIZE} byte(s)")
        return CodeAttribute(
            name_index=name_idx,
            length=length,
            max_stack=max_stack,
            max_locals=max_locals,
            code=code,
            exception_table=exception_table,
            attributes=attributes,
        )

    def _read_method(self) -> MethodInfo:
        cur = self.cursor
        access = cur.read_u2()
        name_idx = cur.read_u2()
        desc_idx = cur.read_u2()
        attr_count = cur.read_u2()
        code_attributes = tuple(self._read_code_attribute() for _ in range(attr_count))
        return MethodInfo(access, name_idx, desc_idx, code_attributes)

    def _read_table_count(self, what: str) -> int:
        count = self.cursor.read_u2()
        if count:
            raise UnsupportedClassFeature(
                f"Class declares {count} {what}; {what} tables are not decoded")
        return count

    def read(self) -> ClassFile:
        """Read the class file and return a ClassFile."""
        cur = self.cursor

        # Magic number
        magic = cur.read_u4()
        if magic != CLASS_MAGIC:
            raise MalformedClassFile(f"Invalid class file magic: {hex(magic)}")

        # Version
        minor = cur.read_u2()
        major = cur.read_u2()
        logger.debug("Class file version %d.%d", major, minor)

        cp = self._read_constant_pool()

        access_flags = cur.read_u2()
        this_class = cur.read_u2()
        super_class = cur.read_u2()

        interfaces_count = self._read_table_count("interfaces")
        fields_count = self._read_table_count("fields")

        methods_count = cur.read_u2()
        methods = tuple(self._read_method() for _ in range(methods_count))
        logger.debug("Read %d method(s)", methods_count)

        attributes = self._read_attributes()

        if not cur.at_end():
            logger.debug("Ignoring %d trailing byte(s) after class attributes", cur.remaining)

        return ClassFile(
            magic=magic,
            minor_version=minor,
            major_version=major,
            constant_pool=cp,
            access_flags=access_flags,
            this_class=this_class,
            super_class=super_class,
            interfaces_count=interfaces_count,
            fields_count=fields_count,
            methods=methods,
            attributes=attributes,
        )


def parse_class_bytes(data: bytes) -> ClassFile:
    """Parse a class file held in memory."""
    return ClassReader(data).read()


def parse_class_file(path: Union[str, Path]) -> ClassFile:
    """Read and parse a single class file."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ClassFileIOError(f"Cannot read {path}: {e}") from e
    logger.debug("Read %d byte(s) from %s", len(data), path)
    return parse_class_bytes(data)
