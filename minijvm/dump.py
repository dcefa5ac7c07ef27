"""
Human-readable rendering of parsed class files, in the spirit of javap.
"""

import logging

from .classfile import (
    ClassFile,
    ConstantClass,
    ConstantFieldref,
    ConstantMethodref,
    ConstantNameAndType,
    ConstantPoolEntry,
    ConstantString,
    ConstantUtf8,
)
from .constant_pool import ConstantPool, decode_modified_utf8
from .constants import OPERAND_WIDTHS, Opcode, access_keywords
from .errors import JVMError

logger = logging.getLogger(__name__)


def describe_constant(entry: ConstantPoolEntry) -> str:
    """One-line description of a constant pool entry."""
    if isinstance(entry, ConstantFieldref):
        return f"Fieldref\t#{entry.class_index}.#{entry.name_and_type_index}"
    elif isinstance(entry, ConstantMethodref):
        return f"Methodref\t#{entry.class_index}.#{entry.name_and_type_index}"
    elif isinstance(entry, ConstantClass):
        return f"Class\t#{entry.name_index}"
    elif isinstance(entry, ConstantString):
        return f"String\t#{entry.string_index}"
    elif isinstance(entry, ConstantNameAndType):
        return f"NameAndType\t#{entry.name_index}:#{entry.descriptor_index}"
    elif isinstance(entry, ConstantUtf8):
        try:
            text = decode_modified_utf8(entry.raw)
        except JVMError:
            text = entry.raw.decode("utf-8", errors="replace")
        return f"Utf8\t{text}"
    raise TypeError(f"Not a constant pool entry: {entry!r}")


def _comment(cp: ConstantPool, opcode: int, operand: int) -> str:
    """Resolve an instruction operand for display, tolerating bad indices."""
    try:
        if opcode == Opcode.LDC:
            entry = cp.get(operand)
            if isinstance(entry, ConstantString):
                return f'String "{cp.string_value(operand)}"'
            return describe_constant(entry).split("\t")[0]
        return str(cp.resolve_member(operand))
    except JVMError as e:
        return f"<{e}>"


def disassemble(code: bytes, cp: ConstantPool) -> list[str]:
    """Decode a code body into lines. Unknown opcodes become ``.byte`` lines."""
    lines = []
    pos = 0
    while pos < len(code):
        byte = code[pos]
        if byte not in OPERAND_WIDTHS:
            lines.append(f"{pos:4d}: .byte 0x{byte:02x}")
            pos += 1
            continue
        opcode = Opcode(byte)
        width = OPERAND_WIDTHS[opcode]
        if pos + 1 + width > len(code):
            lines.append(f"{pos:4d}: {opcode.name.lower()} <truncated>")
            break
        if width == 0:
            lines.append(f"{pos:4d}: {opcode.name.lower()}")
        else:
            operand = int.from_bytes(code[pos + 1:pos + 1 + width], "big")
            lines.append(f"{pos:4d}: {opcode.name.lower():<14}#{operand:<6}// {_comment(cp, opcode, operand)}")
        pos += 1 + width
    return lines


def _safe(func, *args) -> str:
    try:
        return str(func(*args))
    except JVMError as e:
        return f"<{e}>"


def dump_class(cf: ClassFile) -> list[str]:
    """Render the header, constant pool, methods and attributes of a class."""
    cp = cf.constant_pool
    lines = [
        "magic = " + " ".join(f"{b:02x}" for b in cf.magic.to_bytes(4, "big")),
        f"major_version = {cf.major_version}, minor_version = {cf.minor_version}",
        f"access_flags = 0x{cf.access_flags:04x} ({' '.join(access_keywords(cf.access_flags))})",
        f"class {_safe(cp.class_name, cf.this_class)}",
        f"  super_class = #{cf.super_class} {_safe(lambda: cf.super_name)}",
        "Constant pool:",
    ]
    for index, entry in cp:
        lines.append(f"  #{index:02d} = {describe_constant(entry)}")
    lines.append(f"interfaces_count = {cf.interfaces_count}")
    lines.append(f"fields_count = {cf.fields_count}")
    lines.append(f"methods_count = {len(cf.methods)}")
    for method in cf.methods:
        flags = "".join(kw + " " for kw in access_keywords(method.access_flags))
        lines.append(f"  {flags}{_safe(method.name, cp)}{_safe(method.descriptor, cp)}")
        for code in method.code_attributes:
            lines.append(f"    Code: stack={code.max_stack}, locals={code.max_locals}, "
                         f"length={len(code.code)}")
            lines.append("      bytes: " + " ".join(f"{b:02x}" for b in code.code))
            lines.extend("      " + line for line in disassemble(code.code, cp))
            for exc in code.exception_table:
                lines.append(f"      exception: {exc.start_pc}-{exc.end_pc} -> "
                             f"{exc.handler_pc} catch #{exc.catch_type}")
            for attr in code.attributes:
                lines.append(f"      attribute {_safe(cp.get_utf8, attr.name_index)} "
                             f"({attr.length} bytes)")
    lines.append(f"attributes_count = {len(cf.attributes)}")
    for attr in cf.attributes:
        lines.append(f"  attribute {_safe(cp.get_utf8, attr.name_index)} ({attr.length} bytes)")
    return lines


def log_class(cf: ClassFile):
    """Write the dump of a class to the debug log."""
    if logger.isEnabledFor(logging.DEBUG):
        for line in dump_class(cf):
            logger.debug("%s", line)
