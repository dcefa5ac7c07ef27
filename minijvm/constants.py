"""
Class file constants: magic number, versions, access flags, constant pool
tags and the opcodes the interpreter understands.
"""

from enum import IntEnum, IntFlag


CLASS_MAGIC = 0xCAFEBABE


class ClassFileVersion:
    JAVA_6 = (50, 0)
    JAVA_7 = (51, 0)
    JAVA_8 = (52, 0)


class AccessFlags(IntFlag):
    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    SUPER = 0x0020  # classes; SYNCHRONIZED on methods
    NATIVE = 0x0100
    INTERFACE = 0x0200
    ABSTRACT = 0x0400
    SYNTHETIC = 0x1000


ACCESS_KEYWORDS = {
    "public": AccessFlags.PUBLIC,
    "private": AccessFlags.PRIVATE,
    "protected": AccessFlags.PROTECTED,
    "static": AccessFlags.STATIC,
    "final": AccessFlags.FINAL,
    "super": AccessFlags.SUPER,
    "native": AccessFlags.NATIVE,
    "interface": AccessFlags.INTERFACE,
    "abstract": AccessFlags.ABSTRACT,
    "synthetic": AccessFlags.SYNTHETIC,
}


def access_keywords(flags: int) -> list[str]:
    """Render access flags as keywords, in declaration order."""
    return [name for name, flag in ACCESS_KEYWORDS.items() if flags & flag]


class ConstantPoolTag(IntEnum):
    UTF8 = 1
    CLASS = 7
    STRING = 8
    FIELDREF = 9
    METHODREF = 10
    NAME_AND_TYPE = 12


class Opcode(IntEnum):
    LDC = 0x12
    RETURN = 0xB1
    GETSTATIC = 0xB2
    INVOKEVIRTUAL = 0xB6


# Operand width in bytes following each opcode
OPERAND_WIDTHS = {
    Opcode.LDC: 1,
    Opcode.RETURN: 0,
    Opcode.GETSTATIC: 2,
    Opcode.INVOKEVIRTUAL: 2,
}
