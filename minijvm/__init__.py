"""minijvm - Java class file reader and bytecode interpreter."""

from . import errors
from .errors import *
from .classfile import ClassFile, CodeAttribute, MethodInfo, AttributeInfo
from .constant_pool import ConstantPool, MemberRef
from .reader import ClassReader, parse_class_bytes, parse_class_file
from .natives import NativeBridge, PrintStream, default_bridge
from .interpreter import Interpreter, run_main
from .assembler import Assembler, assemble

__version__ = "0.1.0"
__all__ = errors.__all__ + [
    "ClassFile",
    "CodeAttribute",
    "MethodInfo",
    "AttributeInfo",
    "ConstantPool",
    "MemberRef",
    "ClassReader",
    "parse_class_bytes",
    "parse_class_file",
    "NativeBridge",
    "PrintStream",
    "default_bridge",
    "Interpreter",
    "run_main",
    "Assembler",
    "assemble",
]
