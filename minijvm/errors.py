"""
Exception types raised while reading, linking and executing class files.
"""

from typing import Optional

__all__ = [
    "JVMError",
    "ClassFileIOError",
    "OutOfBoundsError",
    "MalformedClassFile",
    "UnsupportedClassFeature",
    "ConstantPoolIndexError",
    "ConstantPoolTypeMismatch",
    "MalformedDescriptor",
    "ExecutionError",
    "StackUnderflow",
    "OperandTypeMismatch",
    "UnsupportedInstruction",
    "NativeLookupFailure",
    "MethodNotFound",
    "AssemblyError",
]


class JVMError(Exception):
    """Base class for every error raised by minijvm."""
    pass


class ClassFileIOError(JVMError):
    """Input could not be read, or ended before an expected read."""
    pass


class OutOfBoundsError(ClassFileIOError):
    """A read would run past the end of the buffer."""

    def __init__(self, offset: int, width: int, size: int):
        super().__init__(
            f"Read of {width} byte(s) at offset {offset} exceeds buffer of {size} byte(s)")
        self.offset = offset
        self.width = width
        self.size = size


class MalformedClassFile(JVMError):
    """The bytes do not describe a class file this reader accepts."""
    pass


class UnsupportedClassFeature(MalformedClassFile):
    """The class file uses a section the reader does not decode."""
    pass


class ConstantPoolIndexError(JVMError):
    """A constant pool index is reserved (0) or outside the pool."""

    def __init__(self, index: int, count: int):
        super().__init__(f"Invalid constant pool index #{index} (pool count {count})")
        self.index = index
        self.count = count


class ConstantPoolTypeMismatch(JVMError):
    """A constant pool entry has a different tag than the caller requested."""

    def __init__(self, index: int, expected: str, actual: str):
        super().__init__(f"Constant pool entry #{index} is {actual}, expected {expected}")
        self.index = index
        self.expected = expected
        self.actual = actual


class MalformedDescriptor(JVMError):
    """A field or method descriptor could not be parsed."""
    pass


class ExecutionError(JVMError):
    """Error while interpreting a method body."""

    def __init__(self, message: str, pc: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.pc = pc

    def __str__(self) -> str:
        if self.pc is None:
            return self.message
        return f"{self.message} (pc={self.pc})"


class StackUnderflow(ExecutionError):
    """Pop on an empty operand stack."""
    pass


class OperandTypeMismatch(ExecutionError):
    """A popped operand is not of the kind the instruction needs."""
    pass


class UnsupportedInstruction(ExecutionError):
    """Opcode outside the implemented subset."""

    def __init__(self, opcode: int, pc: Optional[int] = None):
        super().__init__(f"Unsupported instruction 0x{opcode:02x}", pc)
        self.opcode = opcode


class NativeLookupFailure(ExecutionError):
    """The native bridge has no binding for a class, field or method."""
    pass


class MethodNotFound(ExecutionError):
    """No method with the requested name (and descriptor) exists in the class."""
    pass


class AssemblyError(JVMError):
    """Assembler source could not be parsed or compiled."""

    def __init__(self, message: str, line: Optional[int] = None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line
