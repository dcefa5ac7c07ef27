"""
Field and method descriptor parsing.
"""

from dataclasses import dataclass

from .errors import MalformedDescriptor

BASE_TYPES = {
    "B": "byte",
    "C": "char",
    "D": "double",
    "F": "float",
    "I": "int",
    "J": "long",
    "S": "short",
    "Z": "boolean",
}


@dataclass(frozen=True)
class MethodDescriptor:
    parameters: tuple[str, ...]
    return_type: str

    @property
    def is_void(self) -> bool:
        return self.return_type == "V"


def _parse_field_type(desc: str, pos: int) -> int:
    """Return the length of the field type starting at `pos`."""
    if pos >= len(desc):
        raise MalformedDescriptor(f"Unexpected end of descriptor: {desc!r}")
    ch = desc[pos]
    if ch in BASE_TYPES:
        return 1
    elif ch == "L":
        end = desc.find(";", pos)
        if end <= pos + 1:
            raise MalformedDescriptor(f"Unterminated class type in descriptor: {desc!r}")
        return end - pos + 1
    elif ch == "[":
        return 1 + _parse_field_type(desc, pos + 1)
    raise MalformedDescriptor(f"Unknown descriptor char {ch!r} in {desc!r}")


def parse_method_descriptor(descriptor: str) -> MethodDescriptor:
    """Parse a method descriptor into parameter types and return type."""
    if not descriptor.startswith("("):
        raise MalformedDescriptor(f"Method descriptor must start with '(': {descriptor!r}")
    params = []
    i = 1
    while i < len(descriptor) and descriptor[i] != ")":
        consumed = _parse_field_type(descriptor, i)
        params.append(descriptor[i:i + consumed])
        i += consumed
    if i >= len(descriptor):
        raise MalformedDescriptor(f"Missing ')' in method descriptor: {descriptor!r}")
    i += 1  # Skip ')'
    if descriptor[i:] == "V":
        return MethodDescriptor(tuple(params), "V")
    consumed = _parse_field_type(descriptor, i)
    if i + consumed != len(descriptor):
        raise MalformedDescriptor(f"Trailing characters in method descriptor: {descriptor!r}")
    return MethodDescriptor(tuple(params), descriptor[i:])
