"""
Read-only constant pool with type-checked accessors.

The pool is indexed from 1. Slot 0 is reserved and every accessor rejects it,
so a zero index coming from the class file surfaces as an error instead of a
silent lookup.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Type, TypeVar

from .classfile import (
    ConstantClass,
    ConstantFieldref,
    ConstantMethodref,
    ConstantNameAndType,
    ConstantPoolEntry,
    ConstantString,
    ConstantUtf8,
)
from .errors import ConstantPoolIndexError, ConstantPoolTypeMismatch, MalformedClassFile

E = TypeVar("E")


@dataclass(frozen=True)
class MemberRef:
    """A Fieldref or Methodref with its names resolved."""
    class_name: str
    name: str
    descriptor: str

    def __str__(self) -> str:
        return f"{self.class_name}.{self.name}:{self.descriptor}"


def decode_modified_utf8(raw: bytes) -> str:
    """Decode the modified UTF-8 of class files.

    NUL is stored as C0 80 and characters outside the BMP as a UTF-16
    surrogate pair, each half encoded as its own 3-byte sequence.
    """
    try:
        text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", errors="surrogatepass")
    except UnicodeDecodeError as e:
        raise MalformedClassFile(f"Invalid modified UTF-8 at byte {e.start}: {raw!r}") from e
    # Join surrogate pairs; an unpaired half becomes U+FFFD
    return text.encode("utf-16-le", errors="surrogatepass").decode("utf-16-le", errors="replace")


def encode_modified_utf8(text: str) -> bytes:
    """Encode text the way class files store Utf8 constants."""
    units = text.encode("utf-16-be", errors="surrogatepass")
    split = "".join(chr(hi << 8 | lo) for hi, lo in zip(units[::2], units[1::2]))
    return split.encode("utf-8", errors="surrogatepass").replace(b"\x00", b"\xc0\x80")


def tag_name(entry: Optional[ConstantPoolEntry]) -> str:
    if entry is None:
        return "<empty>"
    return entry.tag.name


class ConstantPool:
    """The constant pool of one parsed class file."""

    def __init__(self, entries: Sequence[Optional[ConstantPoolEntry]]):
        # entries[0] is the reserved slot
        self._entries = tuple(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[tuple[int, ConstantPoolEntry]]:
        for index in range(1, len(self._entries)):
            yield index, self._entries[index]

    def get(self, index: int) -> ConstantPoolEntry:
        if index < 1 or index >= len(self._entries):
            raise ConstantPoolIndexError(index, len(self._entries))
        return self._entries[index]

    def _get_typed(self, index: int, kind: Type[E]) -> E:
        entry = self.get(index)
        if not isinstance(entry, kind):
            raise ConstantPoolTypeMismatch(index, kind.tag.name, tag_name(entry))
        return entry

    def get_class(self, index: int) -> ConstantClass:
        return self._get_typed(index, ConstantClass)

    def get_fieldref(self, index: int) -> ConstantFieldref:
        return self._get_typed(index, ConstantFieldref)

    def get_methodref(self, index: int) -> ConstantMethodref:
        return self._get_typed(index, ConstantMethodref)

    def get_name_and_type(self, index: int) -> ConstantNameAndType:
        return self._get_typed(index, ConstantNameAndType)

    def get_string(self, index: int) -> ConstantString:
        return self._get_typed(index, ConstantString)

    def get_utf8_bytes(self, index: int) -> bytes:
        return self._get_typed(index, ConstantUtf8).raw

    def get_utf8(self, index: int) -> str:
        """Decode a Utf8 entry to text."""
        return decode_modified_utf8(self.get_utf8_bytes(index))

    def class_name(self, index: int) -> str:
        return self.get_utf8(self.get_class(index).name_index)

    def string_value(self, index: int) -> str:
        return self.get_utf8(self.get_string(index).string_index)

    def name_and_type(self, index: int) -> tuple[str, str]:
        nat = self.get_name_and_type(index)
        return self.get_utf8(nat.name_index), self.get_utf8(nat.descriptor_index)

    def resolve_member(self, index: int) -> MemberRef:
        """Resolve a Fieldref or Methodref to class, name and descriptor."""
        entry = self.get(index)
        if not isinstance(entry, (ConstantFieldref, ConstantMethodref)):
            raise ConstantPoolTypeMismatch(index, "FIELDREF or METHODREF", tag_name(entry))
        name, descriptor = self.name_and_type(entry.name_and_type_index)
        return MemberRef(self.class_name(entry.class_index), name, descriptor)

    def resolve_fieldref(self, index: int) -> MemberRef:
        self.get_fieldref(index)
        return self.resolve_member(index)

    def resolve_methodref(self, index: int) -> MemberRef:
        self.get_methodref(index)
        return self.resolve_member(index)
