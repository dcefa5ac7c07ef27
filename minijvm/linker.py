"""
Link step: resolve every Fieldref and Methodref in a constant pool against
the native bridge once, before any code runs.

A binding that cannot be found is recorded, not raised. The failure surfaces
only if an instruction that needs it executes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .classfile import ConstantFieldref, ConstantMethodref
from .constant_pool import ConstantPool, MemberRef
from .errors import NativeLookupFailure
from .natives import NativeBridge, NativeMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldLink:
    ref: MemberRef
    value: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class MethodLink:
    ref: MemberRef
    func: Optional[NativeMethod] = None
    error: Optional[str] = None


@dataclass
class LinkTable:
    """Resolved bindings, keyed by constant pool index."""
    fields: dict[int, FieldLink] = field(default_factory=dict)
    methods: dict[int, MethodLink] = field(default_factory=dict)

    def static_field(self, index: int) -> tuple[MemberRef, Any]:
        link = self.fields.get(index)
        if link is None:
            raise NativeLookupFailure(f"Constant pool entry #{index} was not linked as a field")
        if link.error is not None:
            raise NativeLookupFailure(link.error)
        return link.ref, link.value

    def method(self, index: int) -> tuple[MemberRef, NativeMethod]:
        link = self.methods.get(index)
        if link is None:
            raise NativeLookupFailure(f"Constant pool entry #{index} was not linked as a method")
        if link.error is not None:
            raise NativeLookupFailure(link.error)
        return link.ref, link.func


def link(cp: ConstantPool, bridge: NativeBridge) -> LinkTable:
    """Build the link table for one constant pool."""
    table = LinkTable()
    for index, entry in cp:
        if isinstance(entry, ConstantFieldref):
            ref = cp.resolve_member(index)
            try:
                value = bridge.lookup_static_field(ref.class_name, ref.name)
            except NativeLookupFailure as e:
                logger.debug("Unlinked field #%d %s: %s", index, ref, e)
                table.fields[index] = FieldLink(ref, error=str(e))
            else:
                table.fields[index] = FieldLink(ref, value)
        elif isinstance(entry, ConstantMethodref):
            ref = cp.resolve_member(index)
            try:
                func = bridge.lookup_method(ref.class_name, ref.name, ref.descriptor)
            except NativeLookupFailure as e:
                logger.debug("Unlinked method #%d %s: %s", index, ref, e)
                table.methods[index] = MethodLink(ref, error=str(e))
            else:
                table.methods[index] = MethodLink(ref, func)
    logger.debug("Linked %d field(s) and %d method(s)", len(table.fields), len(table.methods))
    return table
