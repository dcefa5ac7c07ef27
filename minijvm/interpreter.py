"""
Stack-machine interpreter for a subset of JVM bytecode.

Supported instructions: ldc, getstatic, invokevirtual and return. Calls are
dispatched to natives registered on a NativeBridge. Every code body runs in
its own Frame, so invocations never share a cursor or an operand stack.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, TextIO, Union

from .classfile import ClassFile, CodeAttribute, MethodInfo
from .constants import Opcode
from .cursor import ByteCursor
from .descriptors import parse_method_descriptor
from .errors import ExecutionError, OperandTypeMismatch, StackUnderflow, UnsupportedInstruction
from .linker import LinkTable, link
from .natives import NativeBridge, default_bridge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawIndex:
    """An unresolved constant pool index."""
    index: int


@dataclass(frozen=True)
class ResolvedString:
    value: str


@dataclass(frozen=True)
class ResolvedReference:
    """A host object obtained from a bridged static field."""
    class_name: str
    member_name: str
    handle: Any


OperandValue = Union[RawIndex, ResolvedString, ResolvedReference]


class OperandStack:
    """Last-in-first-out operand storage for one frame."""

    def __init__(self):
        self._items: list[OperandValue] = []

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"OperandStack({self._items!r})"

    def push(self, value: OperandValue):
        self._items.append(value)

    def pop(self) -> OperandValue:
        if not self._items:
            raise StackUnderflow("Pop from empty operand stack")
        return self._items.pop()

    def pop_raw_index(self) -> RawIndex:
        value = self.pop()
        if not isinstance(value, RawIndex):
            raise OperandTypeMismatch(f"Expected a constant pool index on the stack, got {value!r}")
        return value


class Frame:
    """Execution state of one code body: cursor over the code and operand stack."""

    def __init__(self, code: CodeAttribute):
        self.code = code
        self.cursor = ByteCursor(code.code)
        self.stack = OperandStack()
        self.pc = 0
        self.returned = False


Handler = Callable[[Frame], None]


class Interpreter:
    """Executes methods of one parsed class against a native bridge."""

    def __init__(self, class_file: ClassFile, bridge: Optional[NativeBridge] = None,
                 *, trace: bool = False):
        self.class_file = class_file
        self.cp = class_file.constant_pool
        self.bridge = bridge if bridge is not None else default_bridge()
        self.trace = trace
        self.links: LinkTable = link(self.cp, self.bridge)
        self._dispatch: dict[int, Handler] = {
            Opcode.LDC: self._ldc,
            Opcode.GETSTATIC: self._getstatic,
            Opcode.INVOKEVIRTUAL: self._invokevirtual,
            Opcode.RETURN: self._return,
        }

    def _trace(self, msg: str, *args):
        if self.trace:
            logger.debug(msg, *args)

    def invoke(self, name: str, descriptor: Optional[str] = None):
        """Find a method by name and run it."""
        self.execute(self.class_file.find_method(name, descriptor))

    def execute(self, method: MethodInfo):
        self._trace("Invoking %s%s", method.name(self.cp), method.descriptor(self.cp))
        for code in method.code_attributes:
            self.execute_code(code)

    def execute_code(self, code: CodeAttribute) -> Frame:
        """Run one code body in a fresh frame and return the finished frame."""
        frame = Frame(code)
        self._trace("Code: %d byte(s), max_stack=%d, max_locals=%d",
                    len(code.code), code.max_stack, code.max_locals)
        while not frame.returned and not frame.cursor.at_end():
            frame.pc = frame.cursor.position
            opcode = frame.cursor.read_u1()
            handler = self._dispatch.get(opcode)
            if handler is None:
                raise UnsupportedInstruction(opcode, frame.pc)
            try:
                handler(frame)
            except ExecutionError as e:
                if e.pc is None:
                    e.pc = frame.pc
                raise
            self._trace("  stack=%r", frame.stack)
        return frame

    # ==================== INSTRUCTIONS ====================

    def _ldc(self, frame: Frame):
        index = frame.cursor.read_u1()
        self._trace("%04d: ldc #%d", frame.pc, index)
        frame.stack.push(RawIndex(index))

    def _getstatic(self, frame: Frame):
        index = frame.cursor.read_u2()
        ref = self.cp.resolve_fieldref(index)
        self._trace("%04d: getstatic #%d // %s", frame.pc, index, ref)
        frame.stack.push(RawIndex(index))

    def _return(self, frame: Frame):
        self._trace("%04d: return", frame.pc)
        frame.returned = True

    def _invokevirtual(self, frame: Frame):
        index = frame.cursor.read_u2()
        self.cp.get_methodref(index)
        ref, func = self.links.method(index)
        self._trace("%04d: invokevirtual #%d // %s", frame.pc, index, ref)
        desc = parse_method_descriptor(ref.descriptor)

        # Arguments were pushed after the receiver, last argument on top
        args = [self._resolve_argument(frame.stack.pop_raw_index())
                for _ in desc.parameters]
        args.reverse()
        receiver = self._resolve_receiver(frame.stack.pop_raw_index())

        self._trace("  invoking %s on %s with %r", ref, receiver.handle, args)
        result = func(receiver.handle, *(arg.value for arg in args))
        if not desc.is_void:
            frame.stack.push(self._wrap_result(result, ref.class_name, ref.name))

    # ==================== RESOLUTION ====================

    def _resolve_argument(self, value: RawIndex) -> ResolvedString:
        """Resolve an ldc'd index; only String constants are accepted."""
        return ResolvedString(self.cp.string_value(value.index))

    def _resolve_receiver(self, value: RawIndex) -> ResolvedReference:
        """Resolve a getstatic'd Fieldref index to its bridged host object."""
        self.cp.get_fieldref(value.index)
        ref, handle = self.links.static_field(value.index)
        return ResolvedReference(ref.class_name, ref.name, handle)

    def _wrap_result(self, result: Any, class_name: str, name: str) -> OperandValue:
        if isinstance(result, str):
            return ResolvedString(result)
        return ResolvedReference(class_name, name, result)


def run_main(class_file: ClassFile, stdout: Optional[TextIO] = None,
             *, trace: bool = False):
    """Run the class's ``main`` method with System.out bound to `stdout`."""
    Interpreter(class_file, default_bridge(stdout), trace=trace).invoke("main")
