"""
Native bridge: host implementations standing in for the Java class library.

Classes are registered by internal name (``java/lang/System``). Each carries
static field values and native methods keyed by ``(name, descriptor)``.
Natives are called with the receiver handle followed by the resolved
argument values.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TextIO

from .errors import NativeLookupFailure, OperandTypeMismatch

logger = logging.getLogger(__name__)

NativeMethod = Callable[..., Any]


@dataclass
class NativeClass:
    """Bindings for one bridged class."""
    name: str
    static_fields: dict[str, Any] = field(default_factory=dict)
    methods: dict[tuple[str, str], NativeMethod] = field(default_factory=dict)


class NativeBridge:
    """Registry of bridged classes, static fields and methods."""

    def __init__(self):
        self._classes: dict[str, NativeClass] = {}

    def __contains__(self, class_name: str) -> bool:
        return class_name in self._classes

    def define_class(self, name: str) -> NativeClass:
        if name not in self._classes:
            self._classes[name] = NativeClass(name)
        return self._classes[name]

    def bind_static_field(self, class_name: str, field_name: str, value: Any):
        self.define_class(class_name).static_fields[field_name] = value

    def bind_method(self, class_name: str, name: str, descriptor: str, func: NativeMethod):
        logger.debug("Binding native %s.%s%s", class_name, name, descriptor)
        self.define_class(class_name).methods[(name, descriptor)] = func

    def native(self, class_name: str, name: str, descriptor: str):
        """Decorator form of bind_method."""
        def decorator(func: NativeMethod) -> NativeMethod:
            self.bind_method(class_name, name, descriptor, func)
            return func
        return decorator

    def _lookup_class(self, class_name: str) -> NativeClass:
        cls = self._classes.get(class_name)
        if cls is None:
            raise NativeLookupFailure(f"No native class bound for {class_name}")
        return cls

    def lookup_static_field(self, class_name: str, field_name: str) -> Any:
        cls = self._lookup_class(class_name)
        if field_name not in cls.static_fields:
            raise NativeLookupFailure(f"No native static field {class_name}.{field_name}")
        return cls.static_fields[field_name]

    def lookup_method(self, class_name: str, name: str, descriptor: str) -> NativeMethod:
        cls = self._lookup_class(class_name)
        func = cls.methods.get((name, descriptor))
        if func is None:
            raise NativeLookupFailure(f"No native method {class_name}.{name}{descriptor}")
        return func


class PrintStream:
    """Host side of java/io/PrintStream, writing to a text stream."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    def __repr__(self) -> str:
        return f"PrintStream({getattr(self.stream, 'name', self.stream)!r})"

    def write(self, text: str):
        self.stream.write(text)


def _print_stream(receiver: Any) -> PrintStream:
    if not isinstance(receiver, PrintStream):
        raise OperandTypeMismatch(f"Receiver {receiver!r} is not a PrintStream")
    return receiver


def print_stream_println(receiver: Any, text: str = ""):
    _print_stream(receiver).write(text + "\n")


def print_stream_print(receiver: Any, text: str):
    _print_stream(receiver).write(text)


def install_java_lang(bridge: NativeBridge, stdout: Optional[TextIO] = None,
                      stderr: Optional[TextIO] = None) -> NativeBridge:
    """Bind System.out, System.err and the PrintStream natives."""
    bridge.bind_static_field("java/lang/System", "out", PrintStream(sys.stdout if stdout is None else stdout))
    bridge.bind_static_field("java/lang/System", "err", PrintStream(sys.stderr if stderr is None else stderr))
    bridge.bind_method("java/io/PrintStream", "println", "(Ljava/lang/String;)V",
                       print_stream_println)
    bridge.bind_method("java/io/PrintStream", "println", "()V", print_stream_println)
    bridge.bind_method("java/io/PrintStream", "print", "(Ljava/lang/String;)V",
                       print_stream_print)
    return bridge


def default_bridge(stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> NativeBridge:
    return install_java_lang(NativeBridge(), stdout, stderr)
