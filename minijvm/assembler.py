"""
Assembler for a Jasmin-like text format, using Lark.

    .class public HelloWorld
    .super java/lang/Object
    .method public static main ([Ljava/lang/String;)V
        getstatic java/lang/System out Ljava/io/PrintStream;
        ldc "Hello, World!"
        invokevirtual java/io/PrintStream println (Ljava/lang/String;)V
        return
    .end method
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from lark import Lark, Transformer, Token
from lark.exceptions import UnexpectedInput, VisitError

from .constants import ACCESS_KEYWORDS, AccessFlags
from .descriptors import parse_method_descriptor
from .errors import AssemblyError, JVMError
from .writer import BytecodeBuilder, ClassFileBuilder, MethodDefinition


GRAMMAR_FILE = Path(__file__).parent / "jasm.lark"

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f",
            '"': '"', "'": "'", "\\": "\\", "/": "/"}


def parse_string_literal(literal: str) -> str:
    """Decode a double-quoted literal with backslash and \\uXXXX escapes."""
    def replace(match: re.Match) -> str:
        esc = match.group(1)
        if esc.startswith("u"):
            return chr(int(esc[1:], 16))
        return _ESCAPES[esc]
    return re.sub(r'\\(u[0-9a-fA-F]{4}|[ntrbf"\'\\/])', replace, literal[1:-1])


@dataclass
class ClassDecl:
    name: str
    access_flags: int
    super_class: Optional[str] = "java/lang/Object"
    source_file: Optional[str] = None


@dataclass
class MethodDecl:
    access_flags: int
    name: str
    descriptor: str
    line: int
    limits: dict[str, int] = field(default_factory=dict)
    instructions: list[tuple] = field(default_factory=list)


def _access_flags(tokens) -> int:
    flags = 0
    for tok in tokens:
        flags |= ACCESS_KEYWORDS[str(tok)]
    return flags


class JasmTransformer(Transformer):
    """Transforms the Lark parse tree into declarations."""

    def start(self, items):
        return items[0], items[1:]

    def class_header(self, items):
        access = [i for i in items if isinstance(i, Token) and i.type == "ACCESS"]
        names = [i for i in items if isinstance(i, Token) and i.type == "NAME"]
        decl = ClassDecl(name=str(names[0]), access_flags=_access_flags(access))
        for item in items:
            if isinstance(item, tuple) and item[0] == "super":
                decl.super_class = item[1]
            elif isinstance(item, tuple) and item[0] == "source":
                decl.source_file = item[1]
        return decl

    def super_decl(self, items):
        return ("super", str(items[0]))

    def source_decl(self, items):
        return ("source", str(items[0]))

    def method(self, items):
        access = [i for i in items if isinstance(i, Token) and i.type == "ACCESS"]
        names = [i for i in items if isinstance(i, Token) and i.type == "NAME"]
        decl = MethodDecl(
            access_flags=_access_flags(access),
            name=str(names[0]),
            descriptor=str(names[1]),
            line=names[0].line,
        )
        for item in items:
            if isinstance(item, tuple) and item[0] == "limit":
                decl.limits[item[1]] = item[2]
            elif isinstance(item, tuple):
                decl.instructions.append(item)
        return decl

    def limit(self, items):
        return ("limit", str(items[0]), int(items[1]))

    def ldc(self, items):
        return ("ldc", parse_string_literal(str(items[0])))

    def getstatic(self, items):
        return ("getstatic", str(items[0]), str(items[1]), str(items[2]))

    def invokevirtual(self, items):
        return ("invokevirtual", str(items[0]), str(items[1]), str(items[2]))

    def return_(self, items):
        return ("return",)

    def raw_bytes(self, items):
        values = [int(str(tok), 16) if tok.startswith("0x") else int(str(tok))
                  for tok in items]
        for tok, value in zip(items, values):
            if value > 0xFF:
                raise AssemblyError(f"Byte value {tok} out of range", tok.line)
        return ("bytes", values)


class Assembler:
    """Compiles assembly source to class file bytes."""

    def __init__(self):
        with open(GRAMMAR_FILE, "r") as f:
            grammar = f.read()

        self._parser = Lark(grammar, parser="lalr", propagate_positions=True)
        self._transformer = JasmTransformer()

    def parse(self, source: str) -> tuple[ClassDecl, list[MethodDecl]]:
        try:
            tree = self._parser.parse(source)
        except UnexpectedInput as e:
            raise AssemblyError(str(e).strip().splitlines()[0], e.line) from e
        try:
            return self._transformer.transform(tree)
        except VisitError as e:
            if isinstance(e.orig_exc, AssemblyError):
                raise e.orig_exc from None
            raise

    def assemble(self, source: str) -> bytes:
        """Assemble source text into class file bytes."""
        class_decl, methods = self.parse(source)
        builder = ClassFileBuilder(class_decl.name, class_decl.super_class)
        if class_decl.access_flags:
            builder.access_flags = class_decl.access_flags
        builder.source_file = class_decl.source_file
        for decl in methods:
            builder.add_method(self._compile_method(builder, decl))
        return builder.to_bytes()

    def assemble_file(self, path: Union[str, Path]) -> bytes:
        with open(path, "r", encoding="utf-8") as f:
            return self.assemble(f.read())

    def _emit(self, code: BytecodeBuilder, insn: tuple):
        op = insn[0]
        if op == "ldc":
            code.ldc_string(insn[1])
        elif op == "getstatic":
            code.getstatic(*insn[1:])
        elif op == "invokevirtual":
            code.invokevirtual(*insn[1:])
        elif op == "return":
            code.return_()
        elif op == "bytes":
            code.emit(*insn[1])

    def _compile_method(self, builder: ClassFileBuilder, decl: MethodDecl) -> MethodDefinition:
        try:
            params = parse_method_descriptor(decl.descriptor).parameters
        except JVMError as e:
            raise AssemblyError(str(e), decl.line) from e

        code = builder.bytecode()
        for insn in decl.instructions:
            try:
                self._emit(code, insn)
            except (JVMError, ValueError) as e:
                raise AssemblyError(f"{decl.name}: {e}", decl.line) from e

        is_static = bool(decl.access_flags & AccessFlags.STATIC)
        body = code.build(max_locals=decl.limits.get("locals", len(params) + (0 if is_static else 1)))
        if "stack" in decl.limits:
            body.max_stack = decl.limits["stack"]
        return MethodDefinition(decl.access_flags, decl.name, decl.descriptor, body)


def assemble(source: str) -> bytes:
    """Assemble source text with a fresh Assembler."""
    return Assembler().assemble(source)
