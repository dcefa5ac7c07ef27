"""Tests for the assembler."""

import io
from pathlib import Path

import pytest

from minijvm.assembler import Assembler, assemble, parse_string_literal
from minijvm.constants import AccessFlags
from minijvm.errors import AssemblyError, UnsupportedInstruction
from minijvm.interpreter import Interpreter, run_main
from minijvm.natives import default_bridge
from minijvm.reader import parse_class_bytes

INTEGRATION_DIR = Path(__file__).parent / "integration"

HELLO = """\
.class public HelloWorld
.method public static main ([Ljava/lang/String;)V
    getstatic java/lang/System out Ljava/io/PrintStream;
    ldc "Hello, World!"
    invokevirtual java/io/PrintStream println (Ljava/lang/String;)V
    return
.end method
"""


@pytest.fixture(scope="module")
def assembler():
    return Assembler()


def run_source(source: str, method: str = "main") -> str:
    out = io.StringIO()
    Interpreter(parse_class_bytes(assemble(source)), default_bridge(out)).invoke(method)
    return out.getvalue()


class TestAssemble:
    def test_hello_world(self):
        assert run_source(HELLO) == "Hello, World!\n"

    def test_class_header(self, assembler):
        cf = parse_class_bytes(assembler.assemble(HELLO))
        assert cf.name == "HelloWorld"
        assert cf.super_name == "java/lang/Object"
        assert cf.access_flags == AccessFlags.PUBLIC
        assert cf.attributes == ()

    def test_default_limits(self, assembler):
        cf = parse_class_bytes(assembler.assemble(HELLO))
        (code,) = cf.find_method("main").code_attributes
        assert code.max_stack == 2
        assert code.max_locals == 1

    def test_instance_method_locals_include_this(self, assembler):
        source = HELLO + ".method public show (Ljava/lang/String;I)V\n    return\n.end method\n"
        cf = parse_class_bytes(assembler.assemble(source))
        (code,) = cf.find_method("show").code_attributes
        assert code.max_locals == 3
        assert code.code == b"\xb1"

    def test_explicit_limits(self, assembler):
        source = HELLO.replace("    getstatic", "    .limit stack 8\n    .limit locals 4\n    getstatic", 1)
        (code,) = parse_class_bytes(assembler.assemble(source)).methods[0].code_attributes
        assert (code.max_stack, code.max_locals) == (8, 4)

    def test_super_and_source(self, assembler):
        data = assembler.assemble_file(INTEGRATION_DIR / "HelloWorld.jasm")
        cf = parse_class_bytes(data)
        assert cf.access_flags == AccessFlags.PUBLIC | AccessFlags.SUPER
        (attr,) = cf.attributes
        assert cf.constant_pool.get_utf8(attr.name_index) == "SourceFile"

    def test_comments_are_ignored(self):
        source = "# greeting\n" + HELLO.replace("    return", "    return  # done")
        assert run_source(source) == "Hello, World!\n"

    def test_raw_bytes(self):
        source = HELLO.replace("    return", "    .byte 0x00 177")
        with pytest.raises(UnsupportedInstruction) as exc:
            run_source(source)
        assert exc.value.pc == 8

    def test_several_methods(self):
        out = io.StringIO()
        err = io.StringIO()
        cf = parse_class_bytes(assemble((INTEGRATION_DIR / "Greetings.jasm").read_text()))
        interp = Interpreter(cf, default_bridge(out, err))
        interp.invoke("main")
        interp.invoke("greet", "()V")
        assert out.getvalue() == "Good morning\nGood night\nBye\n"
        assert err.getvalue() == "Hello from greet\n"

    def test_unicode_literal(self):
        out = io.StringIO()
        run_main(parse_class_bytes(assemble(HELLO.replace("Hello, World!", "Grüße, Welt"))),
                 stdout=out)
        assert out.getvalue() == "Grüße, Welt\n"


class TestStringLiterals:
    @pytest.mark.parametrize("literal, expected", [
        ('"plain"', "plain"),
        ('"tab\\there"', "tab\there"),
        ('"say \\"hi\\""', 'say "hi"'),
        ('"back\\\\slash"', "back\\slash"),
        ('"\\u0041BC"', "ABC"),
        ('""', ""),
    ])
    def test_escapes(self, literal, expected):
        assert parse_string_literal(literal) == expected


class TestErrors:
    def test_syntax_error_reports_line(self, assembler):
        source = HELLO.replace("    return", "    bogus")
        with pytest.raises(AssemblyError) as exc:
            assembler.assemble(source)
        assert exc.value.line == 6
        assert str(exc.value).startswith("line 6:")

    def test_missing_end(self, assembler):
        with pytest.raises(AssemblyError):
            assembler.assemble(HELLO.replace(".end method\n", ""))

    def test_bad_method_descriptor(self, assembler):
        source = HELLO.replace("([Ljava/lang/String;)V", "main_args", 1)
        with pytest.raises(AssemblyError) as exc:
            assembler.assemble(source)
        assert exc.value.line == 2

    def test_bad_call_descriptor(self, assembler):
        source = HELLO.replace("println (Ljava/lang/String;)V", "println Ljava/lang/String;")
        with pytest.raises(AssemblyError, match="main"):
            assembler.assemble(source)

    def test_byte_out_of_range(self, assembler):
        source = HELLO.replace("    return", "    .byte 0x00 300")
        with pytest.raises(AssemblyError, match="300") as exc:
            assembler.assemble(source)
        assert exc.value.line == 6
