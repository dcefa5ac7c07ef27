"""Tests for the class file writer."""

import io

import pytest

from minijvm.constants import AccessFlags
from minijvm.interpreter import run_main
from minijvm.reader import parse_class_bytes, parse_class_file
from minijvm.writer import ClassFileBuilder, ConstantPoolBuilder, MethodDefinition


def hello_builder(text="Hello, World!"):
    builder = ClassFileBuilder("HelloWorld")
    code = builder.bytecode()
    code.getstatic("java/lang/System", "out", "Ljava/io/PrintStream;")
    code.ldc_string(text)
    code.invokevirtual("java/io/PrintStream", "println", "(Ljava/lang/String;)V")
    code.return_()
    builder.add_method(MethodDefinition(
        AccessFlags.PUBLIC | AccessFlags.STATIC, "main", "([Ljava/lang/String;)V",
        code.build(max_locals=1)))
    return builder


class TestConstantPoolBuilder:
    def test_entries_are_deduplicated(self):
        cp = ConstantPoolBuilder()
        first = cp.add_methodref("java/io/PrintStream", "println", "(Ljava/lang/String;)V")
        size = len(cp)
        assert cp.add_methodref("java/io/PrintStream", "println", "(Ljava/lang/String;)V") == first
        assert len(cp) == size

    def test_shared_utf8(self):
        cp = ConstantPoolBuilder()
        cls = cp.add_class("out")
        string = cp.add_string("out")
        assert cls != string
        assert len(cp) == 4  # reserved slot, Utf8, Class, String

    def test_utf8_written_in_modified_encoding(self):
        cp = ConstantPoolBuilder()
        cp.add_utf8("\x00\U0001F600")
        out = bytearray()
        cp.write(out)
        assert bytes(out) == b"\x00\x02\x01\x00\x08\xc0\x80\xed\xa0\xbd\xed\xb8\x80"

    def test_supplementary_text_survives_run(self):
        out = io.StringIO()
        run_main(parse_class_bytes(hello_builder("smile \U0001F600").to_bytes()), stdout=out)
        assert out.getvalue() == "smile \U0001F600\n"


class TestClassFileBuilder:
    def test_round_trip_through_reader(self):
        cf = parse_class_bytes(hello_builder().to_bytes())
        assert cf.name == "HelloWorld"
        assert cf.super_name == "java/lang/Object"
        assert cf.version == (50, 0)
        assert cf.access_flags == AccessFlags.PUBLIC | AccessFlags.SUPER
        (code,) = cf.find_method("main").code_attributes
        assert code.max_stack == 2
        assert code.max_locals == 1

    def test_output_runs(self):
        out = io.StringIO()
        run_main(parse_class_bytes(hello_builder("Built").to_bytes()), stdout=out)
        assert out.getvalue() == "Built\n"

    def test_to_bytes_is_stable(self):
        builder = hello_builder()
        assert builder.to_bytes() == builder.to_bytes()

    def test_source_file_attribute(self):
        builder = hello_builder()
        builder.source_file = "HelloWorld.java"
        cf = parse_class_bytes(builder.to_bytes())
        (attr,) = cf.attributes
        assert cf.constant_pool.get_utf8(attr.name_index) == "SourceFile"
        assert cf.constant_pool.get_utf8(int.from_bytes(attr.body, "big")) == "HelloWorld.java"

    def test_no_super_class(self):
        builder = ClassFileBuilder("java/lang/Object", super_class=None)
        assert parse_class_bytes(builder.to_bytes()).super_name is None

    def test_method_without_code(self):
        builder = ClassFileBuilder("Abstract")
        builder.add_method(MethodDefinition(AccessFlags.PUBLIC | AccessFlags.ABSTRACT, "run", "()V"))
        (method,) = parse_class_bytes(builder.to_bytes()).methods
        assert method.code_attributes == ()

    def test_write(self, tmp_path):
        path = tmp_path / "HelloWorld.class"
        hello_builder().write(path)
        assert parse_class_file(path).name == "HelloWorld"


class TestBytecodeBuilder:
    def test_ldc_index_must_fit_one_byte(self):
        builder = ClassFileBuilder("Big")
        code = builder.bytecode()
        for i in range(300):
            builder.cp.add_utf8(f"filler{i}")
        with pytest.raises(ValueError, match="out of range for ldc"):
            code.ldc_string("late")

    def test_stack_depth_tracking(self):
        code = ClassFileBuilder("Twice").bytecode()
        for _ in range(2):
            code.getstatic("java/lang/System", "out", "Ljava/io/PrintStream;")
            code.ldc_string("x")
            code.invokevirtual("java/io/PrintStream", "println", "(Ljava/lang/String;)V")
        code.return_()
        assert code.max_stack == 2
        assert code.position() == 17

    def test_emit_raw(self):
        code = ClassFileBuilder("Raw").bytecode()
        code.emit(0x00, 0xB1)
        assert bytes(code.build().code) == b"\x00\xb1"
