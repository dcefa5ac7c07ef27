"""Tests for constant pool resolution."""

import pytest

from minijvm.classfile import (
    ConstantClass,
    ConstantFieldref,
    ConstantMethodref,
    ConstantNameAndType,
    ConstantString,
    ConstantUtf8,
)
from minijvm.constant_pool import ConstantPool, MemberRef, decode_modified_utf8
from minijvm.errors import ConstantPoolIndexError, ConstantPoolTypeMismatch, MalformedClassFile


@pytest.fixture
def cp():
    return ConstantPool([
        None,
        ConstantUtf8(b"java/lang/System"),       # 1
        ConstantUtf8(b"out"),                    # 2
        ConstantUtf8(b"Ljava/io/PrintStream;"),  # 3
        ConstantNameAndType(2, 3),               # 4
        ConstantFieldref(6, 4),                  # 5
        ConstantClass(1),                        # 6
        ConstantUtf8("héllo".encode("utf-8")),   # 7
        ConstantString(7),                       # 8
        ConstantUtf8(b"java/io/PrintStream"),    # 9
        ConstantUtf8(b"println"),                # 10
        ConstantUtf8(b"(Ljava/lang/String;)V"),  # 11
        ConstantNameAndType(10, 11),             # 12
        ConstantMethodref(14, 12),               # 13
        ConstantClass(9),                        # 14
    ])


class TestIndexing:
    def test_len_counts_reserved_slot(self, cp):
        assert len(cp) == 15

    def test_iteration_starts_at_one(self, cp):
        indices = [index for index, _ in cp]
        assert indices == list(range(1, 15))

    def test_index_zero_is_rejected(self, cp):
        with pytest.raises(ConstantPoolIndexError) as exc:
            cp.get(0)
        assert exc.value.index == 0

    @pytest.mark.parametrize("accessor", [
        "get_class", "get_fieldref", "get_methodref", "get_name_and_type",
        "get_string", "get_utf8_bytes",
    ])
    def test_every_accessor_rejects_zero(self, cp, accessor):
        with pytest.raises(ConstantPoolIndexError):
            getattr(cp, accessor)(0)

    def test_index_past_end(self, cp):
        with pytest.raises(ConstantPoolIndexError):
            cp.get(15)


class TestTypedAccessors:
    def test_matching_accessors(self, cp):
        assert cp.get_class(6) == ConstantClass(1)
        assert cp.get_fieldref(5) == ConstantFieldref(6, 4)
        assert cp.get_methodref(13) == ConstantMethodref(14, 12)
        assert cp.get_name_and_type(4) == ConstantNameAndType(2, 3)
        assert cp.get_string(8) == ConstantString(7)
        assert cp.get_utf8_bytes(2) == b"out"

    @pytest.mark.parametrize("accessor, index, expected, actual", [
        ("get_methodref", 1, "METHODREF", "UTF8"),
        ("get_fieldref", 13, "FIELDREF", "METHODREF"),
        ("get_class", 8, "CLASS", "STRING"),
        ("get_string", 7, "STRING", "UTF8"),
        ("get_utf8_bytes", 6, "UTF8", "CLASS"),
        ("get_name_and_type", 5, "NAME_AND_TYPE", "FIELDREF"),
    ])
    def test_wrong_tag_is_a_mismatch(self, cp, accessor, index, expected, actual):
        with pytest.raises(ConstantPoolTypeMismatch) as exc:
            getattr(cp, accessor)(index)
        assert exc.value.index == index
        assert exc.value.expected == expected
        assert exc.value.actual == actual


class TestResolution:
    def test_utf8_is_decoded_at_use(self, cp):
        assert cp.get_utf8_bytes(7) == "héllo".encode("utf-8")
        assert cp.get_utf8(7) == "héllo"

    def test_class_name(self, cp):
        assert cp.class_name(6) == "java/lang/System"

    def test_string_value(self, cp):
        assert cp.string_value(8) == "héllo"

    def test_resolve_fieldref(self, cp):
        ref = cp.resolve_fieldref(5)
        assert ref == MemberRef("java/lang/System", "out", "Ljava/io/PrintStream;")
        assert str(ref) == "java/lang/System.out:Ljava/io/PrintStream;"

    def test_resolve_methodref(self, cp):
        assert cp.resolve_methodref(13) == MemberRef(
            "java/io/PrintStream", "println", "(Ljava/lang/String;)V")

    def test_resolve_member_rejects_other_tags(self, cp):
        with pytest.raises(ConstantPoolTypeMismatch):
            cp.resolve_member(8)

    def test_resolve_methodref_rejects_fieldref(self, cp):
        with pytest.raises(ConstantPoolTypeMismatch):
            cp.resolve_methodref(5)


class TestModifiedUtf8:
    def test_bmp_text_unchanged(self):
        assert decode_modified_utf8("héllo €".encode("utf-8")) == "héllo €"

    def test_two_byte_nul(self):
        assert decode_modified_utf8(b"a\xc0\x80b") == "a\x00b"

    def test_surrogate_pair_joins(self):
        assert decode_modified_utf8(b"\xed\xa0\xbd\xed\xb8\x80") == "\U0001F600"

    def test_lone_surrogate_is_replaced(self):
        assert decode_modified_utf8(b"x\xed\xa0\xbd") == "x\ufffd"

    def test_invalid_bytes(self):
        with pytest.raises(MalformedClassFile):
            decode_modified_utf8(b"\xff")

    def test_get_utf8_uses_modified_encoding(self):
        cp = ConstantPool([None, ConstantUtf8(b"\xed\xa0\xbd\xed\xb8\x80\xc0\x80")])
        assert cp.get_utf8(1) == "\U0001F600\x00"
