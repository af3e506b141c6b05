# =============================================================================
# test_converter.py - Full Conversion Tests
# =============================================================================
# End-to-end tests for the txt2abs conversion pipeline, from text lines to
# the absolute-format image.
#
# Test coverage includes:
#   - Block flushing on origin and consistency-check directives
#   - Conditional compilation and symbol definitions
#   - Error reporting with line numbers, and continuing after errors
#   - Listing output
# =============================================================================

import pytest

from absloader.converter import (
    Converter,
    ConverterConfig,
    convert_file,
    convert_string,
    write_image,
)
from absloader.errors import ConversionError, NestingDepthError, Severity
from absloader.reader import AbsReader
from absloader.records import AbsBlock, BlockKind


def data_payload(result) -> bytes:
    """Concatenated payload of all data blocks."""
    return b"".join(b.payload for b in result.blocks if b.kind is BlockKind.BLOCK)


# =============================================================================
# Basic Conversion
# =============================================================================

class TestBasicConversion:
    """Test the conversion pipeline on valid input."""

    def test_round_trip(self):
        result = convert_string("= 1000\n000100 000200\nb 377\n")
        assert result.error_count == 0
        assert result.blocks == [
            AbsBlock(origin=0o1000, payload=bytes([0x40, 0x00, 0x80, 0x00, 0xFF])),
            AbsBlock.halt(),
        ]
        assert result.image == bytes([
            0x01, 0x00, 0x0B, 0x00, 0x00, 0x02,
            0x40, 0x00, 0x80, 0x00, 0xFF, 0x33,
            0x01, 0x00, 0x06, 0x00, 0x01, 0x00, 0xF8,
        ])

    def test_empty_input_writes_only_halt(self):
        result = convert_string("")
        assert result.blocks == [AbsBlock.halt()]
        assert result.ok

    def test_word_encoding(self):
        result = convert_string("= 400\n000400 001000 177777\n")
        assert data_payload(result) == bytes([0x00, 0x01, 0x00, 0x02, 0xFF, 0xFF])

    def test_every_record_sums_to_zero(self):
        source = "= 1000\n1 2 3\n:: 1006\nb 12\nb 34\n= 2000\n177777\n"
        result = convert_string(source)
        reader = AbsReader.from_bytes(result.image)
        for block in reader.blocks:
            assert sum(block.to_bytes()) % 256 == 0

    def test_image_is_readable(self):
        result = convert_string("= 1000\n012700 000100\n")
        reader = AbsReader.from_bytes(result.image)
        assert reader.blocks == result.blocks

    def test_crlf_and_indentation(self):
        result = convert_string("= 1000\r\n   000100\r\n\t// note\r\n")
        assert result.ok
        assert data_payload(result) == bytes([0x40, 0x00])

    def test_lines_processed(self):
        assert convert_string("\n\n= 1000\n").lines_processed == 3

    def test_pc_advances(self):
        converter = Converter()
        converter.convert(["= 1000", "1 2 3", "b 1"])
        assert converter.assembler.pc == 0o1007


# =============================================================================
# Flushing
# =============================================================================

class TestFlushing:
    """Test when blocks are written."""

    def test_origin_flushes_pending(self):
        result = convert_string("= 1000\n1\n= 2000\n2\n")
        assert [b.origin for b in result.blocks] == [0o1000, 0o2000, 1]

    def test_origin_with_empty_buffer_writes_nothing(self):
        result = convert_string("= 1000\n= 2000\n1\n")
        assert [b.origin for b in result.blocks] == [0o2000, 1]

    def test_check_flushes_and_chains_origin(self):
        result = convert_string("= 1000\n1 2\n:: 1004\n3\n")
        assert result.ok
        assert [(b.origin, len(b.payload)) for b in result.blocks] == [
            (0o1000, 4), (0o1004, 2), (1, 0),
        ]

    def test_check_flushes_even_on_mismatch(self):
        result = convert_string("= 1000\n1\n:: 1010\n2\n")
        assert result.error_count == 1
        assert [b.origin for b in result.blocks] == [0o1000, 0o1002, 1]


# =============================================================================
# Consistency Checks
# =============================================================================

class TestConsistencyChecks:
    """Test ':' and '::' directives."""

    def test_strict_match(self):
        assert convert_string("= 1000\n1 2\n:: 1004\n").ok

    def test_strict_mismatch(self):
        result = convert_string("= 1000\n1 2\n:: 1002\n")
        assert result.error_count == 1
        error = result.errors[0]
        assert error.line == 3
        assert error.message == 'consistency check, expecting pc=001004 but ":: 001002" specified'

    def test_previous_match(self):
        assert convert_string("= 1000\n1 2\n: 1002\n").ok

    def test_previous_mismatch(self):
        result = convert_string("= 1000\n1 2\n: 1004\n")
        assert result.error_count == 1
        assert "(pc-2)=001002" in result.errors[0].message

    def test_previous_flushes_even_on_mismatch(self):
        result = convert_string("= 1000\n1\n: 1010\n2\n")
        assert result.error_count == 1
        assert [b.origin for b in result.blocks] == [0o1000, 0o1002, 1]

    def test_previous_at_zero(self):
        assert convert_string("1\n: 0\n").ok

    def test_previous_before_first_word(self):
        """At pc 0 the expected address wraps to 177776 in the message."""
        result = convert_string(": 0\n")
        assert result.error_count == 1
        assert "(pc-2)=177776" in result.errors[0].message

    def test_out_of_range_check(self):
        result = convert_string(":: 200000\n")
        # range error plus the mismatch
        assert result.error_count == 2


# =============================================================================
# Conditional Compilation
# =============================================================================

class TestConditionals:
    """Test #if/#ifdef/#else/#endif and #define."""

    NESTED = "#if 1\n#ifdef FOO\n1\n#else\n2\n#endif\n#endif\n"

    def test_nested_else_branch(self):
        result = convert_string(self.NESTED)
        assert result.ok
        assert data_payload(result) == bytes([0x02, 0x00])

    def test_nested_with_predefined_symbol(self):
        result = convert_string(self.NESTED, ConverterConfig(predefined=("FOO",)))
        assert data_payload(result) == bytes([0x01, 0x00])

    def test_if_zero(self):
        result = convert_string("#if 0\n1\n#else\n2\n#endif\n3\n")
        assert data_payload(result) == bytes([0x02, 0x00, 0x03, 0x00])

    def test_suppressed_outer_scope_wins(self):
        result = convert_string("#if 0\n#if 1\n1\n#else\n2\n#endif\n#endif\n")
        assert data_payload(result) == b""

    def test_define_enables_ifdef(self):
        result = convert_string("#define FOO\n#ifdef FOO\n1\n#endif\n")
        assert data_payload(result) == bytes([0x01, 0x00])

    def test_define_ignored_when_suppressed(self):
        result = convert_string("#if 0\n#define FOO\n#endif\n#ifdef FOO\n1\n#endif\n")
        assert data_payload(result) == b""

    def test_suppressed_lines_not_checked(self):
        result = convert_string("#if 0\ngarbage\n#error nope\n= 200000\n#endif\n")
        assert result.ok

    def test_else_without_if(self):
        result = convert_string("1\n#else\n2\n")
        assert result.error_count == 1
        assert result.errors[0].message == "#else not inside #if"
        assert data_payload(result) == bytes([0x01, 0x00, 0x02, 0x00])

    def test_endif_without_if(self):
        result = convert_string("#endif\n1\n")
        assert result.error_count == 1
        assert result.errors[0].message == "#endif without corresponding #if"
        assert data_payload(result) == bytes([0x01, 0x00])

    def test_deep_nesting_unlimited(self):
        source = "#if 1\n" * 40 + "1\n" + "#endif\n" * 40
        result = convert_string(source)
        assert result.ok
        assert data_payload(result) == bytes([0x01, 0x00])

    def test_max_nesting(self):
        config = ConverterConfig(max_nesting=2)
        with pytest.raises(NestingDepthError):
            convert_string("#if 1\n#if 1\n#if 1\n", config)


# =============================================================================
# Errors and Warnings
# =============================================================================

class TestDiagnostics:
    """Test error reporting and continuing after errors."""

    def test_error_directive(self):
        result = convert_string("#error unsupported model\n")
        assert result.error_count == 1
        assert str(result.errors[0]) == 'line 1 ERROR: "#error unsupported model"'

    def test_warning_directive_not_counted(self):
        result = convert_string("#warning check vectors\n")
        assert result.error_count == 0
        assert result.ok
        assert len(result.warnings) == 1
        assert result.warnings[0].severity is Severity.WARNING
        assert str(result.warnings[0]) == 'line 1 WARNING: "#warning check vectors"'

    def test_malformed_line(self):
        result = convert_string("= 1000\n1\nxyz\n2\n")
        assert result.error_count == 1
        assert result.errors[0].line == 3
        assert result.errors[0].message == 'syntax error "xyz"'
        assert data_payload(result) == bytes([0x01, 0x00, 0x02, 0x00])

    def test_malformed_line_leaves_state_unchanged(self):
        converter = Converter()
        converter.process_line("= 1000")
        converter.process_line("1 b 2")
        before = (converter.assembler.pc, converter.assembler.origin, converter.assembler.pending)
        converter.process_line("what is this")
        after = (converter.assembler.pc, converter.assembler.origin, converter.assembler.pending)
        assert before == after
        assert converter.diagnostics.error_count() == 1

    def test_line_numbers_count_blank_and_comment_lines(self):
        result = convert_string("\n// comment\n#if 0\n#endif\nxyz\n")
        assert result.errors[0].line == 5

    def test_odd_pc(self):
        converter = Converter()
        result = converter.convert(["= 1000", "b 1", "2"])
        assert result.error_count == 1
        assert result.errors[0].message == "odd pc=001001"
        assert data_payload(result) == bytes([0x01, 0x02, 0x00])
        assert converter.assembler.pc == 0o1003

    def test_byte_range(self):
        result = convert_string("b 400\n")
        assert result.error_count == 1
        assert result.errors[0].message == "range b=0400"
        assert data_payload(result) == b"\x00"

    def test_word_range(self):
        result = convert_string("1 200000\n")
        assert result.error_count == 1
        assert result.errors[0].message == "range w1=200000"

    def test_origin_range(self):
        result = convert_string("= 200000\n")
        assert result.error_count == 1
        assert result.errors[0].message == "range origin=200000"

    def test_address_overflow(self):
        result = convert_string("= 177776\n1\n2\n")
        assert result.error_count == 1
        assert result.errors[0].line == 3
        assert "address overflow" in result.errors[0].message

    def test_block_overflow(self):
        """Bytes past the block limit are dropped, pc still advances."""
        converter = Converter()
        converter.assembler.max_payload = 4
        result = converter.convert(["= 1000", "1 2", "3"])
        assert result.error_count == 1
        assert result.errors[0].line == 3
        assert result.errors[0].message == (
            "block overflow at pc=001004, block is limited to 4 bytes"
        )
        assert data_payload(result) == bytes([0x01, 0x00, 0x02, 0x00])
        assert converter.assembler.pc == 0o1006

    def test_errors_accumulate(self):
        result = convert_string("xyz\nb 400\n#error a\n#else\n= 1000\nb 1\n2\n:: 0\n")
        assert result.error_count == 6
        assert [d.line for d in result.errors] == [1, 2, 3, 4, 7, 8]

    def test_halt_written_despite_errors(self):
        result = convert_string("xyz\n")
        assert result.blocks[-1] == AbsBlock.halt()
        assert not result.ok

    def test_summary(self):
        assert convert_string("").summary() == "0 errors"
        assert convert_string("xyz\n").summary() == "1 error"
        assert convert_string("xyz\nxyz\n").summary() == "2 errors"


# =============================================================================
# Listing
# =============================================================================

class TestListing:
    """Test listing output."""

    def test_listing_lines(self):
        config = ConverterConfig(listing=True)
        result = convert_string("= 1000\n000100 000200\nb 377\n", config)
        assert result.listing[:3] == [
            "line #0001: 000000 | = 1000",
            "line #0002: 001000 | 000100 000200",
            "line #0003: 001004 | b 377",
        ]
        assert "wrote BLK org 001000 len 000005 cksum 0063(0x33)" in result.listing
        assert "wrote HALT org 000001 len 000000 cksum 0370(0xf8)" in result.listing

    def test_listing_includes_diagnostics_in_place(self):
        config = ConverterConfig(listing=True)
        result = convert_string("xyz\n1\n", config)
        assert result.listing[:3] == [
            "line #0001: 000000 | xyz",
            'line 1 ERROR: syntax error "xyz"',
            "line #0002: 000000 | 1",
        ]

    def test_listing_shows_defines(self):
        config = ConverterConfig(listing=True)
        result = convert_string("#define FOO\n", config)
        assert "#define FOO" in result.listing

    def test_debug_conditionals(self):
        config = ConverterConfig(listing=True, debug_conditionals=True)
        result = convert_string("#if 0\n#else\n#endif\n", config)
        assert "cond #if 0 depth=1 suppressed=True" in result.listing
        assert "cond #else depth=1 suppressed=False" in result.listing
        assert "cond #endif depth=0 suppressed=False" in result.listing

    def test_no_listing_by_default(self):
        assert convert_string("= 1000\n1\n").listing == []


# =============================================================================
# Files
# =============================================================================

class TestFiles:
    """Test file-based conversion."""

    def test_convert_file(self, tmp_path):
        source = tmp_path / "boot.txt"
        source.write_text("= 1000\n1\nxyz\n")
        result = convert_file(source)
        assert result.errors[0].location.filename == str(source)
        assert result.errors[0].line == 3

    def test_string_and_file_number_lines_alike(self, tmp_path):
        """Form feeds and lone CRs do not start a new line."""
        text = "// page 1\x0c\nxyz\r= 1000\nxyz\n"
        source = tmp_path / "paged.txt"
        source.write_bytes(text.encode("utf-8"))
        from_string = convert_string(text)
        from_file = convert_file(source)
        assert [d.line for d in from_string.errors] == [2, 3]
        assert [d.line for d in from_file.errors] == [2, 3]
        assert from_string.lines_processed == from_file.lines_processed == 3

    def test_convert_file_keeps_config(self, tmp_path):
        source = tmp_path / "boot.txt"
        source.write_text("#ifdef X\n1\n#endif\n")
        config = ConverterConfig(predefined=("X",))
        result = convert_file(source, config)
        assert data_payload(result) == b"\x01\x00"
        assert config.filename == "<input>"

    def test_write_image(self, tmp_path):
        result = convert_string("= 1000\n1\n")
        target = tmp_path / "boot.abs"
        assert write_image(result, target) == len(result.image)
        assert target.read_bytes() == result.image
        assert not (tmp_path / "boot.abs.tmp").exists()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            convert_file(tmp_path / "missing.txt")

    def test_converter_single_use(self):
        converter = Converter()
        converter.convert([])
        with pytest.raises(ConversionError):
            converter.convert([])
