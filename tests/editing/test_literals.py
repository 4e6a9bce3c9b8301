"""Tests for literal classification, encoding and prompt templates."""

import logging

import pytest

from bundle_patcher.editing.literals import (
    LiteralStyle,
    build_prompt_pattern,
    captured_identifiers,
    classify_context,
    detect_unicode_escaping,
    encode_for_style,
    escape_non_ascii,
    find_unescaped_backticks,
    format_backtick_error,
    interpolate_prompt,
    reconstruct_baseline,
)


class TestClassifyContext:
    def test_double_quoted(self):
        text = 'var a="hello world";'
        assert classify_context(text, text.index("world")) is LiteralStyle.DOUBLE_QUOTED

    def test_single_quoted(self):
        text = "var a='hello world';"
        assert classify_context(text, text.index("world")) is LiteralStyle.SINGLE_QUOTED

    def test_backtick(self):
        text = "var a=`hello ${b} world`;"
        assert classify_context(text, text.index("world")) is LiteralStyle.BACKTICK_TEMPLATE

    def test_escaped_delimiter_is_skipped(self):
        text = 'var a=`say \\"hi\\" now`;'
        assert classify_context(text, text.index("now")) is LiteralStyle.BACKTICK_TEMPLATE

    def test_double_backslash_does_not_escape(self):
        text = 'var a=`x`+"path\\\\"+y'
        # the quote after the two backslashes closes the string
        assert classify_context(text, len(text)) is LiteralStyle.DOUBLE_QUOTED

    def test_no_delimiter_is_plain_code_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            style = classify_context("function f(){return 1}", 10)
        assert style is LiteralStyle.PLAIN_CODE
        assert "could not determine literal style" in caplog.text

    def test_window_bounds_the_scan(self):
        text = '"' + "x" * 100
        assert classify_context(text, 100, window=10) is LiteralStyle.PLAIN_CODE


class TestEncodeForStyle:
    def test_double_quoted_escapes_quotes_and_newlines(self):
        encoded = encode_for_style('Say "hi"\nthen go', LiteralStyle.DOUBLE_QUOTED)
        assert encoded == 'Say \\"hi\\"\\nthen go'

    def test_double_quoted_keeps_single_quotes(self):
        assert encode_for_style("it's", LiteralStyle.DOUBLE_QUOTED) == "it's"

    def test_already_escaped_quote_untouched(self):
        assert encode_for_style('a \\"b\\"', LiteralStyle.DOUBLE_QUOTED) == 'a \\"b\\"'

    def test_single_quoted(self):
        assert encode_for_style("it's\nok", LiteralStyle.SINGLE_QUOTED) == "it\\'s\\nok"

    def test_backtick_escapes_backticks_and_interpolation(self):
        encoded = encode_for_style("use `ls`\n${HOME}", LiteralStyle.BACKTICK_TEMPLATE)
        assert encoded == "use \\`ls\\`\n\\${HOME}"

    def test_plain_code_unchanged(self):
        assert encode_for_style('a"b`c', LiteralStyle.PLAIN_CODE) == 'a"b`c'

    def test_crlf_normalised(self):
        assert encode_for_style("a\r\nb", LiteralStyle.DOUBLE_QUOTED) == "a\\nb"


class TestUnicodeEscaping:
    def test_bmp_character(self):
        assert escape_non_ascii("a→b") == "a\\u2192b"

    def test_astral_character_becomes_surrogate_pair(self):
        assert escape_non_ascii("😀") == "\\ud83d\\ude00"

    def test_ascii_untouched(self):
        assert escape_non_ascii("plain text") == "plain text"

    def test_detect(self):
        assert detect_unicode_escaping('var a="\\u2192";')
        assert not detect_unicode_escaping('var a="→";')


class TestPromptTemplates:
    def test_reconstruct_baseline(self):
        text = reconstruct_baseline(["Use ", " to read ", " files."], [0, 1],
                                    {"0": "READ_TOOL", "1": "KIND"})
        assert text == "Use READ_TOOL to read KIND files."

    def test_pattern_captures_identifiers(self):
        pattern = build_prompt_pattern(["Use ", " tool."], [0])
        match = pattern.search('x="Use Rd$ tool."')
        assert match is not None
        assert captured_identifiers(match, [0]) == {"0": "Rd$"}

    def test_repeated_identifier_is_a_backreference(self):
        pattern = build_prompt_pattern(["", " and ", " again"], [3, 3])
        assert pattern.search("Ab and Ab again")
        assert pattern.search("Ab and Cd again") is None

    def test_leading_identifier_is_anchored(self):
        pattern = build_prompt_pattern(["", " rocks"], [0])
        match = pattern.search("xQ.Z rocks")
        assert match.group(0) == "Z rocks"

    def test_newline_tolerance(self):
        pattern = build_prompt_pattern(["line one\nline two"], [])
        assert pattern.search('"line one\\nline two"')
        assert pattern.search("`line one\nline two`")

    def test_quote_tolerance(self):
        pattern = build_prompt_pattern(['say "hi"'], [])
        assert pattern.search('"say \\"hi\\""')
        assert pattern.search('`say "hi"`')

    def test_unicode_escape_tolerance_is_case_insensitive(self):
        pattern = build_prompt_pattern(["a→b"], [])
        assert pattern.search("a→b")
        assert pattern.search("a\\u2192b")
        assert pattern.search("a\\u21A0b") is None

    def test_hex_case(self):
        pattern = build_prompt_pattern(["xé"], [])
        assert pattern.search("x\\u00E9")
        assert pattern.search("x\\u00e9")


class TestInterpolatePrompt:
    def test_dollar_sequences_inserted_verbatim(self):
        pieces = ["Timeout: ", "() ms"]
        pattern = build_prompt_pattern(pieces, [1])
        match = pattern.search("Timeout: J$$() ms")
        captured = captured_identifiers(match, [1])
        assert captured == {"1": "J$$"}

        result = interpolate_prompt("Timeout: ${MAX_TIMEOUT()} ms",
                                    {"1": "MAX_TIMEOUT"}, captured)
        assert result == "Timeout: ${J$$()} ms"

    def test_whole_names_only(self):
        result = interpolate_prompt("TOOL and TOOLS and TOOL.x", {"0": "TOOL"}, {"0": "Q"})
        assert result == "Q and TOOLS and Q.x"

    def test_longest_name_first(self):
        result = interpolate_prompt("A_B A", {"0": "A", "1": "A_B"}, {"0": "x", "1": "y"})
        assert result == "y x"

    def test_nothing_captured(self):
        assert interpolate_prompt("text", {}, {}) == "text"


class TestBackticks:
    def test_finds_line_and_column(self):
        found = find_unescaped_backticks("ok line\nrun `ls` now")
        assert found == {2: [5, 8]}

    def test_escaped_backticks_ignored(self):
        assert find_unescaped_backticks("run \\`ls\\`") == {}

    def test_backticks_inside_interpolation_ignored(self):
        assert find_unescaped_backticks("value ${f(`x`)} done") == {}

    def test_error_message(self):
        message = format_backtick_error("prompts/a.md", 7, "run `ls`", [5, 8])
        assert "prompts/a.md:7" in message
        assert "column 5, 8" in message
        assert message.endswith("    ^  ^")

    @pytest.mark.parametrize("text", ["", "no ticks at all"])
    def test_clean_text(self, text):
        assert find_unescaped_backticks(text) == {}
