"""Tests for dialect detection and dictionary extraction."""

import pytest

from chunks import rollup_chunk, webpack_build_chunk, webpack_eval_chunk, webpack_serve_chunk
from keyhole.dialects import AUTO, ROLLUP, WEBPACK, WEBPACK_EVAL, detect_dialect, get_dialect
from keyhole.errors import ConfigurationError, ErrorCategory, ParseError
from keyhole.parser import parse_language_artifact, scan_dictionary
from keyhole.structures import Artifact


def language_artifact(text: str, filename: str = "js/lang-en-po.js") -> Artifact:
    return Artifact(filename=filename, content=text)


class TestDialects:
    """Dialect lookup and detection."""

    @pytest.mark.parametrize(
        ("builder", "expected"),
        [
            (webpack_build_chunk, WEBPACK),
            (webpack_serve_chunk, WEBPACK),
            (webpack_eval_chunk, WEBPACK_EVAL),
            (rollup_chunk, ROLLUP),
        ],
    )
    def test_detects_dialect(self, builder, expected) -> None:
        assert detect_dialect(builder('{"hello":"Hello"}')) is expected

    def test_unknown_text(self) -> None:
        assert detect_dialect("console.log(1);") is None

    def test_eval_dialect_uses_wrapped_escaping(self) -> None:
        assert WEBPACK_EVAL.wrapped
        assert not WEBPACK.wrapped

    def test_unknown_dialect_name(self) -> None:
        with pytest.raises(ConfigurationError):
            get_dialect("parcel")

    def test_explicit_dialect_restricts_detection(self) -> None:
        assert detect_dialect(rollup_chunk('{a:"b"}'), "webpack") is None


class TestParseLanguageArtifact:
    """Splitting language artifacts around their dictionary literal."""

    def test_webpack_build(self) -> None:
        text = webpack_build_chunk('{hello:"Hello",bye:"Bye"}')
        parsed = parse_language_artifact(language_artifact(text))

        assert parsed.dialect is WEBPACK
        assert parsed.dictionary_text == '{hello:"Hello",bye:"Bye"}'
        assert parsed.prefix + parsed.dictionary_text + parsed.suffix == text
        assert parsed.suffix == "}}]);"

    def test_webpack_serve_keeps_semicolon_in_dictionary_region(self) -> None:
        parsed = parse_language_artifact(
            language_artifact(webpack_serve_chunk('{"hello": "Hello"}'))
        )

        assert parsed.dictionary_text == '{"hello": "Hello"};'
        assert parsed.suffix.startswith("\n\n/***/ })")

    def test_webpack_eval(self) -> None:
        parsed = parse_language_artifact(
            language_artifact(webpack_eval_chunk('{"hello":"Hello"}'))
        )

        assert parsed.dialect is WEBPACK_EVAL
        assert parsed.dictionary_text == '{\\"hello\\":\\"Hello\\"}'

    def test_rollup(self) -> None:
        text = rollup_chunk('{hello:"Hello"}')
        parsed = parse_language_artifact(language_artifact(text, "assets/en.po-3f2a.js"))

        assert parsed.dialect is ROLLUP
        assert parsed.prefix == "const e="
        assert parsed.dictionary_text == '{hello:"Hello"}'

    def test_unrecognised_file(self) -> None:
        with pytest.raises(ParseError) as info:
            parse_language_artifact(language_artifact("var x = 1;"))

        assert info.value.category is ErrorCategory.PARSE
        assert info.value.filename == "js/lang-en-po.js"
        assert "Each language file has to be its own chunk" in str(info.value)

    def test_explicit_dialect_reports_missing_end(self) -> None:
        with pytest.raises(ParseError, match="did not find the end"):
            parse_language_artifact(
                language_artifact('module.exports={a:"b"}'), "webpack"
            )

    def test_bundled_language_files_are_rejected(self) -> None:
        text = webpack_build_chunk('{a:"b"}),foo=function(){return 1}')

        with pytest.raises(ParseError, match="unexpected content"):
            parse_language_artifact(language_artifact(text))

    def test_binary_content(self) -> None:
        with pytest.raises(ParseError):
            parse_language_artifact(Artifact(filename="lang-en-po.js", content=b"\x00"))

    def test_auto_is_the_default(self) -> None:
        parsed = parse_language_artifact(
            language_artifact(rollup_chunk("{}")), AUTO
        )
        assert parsed.dictionary_text == "{}"


class TestScanDictionary:
    """Tokenising dictionary literals into entries."""

    def scan(self, dictionary: str):
        parsed = parse_language_artifact(language_artifact(webpack_build_chunk(dictionary)))
        return parsed, scan_dictionary(parsed)

    def test_entry_offsets_are_absolute(self) -> None:
        parsed, layout = self.scan('{hello:"Hello","good bye":\'Bye\'}')
        text = parsed.artifact.text

        first, second = layout.entries
        assert text[first.key_start:first.key_end] == "hello"
        assert text[first.value_start:first.value_end] == '"Hello"'
        assert second.key_text == '"good bye"'
        assert second.value_text == "'Bye'"
        assert text[layout.closing_brace] == "}"

    def test_trailing_comma(self) -> None:
        _, layout = self.scan('{a:"1",}')

        assert layout.has_trailing_comma
        assert not layout.needs_separator

    def test_empty_dictionary_needs_no_separator(self) -> None:
        _, layout = self.scan("{}")

        assert layout.entries == []
        assert not layout.needs_separator

    def test_values_with_braces_and_colons(self) -> None:
        _, layout = self.scan('{a:"x: {y}, z",b:"w"}')

        assert [entry.key_text for entry in layout.entries] == ["a", "b"]

    @pytest.mark.parametrize(
        ("dictionary", "reason"),
        [
            ('{a "b"}', "expected ':'"),
            ("{a:b}", "expected a quoted translation"),
            ('{a:"b" c:"d"}', "expected ',' or '}'"),
            ('{:"b"}', "expected a translation key"),
        ],
    )
    def test_malformed_dictionaries(self, dictionary: str, reason: str) -> None:
        with pytest.raises(ParseError, match=reason):
            self.scan(dictionary)

    def test_wrapped_dictionary(self) -> None:
        parsed = parse_language_artifact(
            language_artifact(webpack_eval_chunk('{"a":"x\\ny","b":""}'))
        )
        layout = scan_dictionary(parsed)

        assert [entry.key_text for entry in layout.entries] == ['\\"a\\"', '\\"b\\"']
        assert layout.entries[1].value_text == '\\"\\"'
