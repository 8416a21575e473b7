"""End-to-end tests for one optimization pass."""

import pytest

from chunks import rollup_chunk, webpack_build_chunk, webpack_eval_chunk
from keyhole.errors import ConfigurationError, MissingReferenceError, ParseError
from keyhole.optimizer import KeyOptimizer, optimize_artifacts
from keyhole.parser import parse_language_artifact
from keyhole.structures import Artifact


def by_name(result):
    return {artifact.filename: artifact for artifact in result.artifacts}


def dictionary_of(artifact: Artifact) -> str:
    return parse_language_artifact(artifact).dictionary_text


@pytest.fixture
def build_output():
    return [
        Artifact("js/app.js", 'a.$t("hello");a.$t("missing")'),
        Artifact("js/lang-en-po.js", webpack_build_chunk('{hello:"Hello",bye:"Bye"}')),
        Artifact(
            "js/lang-es-po.js",
            webpack_build_chunk('{hello:"Hola"}', chunk="lang-es-po"),
        ),
        Artifact("img/logo.png", b"\x89PNG\r\n"),
    ]


class TestKeyOptimizer:
    """Full passes over small build outputs."""

    def test_end_to_end(self, build_output) -> None:
        warnings = []

        result = KeyOptimizer(emit_warning=warnings.append).run(build_output)
        artifacts = by_name(result)

        assert dictionary_of(artifacts["js/lang-en-po.js"]) == '{0:"Hello",1:"Bye"}'
        assert dictionary_of(artifacts["js/lang-es-po.js"]) == '{0:"Hola",1:"Bye"}'
        assert artifacts["js/app.js"].text == "a.$t('0');a.$t(\"missing\")"
        assert artifacts["img/logo.png"] is build_output[3]

        diagnostics = result.summary.diagnostics
        assert diagnostics.missing_translations == {"missing"}
        assert diagnostics.unused_translations == {"bye"}
        assert len(warnings) == 1
        assert warnings[0] == result.summary.warning

    def test_summary(self, build_output) -> None:
        summary = optimize_artifacts(build_output, emit_warning=lambda _: None).summary

        assert summary.total_artifacts == 4
        assert summary.language_artifacts == 2
        assert summary.usage_artifacts == 1
        assert summary.reference_artifact == "js/lang-en-po.js"
        assert summary.indexed_keys == 2
        assert summary.keys_rewritten == 3
        assert summary.usages_rewritten == 1
        assert summary.fallbacks_inserted == 1
        assert sorted(summary.changed_artifacts) == [
            "js/app.js",
            "js/lang-en-po.js",
            "js/lang-es-po.js",
        ]
        assert summary.bytes_saved > 0

    def test_artifact_order_is_preserved(self, build_output) -> None:
        result = optimize_artifacts(build_output, emit_warning=lambda _: None)

        assert [a.filename for a in result.artifacts] == [a.filename for a in build_output]

    def test_rewritten_artifacts_carry_position_maps(self, build_output) -> None:
        result = optimize_artifacts(build_output, emit_warning=lambda _: None)
        app = by_name(result)["js/app.js"]

        assert app.position_map is not None
        assert result.originals["js/app.js"] == build_output[0].text
        assert len(result.changed_artifacts()) == 3

    def test_without_language_files_nothing_changes(self) -> None:
        artifacts = [Artifact("js/app.js", '$t("hello")')]
        warnings = []

        result = KeyOptimizer(emit_warning=warnings.append).run(artifacts)

        assert result.artifacts == artifacts
        assert result.artifacts[0] is artifacts[0]
        assert result.summary.reference_artifact is None
        assert warnings == []

    def test_missing_reference_language(self, build_output) -> None:
        with pytest.raises(MissingReferenceError):
            KeyOptimizer(reference_language="fr").run(build_output)

    def test_parse_error_aborts_the_pass(self, build_output) -> None:
        build_output[2] = Artifact("js/lang-es-po.js", "var translations = 1;")

        with pytest.raises(ParseError) as info:
            KeyOptimizer().run(build_output)

        assert info.value.filename == "js/lang-es-po.js"

    def test_unknown_dialect(self) -> None:
        with pytest.raises(ConfigurationError):
            KeyOptimizer(dialect="parcel")

    def test_clean_pass_emits_no_warning(self) -> None:
        warnings = []
        artifacts = [
            Artifact("assets/en.po-1a.js", rollup_chunk('{hello:"Hello"}')),
            Artifact("assets/index-2b.js", 'x.$t("hello")'),
        ]

        result = KeyOptimizer(dialect="rollup", emit_warning=warnings.append).run(artifacts)

        assert warnings == []
        assert result.summary.warning is None
        assert by_name(result)["assets/index-2b.js"].text == "x.$t('0')"

    def test_eval_wrapped_build(self) -> None:
        artifacts = [
            Artifact("js/lang-en-po.js", webpack_eval_chunk('{"hello":"Hello"}')),
            Artifact("js/lang-de-po.js", webpack_eval_chunk("{}")),
            Artifact(
                "js/app.js",
                'eval("__webpack_exports__ = this.$t(\\"hello\\");\\n//# sourceURL=app");',
            ),
        ]

        result = optimize_artifacts(artifacts, emit_warning=lambda _: None)
        artifacts = by_name(result)

        assert dictionary_of(artifacts["js/lang-de-po.js"]) == '{0:\\"Hello\\"}'
        assert "this.$t('0')" in artifacts["js/app.js"].text

    def test_library_eval_does_not_hide_direct_usages(self) -> None:
        warnings = []
        artifacts = [
            Artifact("js/lang-en-po.js", webpack_build_chunk('{hello:"Hello"}')),
            Artifact("js/app.js", 'a.$t("hello");var req=eval("require");'),
        ]

        result = KeyOptimizer(emit_warning=warnings.append).run(artifacts)

        assert by_name(result)["js/app.js"].text == "a.$t('0');var req=eval(\"require\");"
        assert result.summary.diagnostics.unused_translations == set()
        assert warnings == []

    def test_vendor_chunks_are_left_alone(self) -> None:
        vendor = Artifact("js/chunk-vendors.js", 'n.$t("hello")')
        artifacts = [
            Artifact("js/lang-en-po.js", webpack_build_chunk('{hello:"Hello"}')),
            vendor,
        ]

        result = optimize_artifacts(artifacts, emit_warning=lambda _: None)

        assert by_name(result)["js/chunk-vendors.js"] is vendor
        assert result.summary.diagnostics.unused_translations == {"hello"}
