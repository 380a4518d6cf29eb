"""
Tests for vpkg.renderer
=======================

Test Organization
-----------------
- TestOutputNames: .tmpl detection and output naming
- TestRender: Rendering and verbatim copying
- TestRenderErrors: Syntax errors, undefined references, missing files
- TestSandbox: Attribute access and calls on context values
- TestHelperArguments: Non-string values passed to helpers
"""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from vpkg.context import build_context
from vpkg.errors import (
    MissingTemplateFileError,
    TemplateSyntaxError,
    UndefinedReferenceError,
)
from vpkg.models import PackageMetadata, TemplateContext
from vpkg.renderer import Renderer, create_jinja_env, is_template, output_name, render


@pytest.fixture
def context() -> TemplateContext:
    metadata = PackageMetadata.model_validate({
        "name": "vandor/redis-cache",
        "title": "Redis Cache",
        "type": "fx-module",
        "version": "1.2.0",
        "templates": ["module.go.tmpl"],
        "destination": "internal/vpkg/{namespace}/{package}",
    })
    return build_context(
        "github.com/acme/shop", metadata, datetime(2026, 10, 18, tzinfo=UTC)
    )


@pytest.fixture
def renderer() -> Renderer:
    return Renderer()


# =============================================================================
# Naming Tests
# =============================================================================

class TestOutputNames:
    """Tests for is_template and output_name."""

    def test_is_template(self) -> None:
        assert is_template("templates/module.go.tmpl")
        assert not is_template("templates/README.md")
        assert not is_template("logo.tmpl.png")

    def test_output_name_strips_suffix(self) -> None:
        assert output_name("templates/module.go.tmpl") == "module.go"

    def test_output_name_keeps_plain_files(self) -> None:
        assert output_name("assets/logo.png") == "logo.png"

    def test_bare_suffix_is_kept(self) -> None:
        assert output_name(".tmpl") == ".tmpl"


# =============================================================================
# Rendering Tests
# =============================================================================

class TestRender:
    """Tests for successful rendering."""

    def test_renders_variables_and_helpers(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "module.go.tmpl"
        source.write_text(
            "package {{ package_ident }}\n"
            "\n"
            "// {{ module }}\n"
            "type {{ package | pascal }} struct{}\n"
        )

        result = renderer.render(source, context)

        assert result == (
            b"package redis_cache\n"
            b"\n"
            b"// github.com/acme/shop\n"
            b"type RedisCache struct{}\n"
        )

    def test_keeps_trailing_newline(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ package }}\n")
        assert renderer.render(source, context) == b"redis-cache\n"

    def test_block_tags_do_not_leave_blank_lines(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text(
            "{% for dep in ['a', 'b'] %}\n"
            "  - {{ dep | upper }}\n"
            "{% endfor %}\n"
        )
        assert renderer.render(source, context) == b"  - A\n  - B\n"

    def test_no_html_escaping(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text('{{ "<a & b>" }}')
        assert renderer.render(source, context) == b"<a & b>"

    def test_non_template_copied_verbatim(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        payload = b"\x89PNG\x00\xff{{ package }}"
        source = tmp_path / "logo.png"
        source.write_bytes(payload)

        assert renderer.render(source, context) == payload

    def test_render_is_deterministic(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ package_pascal }} {{ created_at }}\n")
        assert renderer.render(source, context) == renderer.render(source, context)

    def test_module_level_render(self, tmp_path: Path, context: TemplateContext) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ namespace }}")
        assert render(source, context) == b"vandor"

    def test_environment_exposes_only_helpers(self) -> None:
        env = create_jinja_env()
        assert set(env.filters) == {
            "title", "camel", "pascal", "snake", "kebab", "upper", "lower", "go_ident",
        }
        assert not env.globals


# =============================================================================
# Error Tests
# =============================================================================

class TestRenderErrors:
    """Tests for render failures."""

    def test_syntax_error_has_line(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "broken.go.tmpl"
        source.write_text("package x\n{% if %}\n")

        with pytest.raises(TemplateSyntaxError) as exc_info:
            renderer.render(source, context)

        assert exc_info.value.path == source
        assert exc_info.value.lineno == 2

    def test_unclosed_block(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "broken.tmpl"
        source.write_text("{% for x in tags %}\nno end\n")
        with pytest.raises(TemplateSyntaxError):
            renderer.render(source, context)

    def test_undefined_variable(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("ok\n{{ owner }}\n")

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert exc_info.value.reference == "owner"
        assert exc_info.value.lineno == 2

    def test_undefined_helper(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ package | shout }}\n")

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert exc_info.value.reference == "shout"

    def test_undefined_helper_inside_conditional(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{% if true %}\n{{ package | shout }}\n{% endif %}\n")

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert exc_info.value.reference == "shout"
        assert exc_info.value.path == source

    def test_undefined_variable_through_helper(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ owner | pascal }}\n")

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert exc_info.value.reference == "owner"

    def test_builtin_filters_unavailable(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ package | capitalize }}\n")
        with pytest.raises(UndefinedReferenceError):
            renderer.render(source, context)

    def test_include_is_rejected(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        (tmp_path / "other.tmpl").write_text("secret")
        source = tmp_path / "a.tmpl"
        source.write_text("{% include 'other.tmpl' %}")

        with pytest.raises(UndefinedReferenceError):
            renderer.render(source, context)

    def test_invalid_utf8_template(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_bytes(b"ok \xff\xfe")
        with pytest.raises(TemplateSyntaxError, match="UTF-8"):
            renderer.render(source, context)

    def test_missing_source(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "nope.tmpl"
        with pytest.raises(MissingTemplateFileError) as exc_info:
            renderer.render(source, context)
        assert exc_info.value.missing == [source]

    def test_describe_includes_location(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("\n\n{{ nope }}")

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert f"{source}:3" in exc_info.value.describe()


# =============================================================================
# Sandbox Tests
# =============================================================================

class TestSandbox:
    """Templates see context values, never their Python surface."""

    def test_method_call_rejected(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ package.replace('-', 'X').swapcase() }}\n")

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert exc_info.value.reference == "replace"
        assert exc_info.value.lineno == 1

    def test_dunder_attribute_rejected(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("{{ ''.__class__ }}\n")

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert exc_info.value.reference == "__class__"

    def test_class_hierarchy_walk_cannot_reach_environment(
        self,
        tmp_path: Path,
        renderer: Renderer,
        context: TemplateContext,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("VPKG_TEST_SECRET", "hunter2-do-not-render")
        source = tmp_path / "a.tmpl"
        source.write_text(
            "{% for c in ''.__class__.__mro__[1].__subclasses__() %}"
            "{{ c.__init__.__globals__['os'].environ['VPKG_TEST_SECRET'] }}"
            "{% endfor %}\n"
        )

        with pytest.raises(UndefinedReferenceError) as exc_info:
            renderer.render(source, context)

        assert "hunter2" not in str(exc_info.value)
        assert "hunter2" not in exc_info.value.describe()

    def test_loop_variables_still_available(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text(
            "{% for part in ['a', 'b'] %}{{ loop.index }}{{ part }}"
            "{% if not loop.last %},{% endif %}{% endfor %}"
        )
        assert renderer.render(source, context) == b"1a,2b"

    def test_macros_still_callable(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text(
            "{% macro field(name) %}{{ name | pascal }} string{% endmacro %}"
            "{{ field('max-conns') }}"
        )
        assert renderer.render(source, context) == b"MaxConns string"


# =============================================================================
# Helper Argument Tests
# =============================================================================

class TestHelperArguments:
    """Helpers accept strings and None only."""

    def test_none_renders_empty(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        assert context.entry is None
        source = tmp_path / "a.tmpl"
        source.write_text("[{{ entry | pascal }}]")

        assert renderer.render(source, context) == b"[]"

    def test_sequence_argument_is_render_error(
        self, tmp_path: Path, renderer: Renderer, context: TemplateContext
    ) -> None:
        source = tmp_path / "a.tmpl"
        source.write_text("ok\n{{ tags | upper }}\n")

        with pytest.raises(TemplateSyntaxError, match="expects a string") as exc_info:
            renderer.render(source, context)

        assert exc_info.value.path == source
        assert exc_info.value.lineno == 2

    def test_helpers_keep_their_names(self) -> None:
        env = create_jinja_env()
        assert env.filters["pascal"].__name__ == "pascal"
        assert env.filters["pascal"]("redis-cache") == "RedisCache"
