"""
vpkg.renderer - Template Renderer
=================================

Renders package template files through Jinja2.

File naming conventions
-----------------------
- ``*.tmpl`` files are rendered; the suffix is dropped from the output name
- Every other file is copied byte-for-byte (binary assets, pre-formatted
  sources, ...)

Template Surface
----------------
Templates see every :class:`~vpkg.models.TemplateContext` field as a
variable and the helpers from :data:`vpkg.casing.HELPERS` as filters::

    package {{ package_ident }}

    type {{ package_pascal }}Config struct {
        Name string // {{ "max-idle conns" | camel }}
    }

The environment is deliberately closed:

- ``StrictUndefined``: an unknown variable is an error, never ``""``
- Sandboxed: no attribute access or method calls on context values, so
  ``{{ package.replace("-", "") }}`` and ``{{ "".__class__ }}`` both fail
- Only the vpkg helpers are registered as filters. ``None`` renders through
  a helper as ``""``; any other non-string argument is an error
- No globals, and no loader content, so ``{% include %}`` fails

Rendering reads nothing but the template text and the context.
"""

from __future__ import annotations

import functools
import re
import traceback
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jinja2
from jinja2 import DictLoader, Environment, StrictUndefined, Undefined
from jinja2.exceptions import FilterArgumentError, SecurityError
from jinja2.runtime import LoopContext, Macro
from jinja2.sandbox import SandboxedEnvironment

from vpkg.casing import HELPERS
from vpkg.errors import (
    MissingTemplateFileError,
    TemplateSyntaxError,
    UndefinedReferenceError,
)


if TYPE_CHECKING:
    from collections.abc import Callable

    from vpkg.models import TemplateContext


TEMPLATE_SUFFIX = ".tmpl"

# Filename Jinja2 gives templates compiled with from_string()
_JINJA_FILENAME = "<template>"

_QUOTED_NAME = re.compile(r"'([^']+)'")

# Jinja2 defers unknown filters/tests inside conditionals to render time
_UNKNOWN_HELPER = re.compile(r"^No (?:filter|test) named '([^']+)'")

# "access to attribute 'replace' of 'str' object is unsafe."
_UNSAFE_ATTRIBUTE = re.compile(r"attribute '([^']+)'")

# Plain Python errors a template can still trigger, e.g. {{ tags + 1 }}
_RUNTIME_ERRORS = (ArithmeticError, AttributeError, LookupError, TypeError, ValueError)


def is_template(path: Path | str) -> bool:
    """Whether a file is rendered (True) or copied verbatim (False)."""
    return Path(path).name.endswith(TEMPLATE_SUFFIX)


def output_name(path: Path | str) -> str:
    """
    Output file name for a template source.

    Examples
    --------
    >>> output_name("templates/module.go.tmpl")
    'module.go'
    >>> output_name("assets/logo.png")
    'logo.png'
    """
    name = Path(path).name
    if name.endswith(TEMPLATE_SUFFIX) and len(name) > len(TEMPLATE_SUFFIX):
        return name[: -len(TEMPLATE_SUFFIX)]
    return name


# =============================================================================
# Template Engine Setup
# =============================================================================

class ClosedEnvironment(SandboxedEnvironment):
    """
    Sandbox that exposes context values but none of their Python surface.

    Only ``loop`` variables keep their attributes, and only template
    macros can be called. Calling an undefined value is allowed so that it
    raises its own error (e.g. the unsafe attribute it came from).
    """

    def is_safe_attribute(self, obj: Any, attr: str, value: Any) -> bool:
        return isinstance(obj, LoopContext) and super().is_safe_attribute(obj, attr, value)

    def is_safe_callable(self, obj: Any) -> bool:
        return isinstance(obj, (Macro, Undefined))


def string_filter(helper: Callable[[str], str]) -> Callable[[Any], str]:
    """
    Adapt a casing helper for use as a template filter.

    ``None`` (e.g. ``entry`` of an fx-module) is treated as ``""``. Any other
    non-string value raises :class:`~jinja2.exceptions.FilterArgumentError`.
    """

    @functools.wraps(helper)
    def _filter(value: Any) -> str:
        if isinstance(value, Undefined):
            # StrictUndefined raises here, naming the missing variable
            value = str(value)
        if value is None:
            return helper("")
        if not isinstance(value, str):
            raise FilterArgumentError(
                f"Filter '{helper.__name__}' expects a string, "
                f"got {type(value).__name__}"
            )
        return helper(value)

    return _filter


def create_jinja_env() -> Environment:
    """
    Create the closed Jinja2 environment used for all package templates.

    Returns
    -------
    Environment
        Sandboxed environment with strict undefined handling and only the
        vpkg helpers as filters.

    Notes
    -----
    Autoescaping is off: the output is source code, not HTML.
    """
    env = ClosedEnvironment(
        loader=DictLoader({}),
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,  # Remove first newline after block tags
        lstrip_blocks=True,  # Strip leading whitespace before block tags
        keep_trailing_newline=True,  # Preserve trailing newlines in templates
    )
    env.globals.clear()
    env.filters = {name: string_filter(helper) for name, helper in HELPERS.items()}
    return env


def _reference_name(message: str | None) -> str | None:
    # "'foo' is undefined", "'str object' has no attribute 'bar'",
    # "No filter named 'shout'." -> the last quoted name
    if not message:
        return None
    names = _QUOTED_NAME.findall(message)
    return names[-1] if names else None


def _template_lineno(exc: BaseException) -> int | None:
    lineno = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == _JINJA_FILENAME:
            lineno = frame.lineno
    return lineno


# =============================================================================
# Renderer
# =============================================================================

class Renderer:
    """
    Renders or copies template sources.

    One renderer is shared by all jobs of an install. The Jinja2
    environment is never modified after construction, so concurrent
    :meth:`render` calls are safe.

    Parameters
    ----------
    env : Environment | None
        Jinja2 environment. Defaults to :func:`create_jinja_env`.
    """

    def __init__(self, env: Environment | None = None) -> None:
        self.env = env or create_jinja_env()

    def render(self, source_path: Path | str, context: TemplateContext) -> bytes:
        """
        Produce the output bytes for one source file.

        Parameters
        ----------
        source_path : Path | str
            Template source. ``*.tmpl`` files are rendered, others copied.

        context : TemplateContext
            Values available to the template.

        Returns
        -------
        bytes
            Rendered (UTF-8) or verbatim content.

        Raises
        ------
        MissingTemplateFileError
            If the source cannot be read.
        TemplateSyntaxError
            If the template cannot be parsed, or fails while rendering
            (e.g. a helper applied to a list).
        UndefinedReferenceError
            If the template references an unknown field or helper, or
            reaches for an attribute or method of a context value.
        """
        path = Path(source_path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise MissingTemplateFileError([path]) from e

        if not is_template(path):
            return content

        return self.render_content(content, context, path)

    def render_content(
        self,
        content: bytes,
        context: TemplateContext,
        path: Path | str = _JINJA_FILENAME,
    ) -> bytes:
        """
        Render template text already read into memory.

        ``path`` is used only to label errors.
        """
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TemplateSyntaxError(
                f"Template is not valid UTF-8 (byte {e.start})", path=path
            ) from e

        try:
            template = self.env.from_string(text)
        except jinja2.TemplateAssertionError as e:
            # Unknown filters and tests are reported at compile time
            raise UndefinedReferenceError(
                e.message or str(e),
                reference=_reference_name(e.message),
                path=path,
                lineno=e.lineno,
            ) from e
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(
                e.message or str(e), path=path, lineno=e.lineno
            ) from e

        try:
            rendered = template.render(context.as_template_vars())
        except jinja2.UndefinedError as e:
            raise UndefinedReferenceError(
                e.message or str(e),
                reference=_reference_name(e.message),
                path=path,
                lineno=_template_lineno(e),
            ) from e
        except jinja2.TemplateNotFound as e:
            raise UndefinedReferenceError(
                f"Templates cannot include other templates ('{e.name}')",
                reference=str(e.name),
                path=path,
                lineno=_template_lineno(e),
            ) from e
        except SecurityError as e:
            match = _UNSAFE_ATTRIBUTE.search(e.message or "")
            raise UndefinedReferenceError(
                e.message or str(e),
                reference=match.group(1) if match else None,
                path=path,
                lineno=_template_lineno(e),
            ) from e
        except jinja2.TemplateRuntimeError as e:
            match = _UNKNOWN_HELPER.match(e.message or "")
            if match:
                raise UndefinedReferenceError(
                    e.message or str(e),
                    reference=match.group(1),
                    path=path,
                    lineno=_template_lineno(e),
                ) from e
            raise TemplateSyntaxError(
                e.message or str(e), path=path, lineno=_template_lineno(e)
            ) from e
        except jinja2.TemplateError as e:
            raise TemplateSyntaxError(
                e.message or str(e), path=path, lineno=_template_lineno(e)
            ) from e
        except _RUNTIME_ERRORS as e:
            raise TemplateSyntaxError(
                f"Template failed while rendering: {type(e).__name__}: {e}",
                path=path,
                lineno=_template_lineno(e),
            ) from e

        return rendered.encode("utf-8")


def render(source_path: Path | str, context: TemplateContext) -> bytes:
    """Render one source with a fresh :class:`Renderer`."""
    return Renderer().render(source_path, context)
