"""Template rendering for exported Markdown files.

Rendering happens in two passes. The first is Jinja2. Templates are usually
written in the Handlebars/mustache dialect of the original add-on
(``{{title}}``, ``{{{noteContent}}}``, ``{{#tags}}…{{/tags}}``,
``{{^DOI}}…{{/DOI}}``, ``{{#each this}}…{{/each}}``, ``{{#if x}}``), which
is translated to Jinja2 before compiling; plain Jinja2 statements pass
through untouched. The second pass replaces legacy ``%(field)`` wildcards in
the rendered text of the metadata template.
"""

from __future__ import annotations

import re
from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

from jinja2 import (
    BaseLoader,
    ChainableUndefined,
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
)

from .exporters import TemplateMissingError

MDNOTES_TEMPLATE = "Mdnotes Default Template"
NOTE_TEMPLATE = "Zotero Note Template"
DEFAULT_TEMPLATES = (MDNOTES_TEMPLATE, NOTE_TEMPLATE)
TEMPLATE_SUFFIX = ".md"
UNDEFINED_SENTINEL = "undefined"
# JavaScript's Array#toString, which the original templates relied on.
SEQUENCE_SEPARATOR = ","

_WILDCARD_RE = re.compile(r"%\((\w+)\)")
_MUSTACHE_TAG_RE = re.compile(r"\{\{\{\s*(.*?)\s*\}\}\}|\{\{(?!\{)\s*(.*?)\s*\}\}", re.DOTALL)
_PATH_RE = re.compile(r"^[A-Za-z_]\w*(?:\.\w+)*$")


def format_value(value: Any) -> str:
    """Render a field value: sequences joined with ``","``, ``None`` empty."""

    if value is None or isinstance(value, Undefined):
        return ""
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return SEQUENCE_SEPARATOR.join(format_value(item) for item in value)
    return str(value)


def _finalize(value: Any) -> Any:
    if value is None or isinstance(value, Undefined):
        return ""
    if isinstance(value, (list, tuple)):
        return format_value(value)
    return value


def _section(value: Any) -> list[Any]:
    """Mustache section contexts: each list item, a truthy value once, else none."""

    if isinstance(value, Undefined) or not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _each(value: Any) -> Iterator[tuple[Any, Any]]:
    if isinstance(value, Undefined) or not value:
        return iter(())
    if isinstance(value, MappingABC):
        return iter(list(value.items()))
    if isinstance(value, (list, tuple)):
        return iter(list(enumerate(value)))
    return iter([(0, value)])


def _lookup(path: str, scopes: Sequence[Any], fallback: Any) -> Any:
    """Resolve ``path`` in the innermost mapping scope defining it."""

    head, _, rest = path.partition(".")
    for scope in scopes:
        if isinstance(scope, MappingABC) and head in scope:
            value = scope[head]
            for part in rest.split(".") if rest else ():
                if not isinstance(value, MappingABC) or part not in value:
                    return None
                value = value[part]
            return value
    return fallback


class _Translator:
    """Rewrite Handlebars/mustache tags into Jinja2 source."""

    def __init__(self, source: str) -> None:
        self.source = source
        # (kind, name, depth); kind is "if", "each", "section" or "inverted".
        self.stack: list[tuple[str, str, int]] = []
        self.loops = 0

    def translate(self) -> str:
        out: list[str] = []
        pos = 0
        for match in _MUSTACHE_TAG_RE.finditer(self.source):
            out.append(self.source[pos : match.start()])
            pos = match.end()
            lineno = self.source.count("\n", 0, match.start()) + 1
            if match.group(1) is not None:
                out.append(self._variable(match.group(1)))
            else:
                out.append(self._tag(match.group(2), lineno))
        out.append(self.source[pos:])
        if self.stack:
            _, name, _ = self.stack[-1]
            lineno = self.source.count("\n") + 1
            raise TemplateSyntaxError(f"Unclosed section '{name}'", lineno=lineno)
        return "".join(out)

    def _tag(self, raw: str, lineno: int) -> str:
        if raw.startswith("!"):
            return "{# #}"
        if raw.startswith("#"):
            return self._open(raw[1:].strip())
        if raw.startswith("^"):
            name = raw[1:].strip()
            self.stack.append(("inverted", name, self.loops))
            return f"{{% if not ({self._expr(name)}) %}}"
        if raw.startswith("/"):
            return self._close(raw[1:].strip(), lineno)
        if raw == "else":
            if not self.stack:
                raise TemplateSyntaxError("'else' outside of a section", lineno=lineno)
            return "{% else %}"
        return self._variable(raw)

    def _open(self, body: str) -> str:
        keyword, _, argument = body.partition(" ")
        argument = argument.strip()
        if keyword == "if" and argument:
            self.stack.append(("if", "if", self.loops))
            return f"{{% if {self._expr(argument)} %}}"
        if keyword == "unless" and argument:
            self.stack.append(("if", "unless", self.loops))
            return f"{{% if not ({self._expr(argument)}) %}}"
        if keyword == "each" and argument:
            target = self._expr(argument)
            self.loops += 1
            self.stack.append(("each", "each", self.loops))
            n = self.loops
            return f"{{% for _key{n}, _item{n} in _each({target}) %}}"
        target = self._expr(body)
        self.loops += 1
        self.stack.append(("section", body, self.loops))
        return f"{{% for _item{self.loops} in _section({target}) %}}"

    def _close(self, name: str, lineno: int) -> str:
        if not self.stack:
            raise TemplateSyntaxError(f"Unexpected closing tag '{name}'", lineno=lineno)
        kind, opened, _ = self.stack.pop()
        if name != opened:
            raise TemplateSyntaxError(
                f"Closing tag '{name}' does not match '{opened}'", lineno=lineno
            )
        if kind in ("each", "section"):
            self.loops -= 1
            return "{% endfor %}"
        return "{% endif %}"

    def _variable(self, raw: str) -> str:
        return f"{{{{ {self._expr(raw)} }}}}"

    def _expr(self, raw: str) -> str:
        raw = raw.strip()
        n = self.loops
        if raw in (".", "this"):
            return f"_item{n}" if n else "this"
        if raw == "@key":
            return f"_key{n}" if n else "none"
        if raw == "@index":
            return "loop.index0" if n else "none"
        if raw in ("@first", "@last"):
            return f"loop.{raw[1:]}" if n else "none"
        if raw.startswith("this.") and _PATH_RE.match(raw[5:]):
            scope = f"_item{n}" if n else "this"
            return f"_lookup({raw[5:]!r}, [{scope}], none)"
        if n and _PATH_RE.match(raw):
            scopes = ", ".join(f"_item{i}" for i in range(n, 0, -1))
            return f"_lookup({raw!r}, [{scopes}], {raw})"
        return raw


def to_jinja(source: str) -> str:
    """Translate Handlebars/mustache tags in ``source`` to Jinja2 syntax."""

    return _Translator(source).translate()


def replace_wildcards(text: str, data: Mapping[str, Any]) -> str:
    """Replace ``%(name)`` tokens with ``data[name]``.

    Missing (or ``None``) fields become the literal ``undefined``.
    """

    def substitute(match: re.Match[str]) -> str:
        value = data.get(match.group(1))
        if value is None:
            return UNDEFINED_SENTINEL
        return format_value(value)

    return _WILDCARD_RE.sub(substitute, text)


def available_templates(directory: Path | str) -> list[str]:
    """Names (without suffix) of the ``.md`` templates in ``directory``."""

    root = Path(directory).expanduser()
    if not root.is_dir():
        return []
    names = [
        entry.name[: -len(TEMPLATE_SUFFIX)]
        for entry in root.iterdir()
        if entry.is_file()
        and not entry.name.startswith(".")
        and entry.name.endswith(TEMPLATE_SUFFIX)
    ]
    return sorted(names)


class TemplateRenderer:
    """Resolve templates from a user directory, falling back to the defaults."""

    def __init__(self, templates_dir: Path | str | None = None) -> None:
        self.templates_dir = Path(templates_dir).expanduser() if templates_dir else None
        loaders: list[BaseLoader] = []
        if self.templates_dir is not None:
            loaders.append(FileSystemLoader(str(self.templates_dir)))
        loaders.append(PackageLoader("mdnotes", "default_templates"))
        self._env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=False,
            undefined=ChainableUndefined,
            finalize=_finalize,
            # Block tags alone on a line leave no blank line, as in mustache.
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.globals.update(_section=_section, _each=_each, _lookup=_lookup)

    def render(self, name: str, data: Mapping[str, Any], *, wildcards: bool = False) -> str:
        """Render template ``name`` against ``data``.

        ``wildcards`` runs the legacy ``%(field)`` pass over the result.
        """

        filename = f"{name}{TEMPLATE_SUFFIX}"
        try:
            source, _, _ = self._env.loader.get_source(self._env, filename)
        except TemplateNotFound as exc:
            raise TemplateMissingError(name) from exc
        template = self._env.from_string(to_jinja(source))
        context = dict(data)
        context.setdefault("this", dict(data))
        rendered = template.render(context)
        if wildcards:
            rendered = replace_wildcards(rendered, data)
        return rendered


__all__ = [
    "DEFAULT_TEMPLATES",
    "MDNOTES_TEMPLATE",
    "NOTE_TEMPLATE",
    "SEQUENCE_SEPARATOR",
    "TemplateRenderer",
    "available_templates",
    "format_value",
    "replace_wildcards",
    "to_jinja",
]
