"""HTML template sets backed by Jinja2.

Templates are addressed by file basename, so ``templates/index.html``
is executed as ``"index.html"``.
"""

from __future__ import annotations

import glob
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from jinja2 import DictLoader, Environment, TemplateError, TemplateNotFound, select_autoescape

from arietta.errors import ConfigurationError, RenderError, TemplateNotFoundError

FuncMap = Mapping[str, Callable[..., Any]]


class Templates:
    """A named set of parsed templates."""

    __slots__ = ("env",)

    def __init__(self, env: Environment) -> None:
        self.env = env

    @classmethod
    def from_sources(cls, sources: Mapping[str, str], func_map: FuncMap | None = None) -> Templates:
        env = Environment(
            loader=DictLoader(dict(sources)),
            autoescape=select_autoescape(default_for_string=True, default=True),
        )
        for name, func in (func_map or {}).items():
            env.filters[name] = func
            env.globals[name] = func
        return cls(env)

    @classmethod
    def from_files(cls, filenames: Iterable[str | Path], func_map: FuncMap | None = None) -> Templates:
        sources: dict[str, str] = {}
        for filename in filenames:
            path = Path(filename)
            try:
                sources[path.name] = path.read_text(encoding="utf-8")
            except OSError as exc:
                msg = f"cannot read template {str(path)!r}: {exc}"
                raise ConfigurationError(msg) from exc
        if not sources:
            msg = "no template files given"
            raise ConfigurationError(msg)
        return cls.from_sources(sources, func_map)

    @classmethod
    def from_glob(cls, pattern: str, func_map: FuncMap | None = None) -> Templates:
        filenames = sorted(glob.glob(pattern))
        if not filenames:
            msg = f"pattern matches no files: {pattern!r}"
            raise ConfigurationError(msg)
        return cls.from_files(filenames, func_map)

    def names(self) -> list[str]:
        return self.env.list_templates()

    def execute(self, name: str, data: Any = None) -> str:
        """Render template *name* against *data*.

        A mapping becomes the template context; anything else is exposed
        as ``data``.
        """
        try:
            template = self.env.get_template(name)
        except TemplateNotFound as exc:
            msg = f"template {name!r} is not defined"
            raise TemplateNotFoundError(msg) from exc
        context = dict(data) if isinstance(data, Mapping) else {"data": data}
        try:
            return template.render(context)
        except TemplateError as exc:
            msg = f"executing template {name!r}: {exc}"
            raise RenderError(msg) from exc
