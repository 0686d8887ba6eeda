"""
Compilation options and delimiter configuration.

Defaults are immutable module-level values. Every compile call merges the
caller's overrides on top of them with `merge_options`, so there is no shared
mutable state between compilations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ruamel.yaml import YAML

from .errors import DelimiterConfigError, TemplateError
from .escape import escape_html
from .loader import LoaderFunc, load_file

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")


@dataclass(frozen=True)
class DelimiterSet:
    """
    Tag markers.

    `open`/`close` surround every tag. The four markers are single characters
    checked right after `open` to pick the tag kind. A comment tag is closed by
    `comment + close`.
    """
    open: str = "<%"
    close: str = "%>"
    escape: str = "="
    unescape: str = "-"
    import_: str = "+"
    comment: str = "!"

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, str) or not value:
                raise DelimiterConfigError(f"Delimiter '{_public_name(f.name)}' must be a non-empty string")

        if self.open == self.close:
            raise DelimiterConfigError(
                f"Open and close delimiters must differ (both are '{self.open}')"
            )

        markers = self.markers()
        for name, marker in markers.items():
            if len(marker) != 1:
                raise DelimiterConfigError(
                    f"Tag marker '{name}' must be a single character, got '{marker}'"
                )
        if len(set(markers.values())) != len(markers):
            raise DelimiterConfigError(
                f"Tag markers must be distinct: {markers}"
            )

    def markers(self) -> Dict[str, str]:
        """Markers that follow the open delimiter, by public name."""
        return {
            "escape": self.escape,
            "unescape": self.unescape,
            "import": self.import_,
            "comment": self.comment,
        }

    @property
    def comment_close(self) -> str:
        """Close marker of a comment tag."""
        return self.comment + self.close

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DelimiterSet":
        """Builds a set from a partial mapping; missing keys keep their defaults."""
        return DEFAULT_DELIMITERS.merged(data)

    def merged(self, data: Mapping[str, Any]) -> "DelimiterSet":
        known = {_public_name(f.name): f.name for f in fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in data.items():
            attr = known.get(key) or (key if key in known.values() else None)
            if attr is None:
                raise DelimiterConfigError(f"Unknown delimiter '{key}'")
            if value is not None:
                changes[attr] = value
        return replace(self, **changes)


def _public_name(attr: str) -> str:
    return "import" if attr == "import_" else attr


DEFAULT_DELIMITERS = DelimiterSet()


@dataclass(frozen=True)
class Options:
    """
    Options used to handle all templates of one compilation.

    Attributes:
        base: Directory the default loader resolves template names against
        ext: Extension appended to template names by the default loader
        delimiters: Tag markers
        escape: Function turning a value into HTML-safe text
        load_file: Loader called as `load_file(name, options)`, sync or async
        cache: Template cache keyed by name (declared but unimplemented)
    """
    base: Union[str, Path] = ""
    ext: str = ""
    delimiters: DelimiterSet = DEFAULT_DELIMITERS
    escape: Callable[[Any], str] = escape_html
    load_file: LoaderFunc = load_file
    cache: Optional[Mapping[str, Any]] = field(default=None, compare=False)


DEFAULT_OPTIONS = Options()

OptionsLike = Union[Options, Mapping[str, Any], None]


def merge_options(options: OptionsLike = None, **overrides: Any) -> Options:
    """
    Merges user options on top of the defaults.

    Accepts an `Options` instance, a plain mapping of option names or nothing;
    keyword overrides win over both. Delimiters may be given as a partial
    mapping, missing markers keep their defaults.

    Raises:
        DelimiterConfigError: If the resulting delimiter set is invalid
        TemplateError: On unknown option names
    """
    if isinstance(options, Options):
        base = options
        data: Dict[str, Any] = {}
    else:
        base = DEFAULT_OPTIONS
        data = dict(options or {})
    data.update(overrides)

    known = {f.name for f in fields(Options)}
    unknown = set(data) - known
    if unknown:
        raise TemplateError(f"Unknown options: {', '.join(sorted(unknown))}")

    delimiters = data.pop("delimiters", None)
    if delimiters is not None and not isinstance(delimiters, DelimiterSet):
        data["delimiters"] = base.delimiters.merged(delimiters)
    elif delimiters is not None:
        data["delimiters"] = delimiters

    # None means "use the default" for callables
    for name in ("escape", "load_file"):
        if name in data and data[name] is None:
            data.pop(name)

    return replace(base, **data)


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Reads options from a YAML file.

    Supported keys: `base`, `ext`, `delimiters`. A relative `base` is resolved
    against the directory containing the config file.
    Delimiters are validated here, so a bad config file fails before any
    template is read.
    """
    if not path.is_file():
        raise TemplateError(f"Config file not found: {path}")
    raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise TemplateError(f"YAML must be a mapping: {path}")

    allowed = {"base", "ext", "delimiters"}
    unknown = set(raw) - allowed
    if unknown:
        raise TemplateError(f"Unknown keys in {path}: {', '.join(sorted(unknown))}")

    result: Dict[str, Any] = {}
    if "base" in raw:
        base = Path(str(raw["base"]))
        result["base"] = base if base.is_absolute() else (path.parent / base)
    if "ext" in raw:
        result["ext"] = str(raw["ext"] or "")
    if raw.get("delimiters"):
        if not isinstance(raw["delimiters"], dict):
            raise TemplateError(f"'delimiters' must be a mapping: {path}")
        result["delimiters"] = DelimiterSet.from_dict({str(k): str(v) for k, v in raw["delimiters"].items()})

    logger.debug(f"Loaded config {path}: {sorted(result)}")
    return result


def load_locals_file(path: Path) -> Dict[str, Any]:
    """Reads template locals from a YAML (or JSON) mapping."""
    if not path.is_file():
        raise TemplateError(f"Locals file not found: {path}")
    raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise TemplateError(f"Locals must be a mapping: {path}")
    return raw


__all__ = [
    "DelimiterSet",
    "DEFAULT_DELIMITERS",
    "Options",
    "DEFAULT_OPTIONS",
    "OptionsLike",
    "merge_options",
    "load_config_file",
    "load_locals_file",
]
