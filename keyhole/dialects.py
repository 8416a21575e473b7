"""Code generation dialects a language artifact can be written in."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .escaping import EscapeMode


@dataclass(frozen=True)
class Template:
    """Prefix and suffix markers around a dictionary literal."""

    name: str
    prefix: re.Pattern[str]
    suffix: re.Pattern[str]

    def split(self, text: str) -> Optional[Tuple[str, str, str]]:
        """Split ``text`` into prefix, dictionary text and suffix.

        Returns ``None`` when the prefix marker does not match. A matching
        prefix with a missing suffix yields an empty suffix, which callers
        treat as a parse failure.
        """

        prefix_match = self.prefix.search(text)
        if not prefix_match:
            return None
        prefix = prefix_match.group(0)
        suffix_match = self.suffix.search(text, len(prefix))
        if not suffix_match:
            return prefix, text[len(prefix):], ""
        return prefix, text[len(prefix):suffix_match.start()], text[suffix_match.start():]

    def matches(self, text: str) -> bool:
        prefix_match = self.prefix.search(text)
        if not prefix_match:
            return False
        return self.suffix.search(text, prefix_match.end()) is not None


@dataclass(frozen=True)
class Dialect:
    """A code generation variant: its templates and escaping convention."""

    name: str
    templates: Tuple[Template, ...]
    wrapped: bool = False

    @property
    def escape_mode(self) -> EscapeMode:
        return EscapeMode.WRAPPED if self.wrapped else EscapeMode.DIRECT

    def matches(self, text: str) -> bool:
        return any(template.matches(text) for template in self.templates)


_WEBPACK_EVAL_SUFFIX = re.compile(
    r'(?:;|\\n)*(?://# source(?:URL|MappingURL)=[^"]*)?(?:\\n)*\}?(?<!\\)"\);?.*$',
    re.DOTALL,
)

WEBPACK = Dialect(
    name="webpack",
    templates=(
        Template(
            name="build",
            prefix=re.compile(r"^.*?exports=", re.DOTALL),
            suffix=re.compile(r"}}]\);.*$", re.DOTALL),
        ),
        Template(
            name="serve",
            prefix=re.compile(r"^.*?exports = ", re.DOTALL),
            suffix=re.compile(r"\n{2}/\*{3}/ }\).*$", re.DOTALL),
        ),
    ),
)

WEBPACK_EVAL = Dialect(
    name="webpack_eval",
    templates=(
        Template(
            name="build",
            prefix=re.compile(r'^.*?eval\("\{?(?:module\.)?exports=', re.DOTALL),
            suffix=_WEBPACK_EVAL_SUFFIX,
        ),
        Template(
            name="serve",
            prefix=re.compile(r'^.*?eval\("\{?(?:module\.)?exports = ', re.DOTALL),
            suffix=_WEBPACK_EVAL_SUFFIX,
        ),
    ),
    wrapped=True,
)

ROLLUP = Dialect(
    name="rollup",
    templates=(
        Template(
            name="chunk",
            prefix=re.compile(r"^[^{]*"),
            suffix=re.compile(r";?\s*export\s*\{\s*[\w$]+ as default\s*\};?\n?$"),
        ),
    ),
)

# Detection order matters: eval wrapped chunks also satisfy the plain webpack
# development template.
DIALECTS: Dict[str, Dialect] = {
    dialect.name: dialect for dialect in (WEBPACK_EVAL, WEBPACK, ROLLUP)
}

AUTO = "auto"


def get_dialect(name: str) -> Dialect:
    try:
        return DIALECTS[name]
    except KeyError as exc:
        known = ", ".join([AUTO, *DIALECTS])
        raise ConfigurationError(
            f"Unknown dialect '{name}'. Choose one of: {known}."
        ) from exc


def candidate_dialects(name: str = AUTO) -> Sequence[Dialect]:
    """Dialects to try for an artifact, in detection order."""

    if name == AUTO:
        return tuple(DIALECTS.values())
    return (get_dialect(name),)


def detect_dialect(text: str, name: str = AUTO) -> Optional[Dialect]:
    for dialect in candidate_dialects(name):
        if dialect.matches(text):
            return dialect
    return None
