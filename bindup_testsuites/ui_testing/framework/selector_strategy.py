"""
================================================================================
Selector Strategy
================================================================================

Tagged selector candidates and the resolution request/result types.

A logical UI element is described by an ordered list of `SelectorCandidate`s.
Candidates are tried strictly in list order and the first usable match wins.
`to_locator` is the only place a candidate turns into a Playwright query.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Union

from playwright.async_api import Locator, Page


class SelectorKind(str, Enum):
    CSS = "css"
    TEXT = "text"
    ROLE = "role"
    GENERATED = "generated"


# Legacy string forms still found in older call sites
_GET_BY_TEXT = re.compile(r"""^getByText\(\s*(['"])(?P<text>.+?)\1\s*\)$""")
_GET_BY_ROLE = re.compile(
    r"""^getByRole\(\s*(['"])(?P<role>[\w-]+)\1"""
    r"""(?:\s*,\s*\{\s*name\s*:\s*(['"])(?P<name>.+?)\3\s*\})?\s*\)$"""
)


@dataclass(frozen=True)
class SelectorCandidate:
    """
    One way to find an element.

    Attributes:
        kind: How `value` is interpreted
        value: Selector text (css), text to match (text/generated) or role name (role)
        name: Accessible-name pattern for role candidates (case-insensitive)
    """
    kind: SelectorKind
    value: str
    name: Optional[str] = None

    @classmethod
    def css(cls, value: str) -> "SelectorCandidate":
        return cls(SelectorKind.CSS, value)

    @classmethod
    def text(cls, value: str) -> "SelectorCandidate":
        return cls(SelectorKind.TEXT, value)

    @classmethod
    def role(cls, role: str, name: Optional[str] = None) -> "SelectorCandidate":
        return cls(SelectorKind.ROLE, role, name)

    @classmethod
    def generated(cls, value: str) -> "SelectorCandidate":
        return cls(SelectorKind.GENERATED, value)

    @classmethod
    def parse(cls, raw: Union[str, "SelectorCandidate"]) -> "SelectorCandidate":
        """
        Turn a raw selector string into a candidate.

        `getByText('X')` and `getByRole('button', { name: 'X' })` strings become
        text and role candidates; everything else is handed to `page.locator`
        as-is, so Playwright engines like `text=` and `xpath=` keep working.
        """
        if isinstance(raw, SelectorCandidate):
            return raw

        stripped = raw.strip()
        match = _GET_BY_TEXT.match(stripped)
        if match:
            return cls.text(match.group("text"))
        match = _GET_BY_ROLE.match(stripped)
        if match:
            return cls.role(match.group("role"), match.group("name"))
        return cls.css(raw)

    def __str__(self) -> str:
        if self.kind == SelectorKind.ROLE and self.name:
            return f"role={self.value}[name~/{self.name}/i]"
        return f"{self.kind.value}={self.value}"


SelectorLike = Union[str, SelectorCandidate]


def to_locator(page: Page, candidate: SelectorCandidate) -> Locator:
    """Map a candidate to the matching Playwright query method."""
    if candidate.kind == SelectorKind.CSS:
        return page.locator(candidate.value)
    if candidate.kind in (SelectorKind.TEXT, SelectorKind.GENERATED):
        return page.get_by_text(candidate.value)
    if candidate.kind == SelectorKind.ROLE:
        if candidate.name:
            return page.get_by_role(candidate.value, name=re.compile(candidate.name, re.IGNORECASE))
        return page.get_by_role(candidate.value)
    raise ValueError(f"Unknown selector kind: {candidate.kind}")


@dataclass
class ElementQuery:
    """
    A resolution request, built per call site.

    The description is used for logging and for routing: descriptions that
    mention a template or the create-site button go through dedicated routes.
    """
    description: str
    primary: SelectorCandidate
    fallbacks: List[SelectorCandidate] = field(default_factory=list)

    @classmethod
    def from_selectors(
        cls,
        description: str,
        primary: SelectorLike,
        fallbacks: Optional[Sequence[SelectorLike]] = None,
    ) -> "ElementQuery":
        return cls(
            description=description,
            primary=SelectorCandidate.parse(primary),
            fallbacks=[SelectorCandidate.parse(fb) for fb in fallbacks or []],
        )

    @property
    def candidates(self) -> List[SelectorCandidate]:
        return [self.primary, *self.fallbacks]


class ResolutionStage(str, Enum):
    SPECIAL = "special"
    PRIMARY = "primary"
    FALLBACK = "fallback"
    TEXT_VARIATION = "text_variation"
    ROLE = "role"


@dataclass
class ResolvedElement:
    """
    Handle returned by the resolver.

    The locator is only valid for the current page state; do not keep it
    across navigations. A hidden element (`visible=False`) is a valid result
    so callers can force-interact with controls revealed by hover animations.

    `matched_candidate_index` is the position in the list of every candidate
    tried: 0 for the primary, i + 1 for `fallbacks[i]`, then the generated
    text variations and role candidates in the order they were tried.
    Special-case routes report -1.
    """
    locator: Locator
    visible: bool
    matched_candidate_index: int
    stage: ResolutionStage
    candidate: Optional[SelectorCandidate] = None
    match_count: int = 1


# English -> Japanese terms used in the BiNDup UI
TEXT_VARIATIONS = {
    "menu": ["メニュー", "MENU"],
    "edit": ["編集", "エディット"],
    "page": ["ページ", "PAGE"],
    "design": ["デザイン", "DESIGN"],
    "save": ["保存", "セーブ"],
    "close": ["閉じる", "クローズ"],
    "complete": ["完了", "コンプリート"],
    "back": ["戻る", "バック"],
    "create": ["作成", "新規作成"],
    "template": ["テンプレート", "TEMPLATE"],
    "corner": ["コーナー", "角"],
    "block": ["ブロック", "BLOCK"],
    "add": ["追加", "ADD"],
    "delete": ["削除", "DELETE"],
    "duplicate": ["複製", "DUPLICATE"],
    "move": ["移動", "MOVE"],
}


def generate_text_variations(text: str) -> List[str]:
    """
    Alternate strings for a description, original text first.

    >>> generate_text_variations("Save menu")
    ['Save menu', 'メニュー', 'MENU', '保存', 'セーブ']
    """
    variations = [text]
    lowered = text.lower()
    for english, local in TEXT_VARIATIONS.items():
        if english in lowered:
            variations.extend(local)
    return variations


__all__ = [
    "ElementQuery",
    "ResolutionStage",
    "ResolvedElement",
    "SelectorCandidate",
    "SelectorKind",
    "SelectorLike",
    "TEXT_VARIATIONS",
    "generate_text_variations",
    "to_locator",
]
