"""Shared typed models for the OpenURL -> SFX pipeline.

The reply classes mirror the SFX ``multi_obj_xml`` schema one level per
element. Attribute names are the XML tag names, so the JSON projection can be
produced straight from the dataclasses. Repeated optional children are
``list[...] | None``: ``None`` means the element never appeared in the reply.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class MultiObjectsRequestParams:
    """Values substituted into the context object template for one request."""

    fields: dict[str, list[str]]
    genre: str
    timestamp: str


@dataclass(frozen=True, slots=True)
class FromTo:
    year: str | None = None
    month: str | None = None
    day: str | None = None
    volume: str | None = None
    issue: str | None = None


@dataclass(frozen=True, slots=True)
class Embargo:
    availability: str | None = None
    month: str | None = None
    days: str | None = None


@dataclass(frozen=True, slots=True)
class ThresholdText:
    coverage_statement: list[str] | None = None


@dataclass(frozen=True, slots=True)
class EmbargoStatement:
    embargo_statement: str | None = None


@dataclass(frozen=True, slots=True)
class CoverageText:
    threshold_text: list[ThresholdText] | None = None
    embargo_text: list[EmbargoStatement] | None = None


@dataclass(frozen=True, slots=True)
class Coverage:
    coverage_text: list[CoverageText] | None = None
    # "from" is a keyword; the tag name lives in the field metadata.
    from_: list[FromTo] | None = field(default=None, metadata={"tag": "from"})
    to: list[FromTo] | None = None
    embargo: Embargo | None = None


@dataclass(frozen=True, slots=True)
class Target:
    """One full-text or service destination offered by SFX."""

    target_name: str = ""
    target_public_name: str = ""
    target_url: str = ""
    authentication: str = ""
    proxy: str = ""
    coverage: list[Coverage] | None = None

    def coverage_statements(self) -> list[str]:
        """Flatten threshold and embargo statements into display strings."""
        statements: list[str] = []
        for coverage in self.coverage or []:
            for text in coverage.coverage_text or []:
                for threshold in text.threshold_text or []:
                    statements.extend(s for s in threshold.coverage_statement or [] if s)
                for embargo in text.embargo_text or []:
                    if embargo.embargo_statement:
                        statements.append(embargo.embargo_statement)
        return statements


@dataclass(slots=True)
class ContextObjectTargets:
    target: list[Target] | None = None


@dataclass(slots=True)
class ContextObject:
    ctx_obj_targets: list[ContextObjectTargets] | None = None


@dataclass(slots=True)
class MultiObjectsResponseBody:
    ctx_obj: list[ContextObject] | None = None
