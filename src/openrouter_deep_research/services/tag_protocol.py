"""Tag protocol used to pull structured fields out of free-form model output.

Models are asked to wrap structured pieces of their answer in upper- or
lower-case XML-like tags::

    <prompt>...</prompt>                 one research plan item
    <RESOURCES>                          outer span around the resource list
      <RESOURCE>
        <URL>...</URL> <TITLE>...</TITLE> <AUTHOR>...</AUTHOR> <DATE>...</DATE>
        <TYPE>...</TYPE> <PURPOSE>...</PURPOSE> <SUMMARY>...</SUMMARY>
      </RESOURCE>
    </RESOURCES>
    <REASONING>...</REASONING>           synthesis reasoning
    <ANSWER>...</ANSWER>                 synthesized answer

Tags are case-sensitive and never nested within themselves. Matching is
non-greedy and spans newlines. Everything here is a pure function of its input.
"""

import re
from dataclasses import dataclass
from functools import lru_cache

from openrouter_deep_research.models.research import Resource

PROTOCOL_VERSION = 1

PROMPT_TAG = "prompt"
RESOURCES_TAG = "RESOURCES"
RESOURCE_TAG = "RESOURCE"
ANSWER_TAG = "ANSWER"
REASONING_TAG = "REASONING"


@dataclass(frozen=True)
class TagField:
    """A sub-tag of a composite block and the attribute it fills."""

    tag: str
    attribute: str
    required: bool = False


@dataclass(frozen=True)
class CompositeTag:
    """A block whose body is scanned for a fixed set of sub-tags."""

    tag: str
    fields: tuple[TagField, ...]


RESOURCE_GRAMMAR = CompositeTag(
    tag=RESOURCE_TAG,
    fields=(
        TagField("URL", "url", required=True),
        TagField("TITLE", "title"),
        TagField("AUTHOR", "author"),
        TagField("DATE", "date"),
        TagField("TYPE", "type"),
        TagField("PURPOSE", "purpose"),
        TagField("SUMMARY", "summary"),
    ),
)


@lru_cache(maxsize=64)
def _tag_pattern(tag: str) -> re.Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"<{name}>(.*?)</{name}>", re.DOTALL)


def extract_tag(text: str, tag: str, *, strip: bool = True) -> list[str]:
    """Return the bodies of every ``<tag>...</tag>`` span, in source order."""
    bodies = _tag_pattern(tag).findall(text)
    return [b.strip() for b in bodies] if strip else bodies


def extract_first(text: str, tag: str) -> str | None:
    """Return the first ``<tag>`` body, trimmed, or None if the tag is absent."""
    match = _tag_pattern(tag).search(text)
    return match.group(1).strip() if match else None


def parse_composite(block: str, grammar: CompositeTag) -> dict[str, str] | None:
    """Read the sub-tags of one composite block.

    Absent or blank sub-tags are left out of the result. Returns None when a
    required sub-tag is missing.
    """
    values: dict[str, str] = {}
    for field in grammar.fields:
        value = extract_first(block, field.tag)
        if value:
            values[field.attribute] = value
        elif field.required:
            return None
    return values


def extract_plan_items(text: str) -> list[str]:
    """Plan items from ``<prompt>`` tags, trimmed and in order."""
    return extract_tag(text, PROMPT_TAG)


def parse_resources(text: str) -> list[Resource]:
    """Resources from every ``<RESOURCE>`` block; blocks without a URL are dropped."""
    resources: list[Resource] = []
    for block in extract_tag(text, RESOURCE_GRAMMAR.tag, strip=False):
        values = parse_composite(block, RESOURCE_GRAMMAR)
        if values is not None:
            resources.append(Resource(**values))
    return resources


def strip_resources_section(text: str) -> str:
    """Remove every ``<RESOURCES>...</RESOURCES>`` span, leaving the rest untouched."""
    return _tag_pattern(RESOURCES_TAG).sub("", text)


def extract_answer(text: str) -> str:
    """The first ``<ANSWER>`` body, or the whole text when no answer tag is present."""
    answer = extract_first(text, ANSWER_TAG)
    return answer if answer is not None else text


def extract_reasoning(text: str) -> str | None:
    return extract_first(text, REASONING_TAG)


__all__ = [
    "PROTOCOL_VERSION",
    "RESOURCE_GRAMMAR",
    "CompositeTag",
    "TagField",
    "extract_answer",
    "extract_first",
    "extract_plan_items",
    "extract_reasoning",
    "extract_tag",
    "parse_composite",
    "parse_resources",
    "strip_resources_section",
]
