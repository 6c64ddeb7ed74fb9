"""Tests for the tag protocol parsers."""

from openrouter_deep_research.services.tag_protocol import (
    RESOURCE_GRAMMAR,
    extract_answer,
    extract_first,
    extract_plan_items,
    extract_reasoning,
    extract_tag,
    parse_composite,
    parse_resources,
    strip_resources_section,
)

FIRST_PASS = """Solid electrolytes crack under cycling.

<RESOURCES>
<RESOURCE>
<URL> https://example.com/paper </URL>
<TITLE>Dendrites in garnet electrolytes</TITLE>
<AUTHOR>A. Author</AUTHOR>
<DATE>2023</DATE>
<TYPE>journal article</TYPE>
<PURPOSE>educate</PURPOSE>
<SUMMARY>Explains dendrite growth.</SUMMARY>
</RESOURCE>
<RESOURCE>
<TITLE>No url here</TITLE>
</RESOURCE>
<RESOURCE><URL>https://example.com/blog</URL><AUTHOR>  </AUTHOR></RESOURCE>
</RESOURCES>
Trailing note."""


class TestPlanItems:
    def test_items_in_order_and_trimmed(self):
        text = "Plan:\n<prompt>\n  First item\n</prompt> filler <prompt>Second\nitem</prompt>"
        assert extract_plan_items(text) == ["First item", "Second\nitem"]

    def test_no_prompts(self):
        assert extract_plan_items("I could not plan anything.") == []

    def test_tags_are_case_sensitive(self):
        assert extract_plan_items("<PROMPT>upper</PROMPT><prompt>lower</prompt>") == ["lower"]

    def test_matching_is_non_greedy(self):
        assert extract_tag("<a>1</a> x <a>2</a>", "a") == ["1", "2"]

    def test_body_runs_to_first_closing_tag(self):
        assert extract_plan_items("<prompt>open <prompt>closed</prompt>") == ["open <prompt>closed"]


class TestResources:
    def test_parses_complete_and_partial_resources(self):
        resources = parse_resources(FIRST_PASS)

        assert [r.url for r in resources] == ["https://example.com/paper", "https://example.com/blog"]
        paper = resources[0]
        assert paper.title == "Dendrites in garnet electrolytes"
        assert paper.author == "A. Author"
        assert paper.date == "2023"
        assert paper.type == "journal article"
        assert paper.purpose == "educate"
        assert paper.summary == "Explains dendrite growth."

    def test_blank_sub_tag_is_omitted(self):
        blog = parse_resources(FIRST_PASS)[1]
        assert blog.author is None
        assert blog.title is None

    def test_parse_composite_requires_url(self):
        assert parse_composite("<TITLE>t</TITLE>", RESOURCE_GRAMMAR) is None
        assert parse_composite("<URL>u</URL>", RESOURCE_GRAMMAR) == {"url": "u"}

    def test_strip_resources_section(self):
        stripped = strip_resources_section(FIRST_PASS)
        assert "<RESOURCE" not in stripped
        assert stripped.startswith("Solid electrolytes crack under cycling.")
        assert stripped.endswith("Trailing note.")

    def test_strip_removes_every_section(self):
        text = "a<RESOURCES>x</RESOURCES>b<RESOURCES>y</RESOURCES>c"
        assert strip_resources_section(text) == "abc"

    def test_strip_without_section_is_identity(self):
        assert strip_resources_section("plain text") == "plain text"


class TestAnswer:
    def test_extracts_first_answer(self):
        text = "<REASONING>why</REASONING><ANSWER>\n one \n</ANSWER><ANSWER>two</ANSWER>"
        assert extract_answer(text) == "one"
        assert extract_reasoning(text) == "why"

    def test_falls_back_to_raw_text(self):
        assert extract_answer("  no tags here  ") == "  no tags here  "
        assert extract_reasoning("no tags") is None

    def test_empty_answer_tag_is_kept(self):
        assert extract_answer("<ANSWER></ANSWER>") == ""

    def test_extract_first_absent(self):
        assert extract_first("nothing", "ANSWER") is None


def test_repeated_parsing_gives_identical_results():
    text = (
        "<REASONING>why</REASONING><prompt>One</prompt><prompt>Two</prompt>\n"
        + FIRST_PASS
        + "\n<ANSWER>Final</ANSWER>"
    )

    def parse_all():
        return (
            parse_resources(text),
            extract_plan_items(text),
            strip_resources_section(text),
            extract_answer(text),
            extract_reasoning(text),
        )

    first, second = parse_all(), parse_all()

    assert first == second
    assert [r.url for r in first[0]] == ["https://example.com/paper", "https://example.com/blog"]
    assert first[1] == ["One", "Two"]
    assert first[3] == "Final"
