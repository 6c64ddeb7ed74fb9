"""Prompt templates for the deep research stages."""

from openrouter_deep_research.services.tag_protocol import ANSWER_TAG, PROMPT_TAG, REASONING_TAG

PREVIOUS_ANSWER_LABEL = "Previous Answer:"

STRATEGY_SYSTEM_PROMPT = """
You decide how to research the user's latest request.

Answer "deep" if the request is best served by a few focused, in-depth lines of
investigation (a narrow question, a single mechanism, a specific comparison).
Answer "broad" if it is best served by many shallow lines of investigation
(a survey, a landscape overview, a list of options or examples).
Answer "unsure" if you cannot tell.

Reply with exactly one word: deep, broad, or unsure.
""".strip()

RESOURCE_INSTRUCTIONS = (
    "After you are done with that, add a section that begins with <RESOURCES> and ends "
    "with </RESOURCES>. Inside of the RESOURCES section, provide a list of the resources you "
    "used to gather information. Each resource should begin with <RESOURCE> and end with "
    "</RESOURCE>. The resource should begin with the URL wrapped in <URL> and </URL> tags. "
    "Include relevant information from the resource such as the title (wrapped in <TITLE> "
    "</TITLE> tags), author or authors (wrapped in <AUTHOR> </AUTHOR> tags), and date "
    "(wrapped in <DATE> </DATE> tags). Also give a description of the kind of resource it "
    "is (e.g. journal article, scientific study, personal blog post, professional blog "
    "post, corporate blog post, news article, etc.) wrapped in <TYPE> and </TYPE> tags. "
    "Indicate why the resource was written and published, especially if it is meant to "
    "persuade, educate, get business, advertise, provide SEO chum, etc. wrapped in "
    "<PURPOSE> and </PURPOSE> tags. Include a two to four sentence rich and descriptive "
    "summary of the resource wrapped in <SUMMARY> and </SUMMARY> tags."
)

_PLAN_FORMAT = f"""
Write each research prompt on its own, wrapped in <{PROMPT_TAG}> and </{PROMPT_TAG}> tags.
Each prompt is sent to a separate research assistant with web search and no other
context, so it must be self-contained: name the subject explicitly, say what to find,
and say what level of detail is needed. Write at most {{max_subrequests}} prompts.
""".strip()

PLANNING_SYSTEM_PROMPT_TEMPLATES: dict[str, str] = {
    "deep": f"""
You are planning research to answer the user's latest message. Use the conversation
and web search to understand the question, then design a small number of deep,
focused research prompts. Each prompt should dig into one essential aspect of the
question thoroughly: mechanisms, evidence, primary sources, quantitative detail,
and points of disagreement between sources.

{_PLAN_FORMAT}
""".strip(),
    "broad": f"""
You are planning research to answer the user's latest message. Use the conversation
and web search to understand the question, then design many short research prompts
that together cover the whole landscape of the question: every relevant option,
example, perspective, region, period, or sub-topic a complete answer should mention.

{_PLAN_FORMAT}
""".strip(),
}

REFINEMENT_PLANNING_SYSTEM_PROMPT_TEMPLATES: dict[str, str] = {
    "deep": f"""
You are improving an existing answer to the user's latest message. The answer
produced so far is shown below, after "{PREVIOUS_ANSWER_LABEL}". Read it critically.
Design deep, focused research prompts that verify its most important claims, resolve
contradictions or uncertainties, and fill the gaps where it lacks depth, evidence or
sources. Do not repeat research the answer already covers well.

{_PLAN_FORMAT}

{PREVIOUS_ANSWER_LABEL}
{{previous_answer}}
""".strip(),
    "broad": f"""
You are improving an existing answer to the user's latest message. The answer
produced so far is shown below, after "{PREVIOUS_ANSWER_LABEL}". Read it critically.
Design research prompts that find what it left out: options, examples, perspectives
or sub-topics that are missing, and claims that need checking against other sources.
Do not repeat research the answer already covers well.

{_PLAN_FORMAT}

{PREVIOUS_ANSWER_LABEL}
{{previous_answer}}
""".strip(),
}

RESEARCH_SYSTEM_PROMPT = f"""
You are a research assistant. Answer the request densely and completely: include every
relevant fact, figure, date, name, mechanism and caveat you find, and say where sources
disagree. Do not pad the answer and do not omit detail for brevity.

{RESOURCE_INSTRUCTIONS}
""".strip()

REFINING_SYSTEM_PROMPT_TEMPLATE = """
You are given the output of a research assistant. Extract only the information that is
relevant to the user's original query, quoted below. Keep every relevant fact, figure,
source citation and caveat exactly as stated; drop everything that does not help answer
the query. Do not add information of your own.

Original query:
{user_query}
""".strip()

SYNTHESIS_SYSTEM_PROMPT_TEMPLATE = f"""
You are given the results of several research assistants who investigated parts of the
user's latest message according to the research plan provided with them. Synthesize
them into one answer to the user's message. Resolve conflicts between results
explicitly, keep the citations the results provide, and do not invent facts that are
not in the results.

Put your reasoning inside <{REASONING_TAG}> and </{REASONING_TAG}> tags, then put the
complete answer inside <{ANSWER_TAG}> and </{ANSWER_TAG}> tags.

{{synthesis_instructions}}
""".strip()

REFINEMENT_SYNTHESIS_SYSTEM_PROMPT_TEMPLATE = f"""
You are given an answer to the user's latest message, shown after
"{PREVIOUS_ANSWER_LABEL}", and the results of new research done to improve it according
to the research plan provided. Refine the previous answer in light of the new research:
correct what the research shows to be wrong, add what it shows to be missing, and
strengthen claims with the new sources. Prefer expanding the answer over removing
content; remove only content the research shows to be wrong.

Put your reasoning inside <{REASONING_TAG}> and </{REASONING_TAG}> tags, then put the
complete refined answer inside <{ANSWER_TAG}> and </{ANSWER_TAG}> tags.

{{synthesis_instructions}}
""".strip()


def format_research_results(contents: list[str]) -> str:
    """Label each refined result "Research Result k", counting from 1."""
    return "\n\n".join(
        f"Research Result {k}:\n{content}" for k, content in enumerate(contents, start=1)
    )
