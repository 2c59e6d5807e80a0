"""Prompt templates used during enrichment.

Keeping prompts in one place makes them easy to audit and version.
"""

from __future__ import annotations

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

# ── QA generation ─────────────────────────────────────────────────────

QA_GENERATION_SYSTEM = """\
You write study questions for a knowledge base.

Given a passage, produce question/answer pairs that can be answered from
the passage alone.  Use exactly this format, numbering from 1, with no
other text:

Question 1: <question>
Answer 1: <answer>

Question 2: <question>
Answer 2: <answer>
"""

QA_GENERATION_USER = """\
Generate {num_pairs} question/answer pairs about the passage below.

Passage:
{text}
"""


def build_qa_prompt(text: str, num_pairs: int = 3) -> list[BaseMessage]:
    """Build the chat prompt asking for *num_pairs* QA pairs about *text*."""
    return [
        SystemMessage(content=QA_GENERATION_SYSTEM),
        HumanMessage(content=QA_GENERATION_USER.format(num_pairs=num_pairs, text=text)),
    ]
