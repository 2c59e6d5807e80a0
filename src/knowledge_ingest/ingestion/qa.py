"""Question/answer pair generation for enriched chunks.

Generation is best-effort: :meth:`QAGenerator.generate` never raises and
returns an empty list whenever the completion call fails or its output
cannot be parsed.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from knowledge_ingest.exceptions import QAGenerationError
from knowledge_ingest.ingestion.models import QAPair
from knowledge_ingest.ingestion.prompts import build_qa_prompt

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)

_QA_PAIR = re.compile(
    r"Question\s*(?P<num>\d+)\s*[:.)-]\s*(?P<question>.+?)\s*"
    r"Answer\s*(?P=num)\s*[:.)-]\s*(?P<answer>.+?)"
    r"(?=\n[ \t]*\n|\s*Question\s*\d+\s*[:.)-]|\s*\Z)",
    re.IGNORECASE | re.DOTALL,
)


def parse_qa_pairs(completion: str) -> list[QAPair]:
    """Extract ``Question i: … / Answer i: …`` pairs from *completion*.

    Pairs are accepted only in sequence (1, 2, 3, …); out-of-order
    matches and any unmatched trailing text are ignored.  An answer ends
    at the next question, the next blank line, or the end of the text.
    """
    text = completion.replace("**", "")
    pairs: list[QAPair] = []
    for match in _QA_PAIR.finditer(text):
        if int(match.group("num")) != len(pairs) + 1:
            continue
        question = match.group("question").strip()
        answer = match.group("answer").strip()
        if question and answer:
            pairs.append(QAPair(question=question, answer=answer))
    return pairs


class QAGenerator:
    """Ask a chat model for QA pairs about a passage.

    Parameters
    ----------
    llm:
        Chat model to call.  When *None*, :func:`knowledge_ingest.llm.get_llm`
        provides the default.
    """

    def __init__(self, llm: BaseChatModel | None = None) -> None:
        if llm is None:
            from knowledge_ingest.llm import get_llm

            llm = get_llm()
        self._llm = llm

    async def complete(self, prompt: str | list[BaseMessage]) -> str:
        """Run *prompt* through the model and return the raw completion text.

        *prompt* is either a plain string, sent as a single user message,
        or a chat message list such as :func:`build_qa_prompt` returns.
        """
        try:
            response = await self._llm.ainvoke(prompt)
        except Exception as exc:
            raise QAGenerationError(f"Completion request failed: {exc}", cause=exc) from exc
        content = response.content
        return content if isinstance(content, str) else str(content)

    async def generate(self, text: str, num_pairs: int = 3) -> list[QAPair]:
        """Return the QA pairs parsed for *text*, or ``[]`` on any failure."""
        if num_pairs <= 0:
            return []
        try:
            completion = await self.complete(build_qa_prompt(text, num_pairs))
        except QAGenerationError as exc:
            logger.warning("QA generation failed, continuing without pairs: %s", exc.message)
            return []

        pairs = parse_qa_pairs(completion)
        if not pairs:
            logger.warning("No QA pairs could be parsed from the completion")
        return pairs
