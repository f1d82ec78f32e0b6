"""Grounded answers: fit retrieved passages into a token budget and ask the chat model.

Pipeline:
  1. Keep passages in retrieval order until ``token_budget`` is reached.
  2. Build a system + user message pair quoting the passages.
  3. Call the conversational model via ``llm_client.complete``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pdfchat.db.models import RetrievedPassage
from pdfchat.errors import GenerationError
from pdfchat.rag.llm_client import complete, count_tokens

NO_CONTEXT_ANSWER = (
    "I've looked through the document, but it doesn't seem to cover that topic."
)

_SYSTEM_PROMPT = (
    "You answer questions about a single PDF document. Use only the numbered "
    "passages provided. If they do not contain the answer, say so plainly. "
    "Cite passages by their number, e.g. [2]."
)


@dataclass
class AnswerConfig:
    model: str = "gemini/gemini-2.0-flash-lite"
    token_budget: int = 8_192
    max_tokens: int = 1024


@dataclass
class Answer:
    text: str
    passages: list[RetrievedPassage] = field(default_factory=list)
    total_tokens: int = 0


async def answer(
    question: str,
    passages: list[RetrievedPassage],
    config: AnswerConfig,
) -> Answer:
    """Answer *question* from *passages*.

    With no passages the model is not called and a fixed reply is returned.
    """
    if not passages:
        return Answer(text=NO_CONTEXT_ANSWER)

    selected, total_tokens = _apply_token_budget(passages, config.model, config.token_budget)
    try:
        text = await complete(
            model=config.model,
            messages=build_messages(question, selected),
            max_tokens=config.max_tokens,
        )
    except Exception as exc:
        raise GenerationError(f"Chat model '{config.model}' failed: {exc}") from exc
    return Answer(text=text.strip(), passages=selected, total_tokens=total_tokens)


def build_messages(question: str, passages: list[RetrievedPassage]) -> list[dict]:
    """Return the OpenAI-style message list for *question* over *passages*."""
    context = "\n\n".join(
        f"[{i + 1}] (chunk {p.metadata.chunk_index + 1}/{p.metadata.total_chunks}"
        f" of {p.metadata.title or p.metadata.file_name})\n{p.text}"
        for i, p in enumerate(passages)
    )
    return [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": f"Passages:\n{context}\n\nQuestion: {question}"},
    ]


# ------------------------------------------------------------------
# Token budget
# ------------------------------------------------------------------


def _apply_token_budget(
    passages: list[RetrievedPassage],
    model: str,
    budget: int,
) -> tuple[list[RetrievedPassage], int]:
    """Select passages that fit within *budget* tokens. Returns (selected, total_tokens).

    The top passage is always kept, even when it alone exceeds the budget.
    """
    selected: list[RetrievedPassage] = []
    total = 0
    for passage in passages:
        tokens = count_tokens(model, passage.text)
        if selected and total + tokens > budget:
            break
        selected.append(passage)
        total += tokens
    return selected, total
