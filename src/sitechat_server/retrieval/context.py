"""
Context Assembler

Turns scored hits into two bounded views:

- ``sources``  the top-N hits shown to the user as citations
- ``text``     the top-M (M <= N) hits, templated and truncated, that are
               actually handed to the language model

More citations may be displayed than were reasoned over; the model context
stays bounded regardless of how many hits the index returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from ..api.models import Source
from ..search.models import SearchHit

CONTEXT_SEPARATOR = "\n\n---\n\n"
ELLIPSIS = "..."

BLOCK_TEMPLATE = """TITLE: {title}
DESCRIPTION: {description}
SOURCE: {url}

{body}"""


@dataclass
class RenderedHit:
    block: str
    url: str
    title: str
    score: float


@dataclass
class AssembledContext:
    blocks: List[str] = field(default_factory=list)
    text: str = ""
    sources: List[Source] = field(default_factory=list)
    degraded: bool = False


def render_hit(hit: SearchHit) -> RenderedHit:
    block = BLOCK_TEMPLATE.format(
        title=hit.title,
        description=hit.description,
        url=hit.url,
        body=hit.body,
    )
    return RenderedHit(block=block, url=hit.url, title=hit.title, score=hit.score)


class ContextAssembler:

    def __init__(
        self,
        max_sources_display: int = 20,
        max_context_docs: int = 10,
        max_context_length: int = 1500,
        min_context_length: int = 100,
        snippet_length: int = 200,
    ) -> None:
        if max_context_docs > max_sources_display:
            raise ValueError("max_context_docs must not exceed max_sources_display")
        self.max_sources_display = max_sources_display
        self.max_context_docs = max_context_docs
        self.max_context_length = max_context_length
        self.min_context_length = min_context_length
        self.snippet_length = snippet_length

    def assemble(self, hits: Sequence[SearchHit]) -> AssembledContext:
        rendered = [render_hit(hit) for hit in hits]
        # sorted() is stable, so equal scores keep index order
        ranked = sorted(rendered, key=lambda r: r.score, reverse=True)

        displayed = ranked[: self.max_sources_display]
        in_context = displayed[: self.max_context_docs]

        blocks = [
            r.block[: self.max_context_length] + ELLIPSIS
            for r in in_context
            if r.block
        ]
        text = CONTEXT_SEPARATOR.join(blocks)

        sources = [
            Source(
                url=r.url,
                title=r.title,
                snippet=r.block[: self.snippet_length] + ELLIPSIS,
            )
            for r in displayed
        ]

        return AssembledContext(
            blocks=blocks,
            text=text,
            sources=sources,
            degraded=len(text) < self.min_context_length,
        )
