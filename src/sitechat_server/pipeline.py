"""
Query Pipeline

Per-request orchestration: retrieve → assemble context → generate.

Everything after request validation degrades into a successful answer when
there is a sensible message to show:

- no documents for the namespace     -> fixed "not indexed" answer
- no provider configured             -> instructional answer, sources kept
- context too short                  -> "insufficient content", sources kept
- provider call fails                -> failure text as the answer, sources kept

The outcome is reported alongside the answer so that callers with a stricter
error contract (the chat-completion endpoint) can map it to an HTTP error.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from .api.models import QueryResponse, Source
from .llm.client import GenerationError
from .llm.generator import AnswerGenerator, describe_failure
from .prompts import INSUFFICIENT_CONTENT_ANSWER, NO_PROVIDER_ANSWER, NOT_INDEXED_ANSWER
from .retrieval.context import AssembledContext, ContextAssembler
from .retrieval.retriever import NamespaceRetriever
from .streaming.protocol import encode_sources_line, encode_text_line

logger = logging.getLogger("sitechat.pipeline")


class QueryOutcome(str, enum.Enum):
    ANSWERED = "answered"
    NO_CONTENT = "no_content"
    UNCONFIGURED = "unconfigured"
    DEGRADED_CONTEXT = "degraded_context"
    GENERATION_FAILED = "generation_failed"


@dataclass
class QueryResult:
    answer: str
    sources: List[Source] = field(default_factory=list)
    outcome: QueryOutcome = QueryOutcome.ANSWERED
    error: Optional[str] = None

    def to_response(self) -> QueryResponse:
        return QueryResponse(answer=self.answer, sources=self.sources)


@dataclass
class PreparedQuery:
    """
    Retrieval and context assembly done, generation pending.

    ``result`` is set when the request ends before generation (no content,
    no provider, degraded context); otherwise ``context`` is ready to use.
    """
    query: str
    namespace: str
    context: AssembledContext = field(default_factory=AssembledContext)
    result: Optional[QueryResult] = None

    @property
    def sources(self) -> List[Source]:
        return self.context.sources


class QueryPipeline:

    def __init__(
        self,
        retriever: NamespaceRetriever,
        assembler: ContextAssembler,
        generator: AnswerGenerator,
    ) -> None:
        self.retriever = retriever
        self.assembler = assembler
        self.generator = generator

    async def prepare(self, query: str, namespace: str) -> PreparedQuery:
        retrieval = await self.retriever.retrieve(query, namespace)
        if not retrieval:
            logger.info("Namespace %s has no indexed documents", namespace)
            return PreparedQuery(
                query,
                namespace,
                result=QueryResult(NOT_INDEXED_ANSWER, [], QueryOutcome.NO_CONTENT),
            )

        logger.info(
            "Retrieved %d hits for namespace %s via %s tier",
            len(retrieval.hits),
            namespace,
            retrieval.tier.value,
        )
        context = self.assembler.assemble(retrieval.hits)
        prepared = PreparedQuery(query, namespace, context)

        if self.generator.select_provider() is None:
            logger.warning("No language model provider configured")
            prepared.result = QueryResult(
                NO_PROVIDER_ANSWER, context.sources, QueryOutcome.UNCONFIGURED
            )
        elif context.degraded:
            logger.warning(
                "Context too short for namespace %s (%d chars from %d sources)",
                namespace,
                len(context.text),
                len(context.sources),
            )
            prepared.result = QueryResult(
                INSUFFICIENT_CONTENT_ANSWER, context.sources, QueryOutcome.DEGRADED_CONTEXT
            )
        return prepared

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    async def answer_prepared(self, prepared: PreparedQuery) -> QueryResult:
        if prepared.result is not None:
            return prepared.result

        provider = self.generator.select_provider()
        try:
            answer = await self.generator.generate(prepared.query, prepared.context.text)
        except GenerationError as exc:
            logger.error("Generation failed for namespace %s: %s", prepared.namespace, exc)
            return QueryResult(
                describe_failure(exc, provider.name if provider else None),
                prepared.sources,
                QueryOutcome.GENERATION_FAILED,
                error=str(exc),
            )
        return QueryResult(answer, prepared.sources)

    async def answer(self, query: str, namespace: str) -> QueryResult:
        return await self.answer_prepared(await self.prepare(query, namespace))

    # ------------------------------------------------------------------
    # Incremental
    # ------------------------------------------------------------------

    async def stream_prepared(self, prepared: PreparedQuery) -> AsyncIterator[str]:
        """
        Yield internal-protocol lines: the sources line first, exactly once,
        then one text line per fragment as soon as it is generated.
        """
        yield encode_sources_line([s.model_dump() for s in prepared.sources])

        if prepared.result is not None:
            yield encode_text_line(prepared.result.answer)
            return

        provider = self.generator.select_provider()
        started = False
        try:
            async for fragment in self.generator.generate_stream(
                prepared.query, prepared.context.text
            ):
                started = True
                yield encode_text_line(fragment)
        except GenerationError as exc:
            logger.error("Streaming generation failed for namespace %s: %s", prepared.namespace, exc)
            message = describe_failure(exc, provider.name if provider else None)
            yield encode_text_line(f"\n\n{message}" if started else message)

    async def stream(self, query: str, namespace: str) -> AsyncIterator[str]:
        prepared = await self.prepare(query, namespace)
        async for line in self.stream_prepared(prepared):
            yield line
