"""
Request dependencies.

Long-lived collaborators are built once in the application lifespan and kept
on ``app.state``; handlers receive them through these functions, which tests
replace with ``app.dependency_overrides``.
"""

from fastapi import Request

from ..config import Settings, settings
from ..llm.client import GenerationOptions
from ..llm.generator import AnswerGenerator
from ..llm.providers import build_providers
from ..pipeline import QueryPipeline
from ..retrieval.context import ContextAssembler
from ..retrieval.retriever import NamespaceRetriever
from ..search.index_client import SearchIndex, SearchIndexClient
from ..storage import IndexRegistry


def build_generator(config: Settings) -> AnswerGenerator:
    return AnswerGenerator(
        build_providers(config),
        language=config.answer_language,
        options=GenerationOptions(
            temperature=config.llm_temperature,
            max_tokens=config.llm_max_tokens,
            timeout=config.llm_timeout_seconds,
        ),
    )


def build_search_index(config: Settings) -> SearchIndexClient:
    return SearchIndexClient(
        base_url=config.search_url,
        token=config.search_token.get_secret_value() if config.search_token else None,
        index_name=config.search_index,
        timeout=config.search_timeout_seconds,
    )


def build_pipeline(
    config: Settings,
    index: SearchIndex | None = None,
    generator: AnswerGenerator | None = None,
) -> QueryPipeline:
    return QueryPipeline(
        retriever=NamespaceRetriever(
            index or build_search_index(config),
            max_results=config.max_results,
        ),
        assembler=ContextAssembler(
            max_sources_display=config.max_sources_display,
            max_context_docs=config.max_context_docs,
            max_context_length=config.max_context_length,
            min_context_length=config.min_context_length,
            snippet_length=config.snippet_length,
        ),
        generator=generator or build_generator(config),
    )


def get_settings() -> Settings:
    return settings


def get_pipeline(request: Request) -> QueryPipeline:
    return request.app.state.pipeline


def get_registry(request: Request) -> IndexRegistry:
    return request.app.state.registry
