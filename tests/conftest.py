import re
from typing import Dict, List, Optional, Sequence

import pytest

from sitechat_server.llm.client import GenerationError
from sitechat_server.llm.generator import AnswerGenerator
from sitechat_server.llm.providers import LLMProvider
from sitechat_server.pipeline import QueryPipeline
from sitechat_server.retrieval.context import ContextAssembler
from sitechat_server.retrieval.retriever import NamespaceRetriever
from sitechat_server.search.models import Document, SearchHit

EXAMPLE_NAMESPACE = "example-com-1700000000000"
OTHER_NAMESPACE = "other-org-1700000000001"

DEPOSIT_PAGE = (
    "Lejebetingelser for boligerne. Depositum svarer til tre måneders husleje "
    "og betales inden indflytning. Overtagelsesdato aftales med udlejer. "
    "Kontakt os på udlejning@example.com for at booke en fremvisning."
)


def make_hit(
    namespace: Optional[str],
    text: str = "",
    title: str = "Page",
    url: str = "https://example.com/page",
    score: float = 1.0,
    full_content: Optional[str] = None,
    hit_id: str = "doc",
) -> SearchHit:
    return SearchHit.model_validate({
        "id": hit_id,
        "score": score,
        "content": {"text": text, "title": title, "url": url},
        "metadata": {
            "namespace": namespace,
            "title": title,
            "url": url,
            "fullContent": full_content,
        },
    })


class FakeSearchIndex:
    """
    Lexical stand-in for the shared document index: a hit for every stored
    document sharing at least one word with the query, scored by overlap.
    """

    def __init__(self, documents: Sequence[Document] = ()) -> None:
        self.documents = list(documents)
        self.queries: List[str] = []

    @staticmethod
    def _words(text: str) -> set:
        return set(re.findall(r"\w+", text.lower()))

    async def search(self, query: str, limit: int, reranking: bool = True) -> List[SearchHit]:
        self.queries.append(query)
        wanted = self._words(query)
        hits = []
        for doc in self.documents:
            overlap = len(wanted & self._words(doc.content.text))
            if overlap:
                record = doc.to_record()
                record["score"] = float(overlap)
                hits.append(SearchHit.model_validate(record))
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:limit]


class ScriptedSearchIndex:
    """Returns pre-arranged hits per exact query string."""

    def __init__(self, responses: Dict[str, List[SearchHit]]) -> None:
        self.responses = responses
        self.queries: List[str] = []

    async def search(self, query: str, limit: int, reranking: bool = True) -> List[SearchHit]:
        self.queries.append(query)
        return list(self.responses.get(query, []))[:limit]


class StubProvider(LLMProvider):
    """Deterministic provider: fixed fragments, optional failure."""

    def __init__(
        self,
        fragments: Sequence[str] = ("Depositum ", "svarer til ", "tre måneders husleje."),
        available: bool = True,
        error: Optional[GenerationError] = None,
        fail_after: int = 0,
        name: str = "stub",
    ) -> None:
        super().__init__(api_key="test-key" if available else None, model="stub-model")
        self.name = name
        self.fragments = list(fragments)
        self.error = error
        self.fail_after = fail_after
        self.calls: List[list] = []

    async def complete(self, messages, options) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return "".join(self.fragments)

    async def stream(self, messages, options):
        self.calls.append(messages)
        for position, fragment in enumerate(self.fragments):
            if self.error is not None and position == self.fail_after:
                raise self.error
            yield fragment
        if self.error is not None and self.fail_after >= len(self.fragments):
            raise self.error


def make_pipeline(index, provider: Optional[LLMProvider] = None, **assembler_kwargs) -> QueryPipeline:
    providers = [provider] if provider is not None else []
    return QueryPipeline(
        retriever=NamespaceRetriever(index, max_results=100),
        assembler=ContextAssembler(**assembler_kwargs),
        generator=AnswerGenerator(providers),
    )


@pytest.fixture
def example_documents() -> List[Document]:
    return [
        Document.from_page(
            EXAMPLE_NAMESPACE,
            0,
            url="https://example.com/lejebetingelser",
            content=DEPOSIT_PAGE,
            title="Lejebetingelser",
            description="Vilkår for leje",
        ),
        Document.from_page(
            OTHER_NAMESPACE,
            0,
            url="https://other.org/depositum",
            content="Depositum hos Other er to måneders husleje. " * 5,
            title="Other depositum",
        ),
    ]


@pytest.fixture
def fake_index(example_documents) -> FakeSearchIndex:
    return FakeSearchIndex(example_documents)


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()
