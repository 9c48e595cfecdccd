import pytest

from sitechat_server.retrieval.retriever import NamespaceRetriever, RetrievalTier
from sitechat_server.search.index_client import SearchIndexError

from conftest import EXAMPLE_NAMESPACE, OTHER_NAMESPACE, ScriptedSearchIndex, make_hit

NS = EXAMPLE_NAMESPACE
QUERY = "Hvad er depositum?"
BOOSTED_QUERY = f"{QUERY} {NS}"


@pytest.mark.asyncio
async def test_tier_one_hit_skips_fallbacks():
    index = ScriptedSearchIndex({
        BOOSTED_QUERY: [make_hit(NS, "depositum", hit_id="a"), make_hit(OTHER_NAMESPACE, "x", hit_id="b")],
    })

    result = await NamespaceRetriever(index).retrieve(QUERY, NS)

    assert result.tier is RetrievalTier.BOOSTED
    assert [h.id for h in result.hits] == ["a"]
    assert index.queries == [BOOSTED_QUERY]


@pytest.mark.asyncio
async def test_exact_namespace_match_is_required():
    # A namespace that is a prefix of another must not match it
    index = ScriptedSearchIndex({
        BOOSTED_QUERY: [make_hit(NS + "0", "depositum"), make_hit(None, "depositum")],
    })

    result = await NamespaceRetriever(index).retrieve(QUERY, NS)

    assert not result
    assert index.queries == [BOOSTED_QUERY, NS]


@pytest.mark.asyncio
async def test_tier_two_narrows_to_query_mentions():
    index = ScriptedSearchIndex({
        NS: [
            make_hit(NS, "om os", hit_id="about"),
            make_hit(NS, "svar på: hvad er depositum? tre måneder", hit_id="faq"),
            make_hit(OTHER_NAMESPACE, "hvad er depositum?", hit_id="foreign"),
        ],
    })

    result = await NamespaceRetriever(index).retrieve(QUERY, NS)

    assert result.tier is RetrievalTier.NAMESPACE_MATCH
    assert [h.id for h in result.hits] == ["faq"]
    assert index.queries == [BOOSTED_QUERY, NS]


@pytest.mark.asyncio
async def test_narrowing_matches_title_and_url():
    index = ScriptedSearchIndex({
        NS: [
            make_hit(NS, "", title="Priser", url="https://example.com/priser", hit_id="url"),
            make_hit(NS, "", title="Kontakt", url="https://example.com/k", hit_id="other"),
        ],
    })

    result = await NamespaceRetriever(index).retrieve("PRISER", NS)

    assert [h.id for h in result.hits] == ["url"]


@pytest.mark.asyncio
async def test_falls_back_to_all_namespace_hits():
    index = ScriptedSearchIndex({
        NS: [make_hit(NS, "om os", hit_id="about"), make_hit(NS, "kontakt", hit_id="contact")],
    })

    result = await NamespaceRetriever(index).retrieve(QUERY, NS)

    assert result.tier is RetrievalTier.NAMESPACE_ALL
    assert [h.id for h in result.hits] == ["about", "contact"]


@pytest.mark.asyncio
async def test_empty_namespace_yields_nothing():
    index = ScriptedSearchIndex({})

    result = await NamespaceRetriever(index).retrieve(QUERY, "empty-ns")

    assert not result
    assert result.tier is RetrievalTier.NONE
    assert index.queries == [f"{QUERY} empty-ns", "empty-ns"]


@pytest.mark.asyncio
async def test_search_failure_is_an_empty_tier():
    class FailingIndex:
        def __init__(self):
            self.calls = 0

        async def search(self, query, limit, reranking=True):
            self.calls += 1
            raise SearchIndexError("index down")

    index = FailingIndex()
    result = await NamespaceRetriever(index).retrieve(QUERY, NS)

    assert not result
    assert index.calls == 2
