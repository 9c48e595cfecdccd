"""
Load a crawl dump into the search index and register the site.

Usage:
    python scripts/index_site.py https://example.com crawl.json

``crawl.json`` is a JSON list of crawled pages, each with ``url`` and
``markdown`` (or ``content``) plus an optional ``metadata`` object
(``title``, ``description``, ``ogDescription``, ``sourceURL``, ``favicon``,
``ogImage``).
"""

import asyncio
import json
import os
import sys
import time
from datetime import datetime, timezone

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from sitechat_server.config import settings
from sitechat_server.search.index_client import SearchIndexClient
from sitechat_server.search.models import Document, make_namespace
from sitechat_server.storage import (
    DEFAULT_QUICK_PROMPTS,
    SiteDetails,
    SiteIndexMetadata,
    create_index_registry,
)


def _page_url(page):
    meta = page.get("metadata") or {}
    return meta.get("sourceURL") or page.get("url") or ""


def _find_homepage(site_url, pages):
    candidates = {site_url, site_url + "/", site_url.rstrip("/")}
    for page in pages:
        if _page_url(page) in candidates:
            return page
    return pages[0] if pages else {}


async def main(site_url, dump_path):
    with open(dump_path, encoding="utf-8") as fh:
        pages = json.load(fh)

    namespace = make_namespace(site_url, int(time.time() * 1000))
    print(f"Importing {len(pages)} pages into namespace {namespace}")

    documents = []
    for ordinal, page in enumerate(pages):
        meta = page.get("metadata") or {}
        documents.append(Document.from_page(
            namespace,
            ordinal,
            url=_page_url(page),
            content=page.get("markdown") or page.get("content") or "",
            title=meta.get("title"),
            description=meta.get("description") or meta.get("ogDescription"),
            favicon=meta.get("favicon"),
            og_image=meta.get("ogImage") or meta.get("og:image"),
        ))

    if not documents:
        print("No documents to index.")
        return

    index = SearchIndexClient()
    written = await index.upsert(documents)
    print(f"Upserted {written} documents.")

    homepage_meta = _find_homepage(site_url, pages).get("metadata") or {}
    registry = create_index_registry(settings)
    result = await registry.save_index(SiteIndexMetadata(
        url=site_url,
        namespace=namespace,
        slug=namespace,
        pages_crawled=len(pages),
        created_at=datetime.now(timezone.utc).isoformat(),
        metadata=SiteDetails(
            title=homepage_meta.get("title"),
            description=homepage_meta.get("description") or homepage_meta.get("ogDescription"),
            favicon=homepage_meta.get("favicon"),
            og_image=homepage_meta.get("ogImage") or homepage_meta.get("og:image"),
            quick_prompts=DEFAULT_QUICK_PROMPTS,
        ),
    ))
    await registry.close()

    if result.ok:
        print(f"Done! Site registered as {namespace}.")
    else:
        # Documents are searchable even if bookkeeping failed
        print(f"Documents indexed, but metadata was not saved ({result.kind.value}: {result.error}).")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
