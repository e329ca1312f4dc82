import json

import pytest

from pagegrade.features.analysis.schemas.crawl import CrawlResult

TITLE_45 = "A" * 45
DESCRIPTION_120 = "D" * 120


def build_html(
    title=TITLE_45,
    description=DESCRIPTION_120,
    keywords="seo, geo, audit",
    og_tags=("og:title", "og:description", "og:image"),
    canonical="https://example.com/",
    h1s=("Main heading",),
    h2s=("Section",),
    json_ld=({"@context": "https://schema.org", "@type": "Organization", "name": "Example"},),
    body="<p>Some visible text.</p>",
):
    head = []
    if title is not None:
        head.append(f"<title>{title}</title>")
    if description is not None:
        head.append(f'<meta name="description" content="{description}">')
    if keywords is not None:
        head.append(f'<meta name="keywords" content="{keywords}">')
    for prop in og_tags:
        head.append(f'<meta property="{prop}" content="value for {prop}">')
    if canonical is not None:
        head.append(f'<link rel="canonical" href="{canonical}">')
    for block in json_ld:
        head.append(f'<script type="application/ld+json">{json.dumps(block)}</script>')

    headings = "".join(f"<h1>{text}</h1>" for text in h1s)
    headings += "".join(f"<h2>{text}</h2>" for text in h2s)

    return f"<html><head>{''.join(head)}</head><body>{headings}{body}</body></html>"


def build_crawl(html, load_time_ms=1500.0, page_size=300 * 1024, url="https://example.com/"):
    return CrawlResult(
        html=html,
        text="Some visible text.",
        load_time_ms=load_time_ms,
        page_size=page_size,
        url=url,
        final_url=url,
    )


@pytest.fixture
def ideal_page() -> CrawlResult:
    """Every rule check satisfied."""
    return build_crawl(build_html())


@pytest.fixture
def empty_page() -> CrawlResult:
    """Nothing present, slow and heavy."""
    html = build_html(
        title=None,
        description=None,
        keywords=None,
        og_tags=(),
        canonical=None,
        h1s=(),
        h2s=(),
        json_ld=(),
    )
    return build_crawl(html, load_time_ms=5000.0, page_size=int(1.2 * 1024 * 1024))


@pytest.fixture
def make_html():
    return build_html


@pytest.fixture
def make_crawl():
    return build_crawl
