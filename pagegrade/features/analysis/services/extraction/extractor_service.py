import json
import logging
from typing import Any, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from pagegrade.features.analysis.schemas.crawl import (
    HeaderStructure,
    PageFacts,
    PageLinks,
    PageMetadata,
    StructuredData,
)

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


class ExtractorService:
    """
    Pure HTML -> facts helpers. None of these touch the network and none of
    them raise on malformed markup.
    """

    @staticmethod
    def _soup(html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", "html.parser")

    @staticmethod
    def _clean(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @staticmethod
    def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
        tag = soup.find("meta", attrs=attrs)
        if tag is None:
            return None
        return ExtractorService._clean(tag.get("content"))

    @staticmethod
    def extract_metadata(html: str) -> PageMetadata:
        soup = ExtractorService._soup(html)

        title = None
        if soup.title is not None:
            title = ExtractorService._clean(soup.title.get_text())

        canonical = None
        for link in soup.find_all("link", href=True):
            rel = link.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if "canonical" in [r.lower() for r in rel]:
                canonical = ExtractorService._clean(link.get("href"))
                break

        return PageMetadata(
            title=title,
            description=ExtractorService._meta_content(soup, name="description"),
            keywords=ExtractorService._meta_content(soup, name="keywords"),
            og_title=ExtractorService._meta_content(soup, property="og:title"),
            og_description=ExtractorService._meta_content(soup, property="og:description"),
            og_image=ExtractorService._meta_content(soup, property="og:image"),
            canonical=canonical,
        )

    @staticmethod
    def extract_headers(html: str) -> HeaderStructure:
        soup = ExtractorService._soup(html)
        headings = {}
        for tag in HEADING_TAGS:
            texts = [el.get_text(" ", strip=True) for el in soup.find_all(tag)]
            headings[tag] = [text for text in texts if text]
        return HeaderStructure(**headings)

    @staticmethod
    def extract_structured_data(html: str) -> StructuredData:
        """
        Collect JSON-LD blocks. Blocks that are not valid JSON are skipped.
        Types are de-duplicated in first-seen order.
        """
        soup = ExtractorService._soup(html)
        blocks: List[Any] = []
        types: List[str] = []

        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            content = script.string if script.string is not None else script.get_text()
            if not content or not content.strip():
                continue
            try:
                data = json.loads(content)
            except (json.JSONDecodeError, ValueError):
                logger.debug("Skipping JSON-LD block that failed to parse")
                continue

            blocks.append(data)
            for type_name in ExtractorService._collect_types(data):
                if type_name not in types:
                    types.append(type_name)

        return StructuredData(types=types, data=blocks)

    @staticmethod
    def _collect_types(data: Any) -> List[str]:
        if isinstance(data, list):
            found = []
            for item in data:
                found.extend(ExtractorService._collect_types(item))
            return found

        if not isinstance(data, dict):
            return []

        found = []
        type_value = data.get("@type")
        if isinstance(type_value, str):
            found.append(type_value)
        elif isinstance(type_value, list):
            found.extend(t for t in type_value if isinstance(t, str))

        graph = data.get("@graph")
        if graph is not None:
            found.extend(ExtractorService._collect_types(graph))
        return found

    @staticmethod
    def extract_links(html: str, base_url: str) -> PageLinks:
        """Internal vs external links by hostname. Unparseable hrefs are dropped."""
        soup = ExtractorService._soup(html)
        internal: List[str] = []
        external: List[str] = []

        try:
            base_host = urlparse(base_url).hostname
        except ValueError:
            return PageLinks()
        if not base_host:
            return PageLinks()

        for anchor in soup.find_all("a", href=True):
            href = (anchor.get("href") or "").strip()
            if not href:
                continue
            try:
                absolute = urljoin(base_url, href)
                parsed = urlparse(absolute)
                host = parsed.hostname
                # Accessing .port validates it ("http://host:abc" raises)
                parsed.port
            except ValueError:
                continue

            if parsed.scheme not in ("http", "https") or not host:
                continue

            bucket = internal if host == base_host else external
            if absolute not in bucket:
                bucket.append(absolute)

        return PageLinks(internal=internal, external=external)

    @staticmethod
    def extract_text(html: str) -> str:
        """Visible body text with scripts and styles removed, whitespace collapsed."""
        soup = ExtractorService._soup(html)
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        root = soup.body or soup
        return " ".join(root.get_text(" ").split())

    @staticmethod
    def extract_facts(html: str, base_url: str) -> PageFacts:
        return PageFacts(
            metadata=ExtractorService.extract_metadata(html),
            headers=ExtractorService.extract_headers(html),
            structured_data=ExtractorService.extract_structured_data(html),
            links=ExtractorService.extract_links(html, base_url),
        )
