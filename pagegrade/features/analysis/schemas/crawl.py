from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pagegrade.platform.schemas import CamelModel


class CrawlResult(BaseModel):
    """What the fetcher hands to both scorers. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    html: str
    text: str
    load_time_ms: float
    page_size: int  # bytes of the UTF-8 encoded HTML
    url: str
    final_url: str


class PageMetadata(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    canonical: Optional[str] = None


class HeaderStructure(CamelModel):
    h1: List[str] = Field(default_factory=list)
    h2: List[str] = Field(default_factory=list)
    h3: List[str] = Field(default_factory=list)
    h4: List[str] = Field(default_factory=list)
    h5: List[str] = Field(default_factory=list)
    h6: List[str] = Field(default_factory=list)


class StructuredData(BaseModel):
    """JSON-LD blocks found on the page."""
    types: List[str] = Field(default_factory=list)
    data: List[Any] = Field(default_factory=list)


class PageLinks(BaseModel):
    internal: List[str] = Field(default_factory=list)
    external: List[str] = Field(default_factory=list)


class PageFacts(BaseModel):
    """Everything the rule scorer reads from the markup."""
    metadata: PageMetadata
    headers: HeaderStructure
    structured_data: StructuredData
    links: PageLinks
