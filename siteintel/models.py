"""
Pydantic models for crawl results.

- StructuredData: page facts extracted from the rendered DOM
- BusinessReport: the eleven-section narrative report
- CrawlArtifact: the immutable record persisted for one successful crawl

Attributes are snake_case in Python and camelCase on the wire (store documents,
archive files, API responses) via aliases.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class CrawlStage(str, Enum):
    """Stages of one crawl request."""
    RENDERING = "rendering"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    GENERATING = "generating"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Structured page data
# ============================================================================

class ImageInfo(_CamelModel):
    src: str = Field(..., min_length=1)
    alt: Optional[str] = None
    title: Optional[str] = None


class NavigationLink(_CamelModel):
    text: str
    url: str


class NavigationItem(_CamelModel):
    text: str
    url: str
    # Never populated by the extractor; kept for hierarchical menus.
    children: List[NavigationLink] = Field(default_factory=list)


class Heading(_CamelModel):
    level: int = Field(..., ge=1, le=6)
    text: str


class ContactInfo(_CamelModel):
    phones: List[str] = Field(default_factory=list)
    emails: List[str] = Field(default_factory=list)
    addresses: List[str] = Field(default_factory=list)


class PageMetadata(_CamelModel):
    social_links: List[str] = Field(default_factory=list, alias="socialLinks")
    contact_info: ContactInfo = Field(default_factory=ContactInfo, alias="contactInfo")
    copyright: str = ""


class StructuredData(_CamelModel):
    title: str
    description: str
    main_content: List[str] = Field(default_factory=list, alias="mainContent")
    links: List[str] = Field(default_factory=list)
    images: List[ImageInfo] = Field(default_factory=list)
    navigation: List[NavigationItem] = Field(default_factory=list)
    headings: List[Heading] = Field(default_factory=list)
    metadata: PageMetadata = Field(default_factory=PageMetadata)


# ============================================================================
# Business report
# ============================================================================

# (field name, section title) in report order
REPORT_SECTIONS: Tuple[Tuple[str, str], ...] = (
    ("companyOverview", "Company Overview"),
    ("productsAndServices", "Products and Services"),
    ("brandVoice", "Brand Voice"),
    ("customerAnalysis", "Customer Analysis"),
    ("valueProposition", "Value Proposition"),
    ("competitiveLandscape", "Competitive Landscape"),
    ("salesAndMarketing", "Sales and Marketing"),
    ("customerSupport", "Customer Support"),
    ("technicalInfrastructure", "Technical Infrastructure"),
    ("businessOperations", "Business Operations"),
    ("growthAndInnovation", "Growth and Innovation"),
)

REPORT_FIELDS: Tuple[str, ...] = tuple(name for name, _ in REPORT_SECTIONS)


class BusinessReport(_CamelModel):
    """Customer-perspective report: exactly eleven non-empty paragraphs."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    company_overview: str = Field(..., min_length=1, alias="companyOverview")
    products_and_services: str = Field(..., min_length=1, alias="productsAndServices")
    brand_voice: str = Field(..., min_length=1, alias="brandVoice")
    customer_analysis: str = Field(..., min_length=1, alias="customerAnalysis")
    value_proposition: str = Field(..., min_length=1, alias="valueProposition")
    competitive_landscape: str = Field(..., min_length=1, alias="competitiveLandscape")
    sales_and_marketing: str = Field(..., min_length=1, alias="salesAndMarketing")
    customer_support: str = Field(..., min_length=1, alias="customerSupport")
    technical_infrastructure: str = Field(..., min_length=1, alias="technicalInfrastructure")
    business_operations: str = Field(..., min_length=1, alias="businessOperations")
    growth_and_innovation: str = Field(..., min_length=1, alias="growthAndInnovation")


# ============================================================================
# Artifact
# ============================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CrawlArtifact(_CamelModel):
    """One completed crawl. Never updated after creation."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    url: str
    raw_html: str = Field(..., alias="rawHtml")
    extracted_data: StructuredData = Field(..., alias="extractedData")
    business_report: BusinessReport = Field(..., alias="businessReport")
    timestamp: datetime = Field(default_factory=utc_now)

    def archive_payload(self) -> Dict[str, Any]:
        """The subset mirrored to the file archive."""
        return {
            "extractedData": self.extracted_data.to_json_dict(),
            "businessReport": self.business_report.to_json_dict(),
        }

    def to_document(self) -> Dict[str, Any]:
        """Document-store representation (timestamp kept as a datetime for sorting)."""
        document = self.model_dump(mode="json", by_alias=True)
        document["timestamp"] = self.timestamp
        return document
