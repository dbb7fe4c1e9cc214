"""
Crawl Schemas

Request, result and progress-event models for the accessibility crawl.
JSON keys are camelCase, matching what the progress channel has always sent.
"""
import enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from app.features.crawl.utils.wcag import WCAGConformance, WCAGCriterion, format_wcag_tags


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ============================================================================
# Issues
# ============================================================================

class Severity(str, enum.Enum):
    """axe-core impact levels, most severe first."""
    critical = "critical"
    serious = "serious"
    moderate = "moderate"
    minor = "minor"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Severity":
        try:
            return cls(value)
        except ValueError:
            return cls.minor


class Issue(CamelModel):
    """One accessibility violation found on one page. Immutable."""
    code: str
    type: Literal["error", "warning", "notice"] = "error"
    message: str
    context: str = ""
    selector: str = ""
    wcag_tags: List[str] = Field(default_factory=list)
    wcag_criteria: List[WCAGCriterion] = Field(default_factory=list)
    wcag_conformance: List[WCAGConformance] = Field(default_factory=list)
    impact: Severity = Severity.minor
    suggestion: str = ""
    url: str

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "code": "image-alt",
                "type": "error",
                "message": "Images must have alternate text",
                "context": "<img src=\"logo.png\">",
                "selector": "img",
                "wcagTags": ["wcag2a", "wcag111"],
                "impact": "critical",
                "suggestion": "Fix any of the following: Element does not have an alt attribute",
                "url": "https://example.com/",
            }
        }

    @classmethod
    def from_axe_violation(cls, violation: Dict[str, Any], url: str) -> "Issue":
        """
        Build an Issue from one axe-core violation.

        Only the first affected node is reported, which keeps one issue per
        rule per page.
        """
        nodes = violation.get("nodes") or [{}]
        node = nodes[0]
        target = node.get("target") or [""]
        selector = target[0]
        if isinstance(selector, list):
            # shadow DOM targets are nested selector lists
            selector = " >>> ".join(str(part) for part in selector)

        wcag_tags = [tag for tag in violation.get("tags", []) if tag.startswith("wcag")]
        criteria, conformance = format_wcag_tags(wcag_tags)

        return cls(
            code=violation.get("id", "unknown"),
            message=violation.get("help", ""),
            context=node.get("html") or "",
            selector=str(selector),
            wcag_tags=wcag_tags,
            wcag_criteria=criteria,
            wcag_conformance=conformance,
            impact=Severity.parse(violation.get("impact")),
            suggestion=node.get("failureSummary") or violation.get("description", ""),
            url=url,
        )


class PageAnalysis(BaseModel):
    """Outcome of analyzing one page."""
    url: str
    issues: List[Issue] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def failure(cls, url: str, error: str) -> "PageAnalysis":
        return cls(url=url, failed=True, error=error)


# ============================================================================
# Frontier / results
# ============================================================================

class FrontierEntryRead(CamelModel):
    """Detached snapshot of a frontier row."""
    url: str
    domain: str
    parent_url: Optional[str] = None
    visited: bool = False
    failed: bool = False
    claimed_by: Optional[str] = None

    class Config:
        from_attributes = True


class CheckRequest(BaseModel):
    """Request to start a crawl."""
    url: str

    class Config:
        json_schema_extra = {"example": {"url": "https://example.com"}}


class CrawlResult(CamelModel):
    """Aggregate returned once a crawl completes or is cancelled."""
    session_id: str
    domain: str
    issues: List[Issue] = Field(default_factory=list)
    processed_urls: List[str] = Field(default_factory=list)
    total_processed: int = 0
    cancelled: bool = False


class ActiveSession(CamelModel):
    session_id: str
    domain: str
    seed_url: str
    state: str
    in_flight: int


class CancelResponse(CamelModel):
    cancelled: bool
    session_id: Optional[str] = None


# ============================================================================
# Progress events
# ============================================================================

class ProgressEvent(CamelModel):
    type: str
    session_id: str


class AnalysisStarted(ProgressEvent):
    type: Literal["analysis_started"] = "analysis_started"
    domain: str
    initial_url: str


class ProcessingUrl(ProgressEvent):
    type: Literal["processing_url"] = "processing_url"
    url: str


class UrlCompleted(ProgressEvent):
    type: Literal["url_completed"] = "url_completed"
    url: str
    issues: List[Issue] = Field(default_factory=list)
    total_processed: int
    remaining_urls: int
    failed: bool = False


class AnalysisCancelled(ProgressEvent):
    type: Literal["analysis_cancelled"] = "analysis_cancelled"
    total_processed: int = 0


class AnalysisFailed(ProgressEvent):
    type: Literal["analysis_failed"] = "analysis_failed"
    message: str
