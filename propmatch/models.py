"""
Typed data models for subject-property matching.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


# Fallback tiers reported by the resolution policy
TIER_CONFIDENT = "confident"
TIER_GOOD_FALLBACK = "good-fallback"
TIER_FORCED_FALLBACK = "forced-fallback"
TIER_EMERGENCY_FALLBACK = "emergency-fallback"
TIER_NONE = "none"


@dataclass
class SubjectPropertyRecord:
    """The user-entered property under analysis."""
    id: str
    name: str
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class DiscoveryBatch:
    """One listings-discovery run for a subject property."""
    id: str
    subject_id: str
    source_url: str
    status: str = "pending"  # pending, processing, completed, failed
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None


@dataclass
class CandidateListing:
    """One scraped listing considered as a possible match for the subject."""
    id: str
    batch_id: str
    name: str
    address: str
    url: str
    match_score: Optional[float] = None
    is_subject_property: bool = False
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ScrapedUnit:
    """A unit belonging to a candidate listing."""
    id: str
    candidate_id: str
    unit_type: str
    unit_number: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    square_footage: Optional[int] = None
    rent: Optional[float] = None
    availability_date: Optional[str] = None
    status: str = "available"  # available, occupied, pending
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ComponentScores:
    """Points awarded per scoring factor."""
    street_number: int = 0
    street_name: int = 0
    property_name: int = 0
    full_address: int = 0
    city_state: int = 0

    def total(self) -> int:
        return (
            self.street_number
            + self.street_name
            + self.property_name
            + self.full_address
            + self.city_state
        )


@dataclass
class MatchResult:
    """Outcome of scoring a subject property against one candidate listing."""
    candidate_id: str
    score: int
    is_match: bool
    reasons: List[str] = field(default_factory=list)
    component_scores: ComponentScores = field(default_factory=ComponentScores)


@dataclass
class ResolutionResult:
    """Which candidate became the subject and which fallback tier chose it."""
    chosen_id: Optional[str]
    tier: str
    all_scores: List[MatchResult] = field(default_factory=list)


@dataclass
class InspectionReport:
    """Read-only diagnostic view of a batch's match scores."""
    ranked: List[MatchResult]
    current: Optional[MatchResult]
    recommendation: str
    warnings: List[str] = field(default_factory=list)


@dataclass
class SyncResult:
    """Result of materializing the subject listing's units."""
    subject_candidate: Optional[CandidateListing]
    units: List[ScrapedUnit] = field(default_factory=list)
    fallback_used: bool = False
    tier: Optional[str] = None
    all_scores: List[MatchResult] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Final per-subject outcome of the discovery + matching pipeline."""
    name: str
    batch_id: Optional[str]
    tier: str
    subject_listing_name: Optional[str] = None
    subject_listing_url: Optional[str] = None
    match_score: Optional[int] = None
    units_count: int = 0
    fallback_used: bool = False
    suggestions: List[str] = field(default_factory=list)
