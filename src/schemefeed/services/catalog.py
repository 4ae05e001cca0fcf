"""Static scheme data: the baseline set and the new-scheme template library."""

from typing import NamedTuple

from schemefeed.schemas.scheme import Scheme

BASE_SCHEMES: tuple[Scheme, ...] = (
    Scheme(
        id=1,
        title="PM Kisan Samman Nidhi",
        description=(
            "Direct income support to farmers with quarterly installments. "
            "Recently enhanced with digital payment integration."
        ),
        category="Agriculture",
        version="2.1",
    ),
    Scheme(
        id=2,
        title="Ayushman Bharat PM-JAY",
        description=(
            "Health insurance scheme providing ₹5 lakh coverage per family annually. "
            "New hospitals added recently."
        ),
        category="Healthcare",
        version="3.0",
    ),
)


class SupplementaryScheme(NamedTuple):
    """A scheme the synthetic tier adds, with text for both update states."""

    title: str
    category: str
    description: str
    updated_description: str
    version: str
    updated_version: str


SUPPLEMENTARY_SCHEMES: tuple[SupplementaryScheme, ...] = (
    SupplementaryScheme(
        title="Digital India Bhashini",
        category="Technology",
        description="AI-powered language translation platform for digital services.",
        updated_description=(
            "AI language platform EXPANDED with 5 new regional languages and voice support."
        ),
        version="2.0",
        updated_version="3.1",
    ),
    SupplementaryScheme(
        title="Startup India Seed Fund",
        category="Employment",
        description="Funding support for early-stage startups with mentorship.",
        updated_description=(
            "ENHANCED: Funding limit increased to ₹75 lakhs and faster approval process."
        ),
        version="2.0",
        updated_version="2.5",
    ),
    SupplementaryScheme(
        title="Green India Mission",
        category="Environment",
        description="Climate action program focusing on renewable energy and green spaces.",
        updated_description=(
            "NEW: Urban afforestation program launched with smart monitoring system."
        ),
        version="2.0",
        updated_version="2.2",
    ),
)

UPDATED_SUFFIX = "Recently updated with enhanced benefits and digital features."


class SchemeTemplate(NamedTuple):
    """Template for a brand-new scheme. %SECTOR% and %BUDGET% are substituted."""

    title: str
    description: str
    category: str


NEW_SCHEME_TEMPLATES: tuple[SchemeTemplate, ...] = (
    SchemeTemplate(
        title="Digital India AI Mission Phase",
        description=(
            "AI infrastructure development with focus on %SECTOR%. "
            "Budget increased to ₹%BUDGET% crore."
        ),
        category="Technology",
    ),
    SchemeTemplate(
        title="PM %SECTOR% Vikas Yojana",
        description=(
            "Comprehensive development scheme for %SECTOR% sector with new "
            "digital initiatives and increased funding."
        ),
        category="Social Welfare",
    ),
    SchemeTemplate(
        title="National %SECTOR% Mission",
        description=(
            "Enhanced mission focusing on %SECTOR% development with revised "
            "guidelines and expanded coverage."
        ),
        category="Environment",
    ),
    SchemeTemplate(
        title="Startup India %SECTOR% Fund",
        description=(
            "Special funding for %SECTOR% startups with simplified application "
            "process and mentorship."
        ),
        category="Employment",
    ),
)

SECTORS: tuple[str, ...] = (
    "Education",
    "Healthcare",
    "Agriculture",
    "Technology",
    "Rural",
    "Urban",
    "Digital",
    "Green",
)
BUDGETS: tuple[str, ...] = ("500", "750", "1000", "1500", "2000")
