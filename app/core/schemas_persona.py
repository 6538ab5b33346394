"""Pydantic schemas for visitor persona detection and accumulation."""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

HISTORY_CAP = 5
VECTOR_CONFIDENCE_MAX = 100.0

# =======================
# Closed value sets
# =======================


class SignalDimension(str, Enum):
    """Dimension a signal affects."""

    FUNCTIONAL_ROLE = "functional_role"
    ORG_TYPE = "org_type"
    ORG_SIZE = "org_size"
    PRODUCT_FOCUS = "product_focus"
    PAIN_POINT = "pain_point"
    # Legacy overlapping dimensions, accumulated but not read by decision logic
    USER_TYPE = "user_type"
    COMPANY_SIZE = "company_size"
    FUNCTIONAL_FOCUS = "functional_focus"


DETECTION_DIMENSIONS: tuple[SignalDimension, ...] = (
    SignalDimension.FUNCTIONAL_ROLE,
    SignalDimension.ORG_TYPE,
    SignalDimension.ORG_SIZE,
    SignalDimension.PRODUCT_FOCUS,
)


class FunctionalRole(str, Enum):
    SALES = "sales"
    MARKETING = "marketing"


class OrgType(str, Enum):
    SUPPLIER = "supplier"
    RETAILER = "retailer"


class OrgSize(str, Enum):
    S = "S"
    M = "M"
    L = "L"


class ProductFocus(str, Enum):
    BEER = "beer"
    SPIRITS = "spirits"
    WINE = "wine"


class PainPoint(str, Enum):
    EXECUTION_BLIND_SPOT = "execution_blind_spot"
    MARKET_ASSESSMENT = "market_assessment"
    SALES_EFFECTIVENESS = "sales_effectiveness"
    MARKET_POSITIONING = "market_positioning"
    OPERATIONAL_CHALLENGE = "operational_challenge"
    REGULATORY_COMPLIANCE = "regulatory_compliance"


class UserType(str, Enum):
    SUPPLIER = "supplier"
    DISTRIBUTOR = "distributor"


class CompanySize(str, Enum):
    CRAFT = "craft"
    MID_SIZED = "mid_sized"
    LARGE = "large"


class FunctionalFocus(str, Enum):
    SALES = "sales"
    MARKETING = "marketing"
    OPERATIONS = "operations"
    COMPLIANCE = "compliance"


class SignalStrength(str, Enum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


STRENGTH_WEIGHTS: dict[SignalStrength, float] = {
    SignalStrength.WEAK: 0.1,
    SignalStrength.MEDIUM: 0.2,
    SignalStrength.STRONG: 0.3,
}


@dataclass(frozen=True)
class Signal:
    """A single piece of evidence extracted from one message or click."""

    dimension: SignalDimension
    value: str
    strength: SignalStrength
    confidence: float  # 0.0 - 1.0, independent of strength
    evidence: str
    source: Literal["message", "navigation"] = "message"

    def describe(self) -> str:
        """Short audit string, e.g. 'pain_point/sales_effectiveness: medium'."""
        return f"{self.dimension.value}/{self.value}: {self.strength.value}"


# =======================
# Score vector
# =======================


class DetectionVector(BaseModel):
    """One independent classification dimension with bounded history."""

    value: str | None = Field(default=None, description="Currently adopted value")
    confidence: float = Field(default=0.0, ge=0.0, le=VECTOR_CONFIDENCE_MAX)
    history: list[str] = Field(
        default_factory=list, max_length=HISTORY_CAP, description="Adopted values, oldest first"
    )


class PersonaScoreVector(BaseModel):
    """Per-session accumulated persona state."""

    functional_role: DetectionVector = Field(default_factory=DetectionVector)
    org_type: DetectionVector = Field(default_factory=DetectionVector)
    org_size: DetectionVector = Field(default_factory=DetectionVector)
    product_focus: DetectionVector = Field(default_factory=DetectionVector)

    # Legacy scores (deprecated: org_type / org_size vectors are canonical)
    supplier_score: float = Field(default=0.5, ge=0.0, le=1.0)
    distributor_score: float = Field(default=0.5, ge=0.0, le=1.0)
    craft_score: float = Field(default=0.33, ge=0.0, le=1.0)
    mid_sized_score: float = Field(default=0.33, ge=0.0, le=1.0)
    large_score: float = Field(default=0.33, ge=0.0, le=1.0)

    # Functional focus, read by the intent classifier boosts
    sales_focus_score: float = Field(default=0.25, ge=0.0, le=1.0)
    marketing_focus_score: float = Field(default=0.25, ge=0.0, le=1.0)
    operations_focus_score: float = Field(default=0.25, ge=0.0, le=1.0)
    compliance_focus_score: float = Field(default=0.25, ge=0.0, le=1.0)

    pain_points_detected: list[PainPoint] = Field(default_factory=list)
    pain_points_confidence: dict[PainPoint, float] = Field(default_factory=dict)

    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    total_interactions: int = Field(default=0, ge=0)
    vectors_updated_at: int | None = Field(
        default=None, description="Epoch milliseconds of the last detection-vector change"
    )

    def vector(self, dimension: SignalDimension) -> DetectionVector:
        return getattr(self, dimension.value)


class VectorClassification(BaseModel):
    value: str | None
    confidence: float
    detection_count: int


class PersonaClassification(BaseModel):
    """Flattened view of the four detection vectors."""

    functional_role: VectorClassification
    org_type: VectorClassification
    org_size: VectorClassification
    product_focus: VectorClassification
    all_vectors_identified: bool
