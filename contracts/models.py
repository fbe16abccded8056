# contracts/models.py
"""
Pydantic models for the Lookbook look pipeline.
These models define the data contracts for style plans, raw and validated
products, look jobs, and the results returned to polling clients.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional, Dict


SlotName = Literal["anchor", "top", "bottom", "dress", "shoe", "accessory"]

# Canonical rendering order for outfits
SLOT_ORDER: List[str] = ["anchor", "top", "bottom", "dress", "shoe", "accessory"]

JobStatus = Literal["queued", "running", "partial", "complete", "failed"]


class SlotPlan(BaseModel):
    """
    Constraints for a single outfit slot.
    """
    slot: SlotName
    category: str
    keywords: List[str] = []
    allowed_colors: List[str] = []
    banned_materials: List[str] = []
    min_price: float = Field(default=0, ge=0)
    max_price: float = Field(default=0, ge=0)  # 0 means "no per-slot cap"


class BudgetSplit(BaseModel):
    slot: SlotName
    min: float = Field(default=0, ge=0)
    max: float = Field(default=0, ge=0)


class SearchQuery(BaseModel):
    slot: SlotName
    query: str


class UserPreferences(BaseModel):
    """Originating user preferences, carried along with the plan."""
    gender: Optional[str] = None
    body_type: Optional[str] = None
    budget: Optional[str] = None  # Free text, e.g. "€150–€300"
    country: Optional[str] = None  # ISO-2 region, e.g. "NL"
    keywords: List[str] = []
    sizes: Dict[str, str] = {}
    prompt: Optional[str] = None


class StylePlan(BaseModel):
    """
    The immutable look request.
    Built by the caller, owned by its Job, never mutated after creation.
    """
    model_config = ConfigDict(frozen=True)

    look_id: str = Field(min_length=1)
    aesthetic_read: str = ""
    vibe_keywords: List[str] = []
    required_slots: List[SlotName] = Field(min_length=1)
    per_slot: List[SlotPlan] = []
    budget_split: List[BudgetSplit] = []
    retailer_priority: List[str] = []
    search_queries: List[SearchQuery] = []
    budget_total: float = Field(default=0, ge=0)
    currency: str = "EUR"
    allow_stretch: bool = False
    preferences: UserPreferences = UserPreferences()

    # Provider keys to query, in priority order (None = configured default)
    providers: Optional[List[str]] = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    def slot_plan(self, slot: str) -> Optional[SlotPlan]:
        return next((p for p in self.per_slot if p.slot == slot), None)

    def query_for(self, slot: str) -> Optional[str]:
        """Search query for a slot: the explicit one, else the slot keywords."""
        for q in self.search_queries:
            if q.slot == slot and q.query.strip():
                return q.query.strip()
        slot_plan = self.slot_plan(slot)
        if slot_plan and slot_plan.keywords:
            return " ".join(slot_plan.keywords)
        return None

    @property
    def region(self) -> Optional[str]:
        return self.preferences.country


class Candidate(BaseModel):
    """
    A raw product record from any provider.
    Every field is optional; the validator decides what survives.
    """
    id: Optional[str] = None
    title: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    affiliate_url: Optional[str] = None
    retailer: Optional[str] = None
    availability: Optional[str] = None
    category: Optional[str] = None

    # Search metadata
    slot: Optional[SlotName] = None
    source: str = "unknown"
    tags: List[str] = []


class StrictProduct(BaseModel):
    """
    A validated, fully-populated product, safe to display and link.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    brand: str
    price: float
    currency: str
    image: str
    url: str
    affiliate_url: str
    retailer: str
    availability: str
    category: str
    slot: SlotName
    source: str = "unknown"
    tags: List[str] = []


class AdapterFailure(BaseModel):
    """A provider failure for one slot search. Recorded, never fatal."""
    retailer: str
    slot: str
    message: str


class LookResult(BaseModel):
    """
    Outcome of a look job. Immutable once attached to a Job or cache entry.
    """
    model_config = ConfigDict(frozen=True)

    look_id: str
    status: JobStatus
    message: str
    slots: List[StrictProduct] = []
    alternates: List[StrictProduct] = []
    total_price: Optional[float] = None
    currency: str
    missing_slots: List[str] = []
    note: Optional[str] = None
    outfit_text: str = ""


class Job(BaseModel):
    """
    The mutable unit of work. Mutated only through the JobStore.
    """
    id: str
    created_at: float
    updated_at: float
    status: JobStatus = "queued"
    progress: Dict[str, int] = {}
    errors: List[AdapterFailure] = []
    logs: List[str] = []
    plan: StylePlan
    result: Optional[LookResult] = None

    # Validated candidates collected so far, keyed by slot (resume state)
    pool: Dict[str, List[StrictProduct]] = Field(default_factory=dict, exclude=True)

    def to_payload(self) -> Dict:
        """Polling payload returned to clients."""
        return {
            "id": self.id,
            "status": self.status,
            "progress": dict(self.progress),
            "errors": [e.model_dump() for e in self.errors],
            "logs": list(self.logs),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "result": self.result.model_dump() if self.result else None,
        }


class SubmitResponse(BaseModel):
    job_id: str
    cached: bool = False
