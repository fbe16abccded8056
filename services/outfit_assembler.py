# services/outfit_assembler.py
"""
Outfit Assembly for the look pipeline.

Selects one primary and one alternate product per required slot from the
validated pool:
- Items in the slot's price band are preferred, then items within the
  overall budget (no ceiling when the plan allows stretch)
- Within a tier: no banned materials, more keyword hits, allowed-color
  match, lower price, first-seen order
- A slot with no usable live product falls back to the seed catalog

Selection is deterministic: the same plan and pool always yield the same
outfit.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from contracts.models import SLOT_ORDER, StrictProduct, StylePlan
from integrations.seed_catalog import SeedCatalogAdapter
from services.product_validator import validate_many

logger = logging.getLogger(__name__)

# ============================================================================
# Display labels
# ============================================================================

SLOT_LABELS = {
    "anchor": "Outerwear",
    "top": "Top",
    "bottom": "Bottom",
    "dress": "Dress",
    "shoe": "Shoes",
    "accessory": "Accessory",
}


@dataclass
class SlotPick:
    """Selection for one slot"""
    slot: str
    label: str
    primary: Optional[StrictProduct] = None
    alternate: Optional[StrictProduct] = None
    from_fallback: bool = False


@dataclass
class AssembledOutfit:
    """Assembler output, in plan slot order"""
    picks: List[SlotPick] = field(default_factory=list)
    missing_slots: List[str] = field(default_factory=list)
    fallback_slots: List[str] = field(default_factory=list)

    @property
    def primaries(self) -> List[StrictProduct]:
        return [p.primary for p in self.picks if p.primary]

    @property
    def alternates(self) -> List[StrictProduct]:
        return [p.alternate for p in self.picks if p.alternate]

    @property
    def total_price(self) -> Optional[float]:
        primaries = self.primaries
        if not primaries:
            return None
        return round(sum(p.price for p in primaries), 2)

    @property
    def note(self) -> Optional[str]:
        if not self.fallback_slots:
            return None
        return "fallback catalog used for: " + ", ".join(self.fallback_slots)


# ============================================================================
# Constraints
# ============================================================================

def price_band(plan: StylePlan, slot: str) -> Tuple[float, Optional[float]]:
    """
    (min, max) price for a slot: per-slot constraints first, then the budget
    split. A max of None means no cap.
    """
    slot_plan = plan.slot_plan(slot)
    if slot_plan and (slot_plan.min_price or slot_plan.max_price):
        return slot_plan.min_price, slot_plan.max_price or None
    split = next((b for b in plan.budget_split if b.slot == slot), None)
    if split and (split.min or split.max):
        return split.min, split.max or None
    return 0.0, None


def budget_ceiling(plan: StylePlan) -> Optional[float]:
    if plan.allow_stretch or not plan.budget_total:
        return None
    return plan.budget_total


def slot_keywords(plan: StylePlan, slot: str) -> List[str]:
    """Slot keywords, then vibe keywords, then preference keywords; lowercase, deduped."""
    slot_plan = plan.slot_plan(slot)
    words = list(slot_plan.keywords if slot_plan else [])
    words += plan.vibe_keywords + plan.preferences.keywords
    seen = []
    for word in words:
        word = word.strip().lower()
        if word and word not in seen:
            seen.append(word)
    return seen


def _haystack(product: StrictProduct) -> str:
    return " ".join([product.title, product.brand, product.category] + list(product.tags)).lower()


def rank_key(plan: StylePlan, slot: str, product: StrictProduct, index: int, keywords: List[str]):
    """Sort key; smaller is better."""
    text = _haystack(product)
    slot_plan = plan.slot_plan(slot)
    banned = slot_plan.banned_materials if slot_plan else []
    colors = slot_plan.allowed_colors if slot_plan else []

    has_banned = any(m.lower() in text for m in banned if m)
    keyword_hits = sum(1 for k in keywords if k in text)
    color_miss = bool(colors) and not any(c.lower() in text for c in colors if c)

    return (has_banned, -keyword_hits, color_miss, product.price, index)


def rank_slot(plan: StylePlan, slot: str, products: List[StrictProduct]) -> List[StrictProduct]:
    """
    Eligible products for a slot, best first: in-band items, then items within
    the overall budget. Items in another currency than the plan are skipped.
    """
    keywords = slot_keywords(plan, slot)
    low, high = price_band(plan, slot)
    ceiling = budget_ceiling(plan)

    in_band, in_budget = [], []
    for index, product in enumerate(products):
        if product.currency != plan.currency:
            continue
        key = rank_key(plan, slot, product, index, keywords)
        if product.price >= low and (high is None or product.price <= high):
            in_band.append((key, product))
        elif ceiling is None or product.price <= ceiling:
            in_budget.append((key, product))

    in_band.sort(key=lambda kp: kp[0])
    in_budget.sort(key=lambda kp: kp[0])
    return [p for _, p in in_band] + [p for _, p in in_budget]


def dedupe(products: Iterable[StrictProduct]) -> List[StrictProduct]:
    seen = set()
    out = []
    for product in products:
        if product.id in seen:
            continue
        seen.add(product.id)
        out.append(product)
    return out


# ============================================================================
# Assembly
# ============================================================================

def seed_candidates(plan: StylePlan, slot: str, seed: SeedCatalogAdapter) -> List[StrictProduct]:
    """
    Validated seed items for a slot, filtered by region, max price and tags.
    Tag filtering is dropped when it leaves nothing.
    """
    _, high = price_band(plan, slot)
    max_price = high or budget_ceiling(plan)
    tags = slot_keywords(plan, slot)

    candidates = seed.lookup(slot, plan.region, max_price, tags)
    if not candidates and tags:
        candidates = seed.lookup(slot, plan.region, max_price, None)

    report = validate_many(candidates, fallback_slot=slot)
    if report.rejected:
        logger.warning(f"[Assembler] Seed items rejected for {slot}: {report.rejected}")
    return [p for p in report.products if p.slot == slot]


def slot_label(plan: StylePlan, slot: str) -> str:
    slot_plan = plan.slot_plan(slot)
    if slot_plan and slot_plan.category.strip():
        return slot_plan.category.strip()
    return SLOT_LABELS.get(slot, slot.title())


def assemble(
    plan: StylePlan,
    pool: Dict[str, List[StrictProduct]],
    seed: Optional[SeedCatalogAdapter] = None
) -> AssembledOutfit:
    """
    Build the outfit for a plan from a validated pool.

    Args:
        plan: The style plan
        pool: Validated products keyed by slot, in first-seen order
        seed: Seed catalog used when a slot has no usable live product
              (None disables the fallback)

    Returns:
        AssembledOutfit with picks in plan slot order
    """
    outfit = AssembledOutfit()

    for slot in plan.required_slots:
        pick = SlotPick(slot=slot, label=slot_label(plan, slot))
        ranked = rank_slot(plan, slot, dedupe(pool.get(slot, [])))

        if not ranked and seed is not None:
            ranked = rank_slot(plan, slot, seed_candidates(plan, slot, seed))
            if ranked:
                pick.from_fallback = True
                outfit.fallback_slots.append(slot)
                logger.info(f"[Assembler] {slot}: using seed catalog ({len(ranked)} items)")

        if ranked:
            pick.primary = ranked[0]
            pick.alternate = ranked[1] if len(ranked) > 1 else None
        else:
            outfit.missing_slots.append(slot)
            logger.info(f"[Assembler] {slot}: no eligible product")

        outfit.picks.append(pick)

    return outfit


# ============================================================================
# Rendering
# ============================================================================

def format_price(price: float) -> str:
    return f"{price:.0f}" if float(price).is_integer() else f"{price:.2f}"


def brand_item(product: StrictProduct) -> str:
    if product.title.lower().startswith(product.brand.lower()):
        return product.title
    return f"{product.brand} {product.title}"


def render_line(label: str, product: StrictProduct) -> str:
    return (
        f"- {label} — {brand_item(product)} "
        f"({product.currency} {format_price(product.price)}, {product.retailer}) "
        f"· {product.affiliate_url} · Image: {product.image}"
    )


def render_outfit_text(picks: List[SlotPick]) -> str:
    """
    Textual outfit, one bullet per picked slot in canonical slot order.
    Readable by services.outfit_parser.parse_outfit.
    """
    order = {slot: i for i, slot in enumerate(SLOT_ORDER)}
    lines = ["Outfit:"]
    for pick in sorted(picks, key=lambda p: order.get(p.slot, len(order))):
        if pick.primary:
            lines.append(render_line(pick.label, pick.primary))
    return "\n".join(lines)
