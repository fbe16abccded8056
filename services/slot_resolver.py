# services/slot_resolver.py
"""
Maps free-text product categories onto outfit slots.
"""
import re
from typing import Optional

from contracts.models import SLOT_ORDER

# ============================================================================
# Slot Definitions
# ============================================================================

# Checked in this order; "dress" before "top" so "shirt dress" lands on dress.
SLOT_KEYWORDS = {
    "dress": ["dress", "dresses", "gown", "jumpsuit", "romper", "playsuit", "one_piece", "one-piece"],
    "shoe": ["shoe", "shoes", "footwear", "boot", "boots", "heel", "heels", "pump", "pumps",
             "sneaker", "sneakers", "loafer", "loafers", "sandal", "sandals", "mule", "mules", "flats"],
    "accessory": ["accessory", "accessories", "bag", "bags", "clutch", "handbag", "tote",
                  "jewelry", "jewellery", "earrings", "necklace", "bracelet", "ring",
                  "belt", "scarf", "hat", "sunglasses", "watch"],
    "anchor": ["anchor", "outerwear", "coat", "coats", "blazer", "blazers", "jacket",
               "jackets", "trench", "cape", "suit"],
    "bottom": ["bottom", "bottoms", "trouser", "trousers", "pants", "jeans", "skirt",
               "skirts", "shorts", "culottes", "leggings"],
    "top": ["top", "tops", "shirt", "shirts", "blouse", "blouses", "knit", "knitwear",
            "sweater", "sweaters", "tee", "t-shirt", "tank", "cami", "bodysuit",
            "turtleneck", "cardigan"],
}

_WORD_RE = re.compile(r"[a-z_\-]+")


def resolve_slot(category: Optional[str], fallback: Optional[str] = None) -> Optional[str]:
    """
    Resolve a category ("Shoes", "Knitwear", "dress") to a slot name.

    Exact slot names win, then keyword matches; otherwise the fallback
    (normally the slot being searched) is used.
    """
    if category:
        text = category.strip().lower()
        if text in SLOT_ORDER:
            return text
        words = set(_WORD_RE.findall(text))
        for slot, keywords in SLOT_KEYWORDS.items():
            if words.intersection(keywords):
                return slot
    if fallback in SLOT_ORDER:
        return fallback
    return None
