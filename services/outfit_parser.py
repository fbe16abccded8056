# services/outfit_parser.py
"""
Recovers structured items from a textual outfit description.

Accepts both the assembler's own rendering and free-form stylist text:

    Outfit:
    - Top — Totême Contour Ribbed Top (EUR 190, net-a-porter.com) · https://... · Image: https://...
    • Shoes — Gianvito Rossi Pumps ($795) [shop](https://...)

Price, retailer, link and image are each optional.
"""
import re
from dataclasses import dataclass
from typing import List, Optional

_WS_RE = re.compile(r"\s+")
_SECTION_END_RE = re.compile(r"\n{2,}|\n[A-Z][^\n]{0,40}:")
_IMAGE_RE = re.compile(r"(?:Image|image|img)\s*[:=]\s*(https?:[^\s]+)")
_TRAILING_PUNCT = ".,;:!?"
_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\((https?:[^\s)]+)\)")
_URL_RE = re.compile(r"https?://[^\s)]+")
_LEADING_BULLET_RE = re.compile(r"^[-•·]\s*")
_PRICE_HINT_RE = re.compile(r"[€$£]|USD|EUR|GBP|CAD|AUD", re.IGNORECASE)

EM_DASH = "—"
MIDDLE_DOT = "·"


@dataclass
class OutfitItem:
    """One parsed outfit line"""
    category: str
    brand_item: str
    price: Optional[str] = None
    retailer: Optional[str] = None
    link: Optional[str] = None
    image: Optional[str] = None


def _clean(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def extract_section(text: str, header: str) -> str:
    """
    Body of a `Header:` section, up to a blank line or the next
    capitalized `Something:` heading. Whole text when the header is absent.
    """
    match = re.search(rf"{re.escape(header)}\s*:", text, re.IGNORECASE)
    if not match:
        return text
    rest = text[match.end():]
    end = _SECTION_END_RE.search(rest)
    return rest[:end.start()] if end else rest


def parse_line(line: str) -> Optional[OutfitItem]:
    """Parse one bullet line; None when it is not an outfit item."""
    line = line.strip()
    if not line or line[0] not in "-•" or EM_DASH not in line:
        return None

    dash = line.index(EM_DASH)
    category = _clean(re.sub(r"[•\-]", "", line[1:dash], count=1))
    if not category:
        return None

    rest = line[dash + 1:].strip()

    image = None
    image_match = _IMAGE_RE.search(rest)
    if image_match:
        image = image_match.group(1).rstrip(_TRAILING_PUNCT)
        rest = rest.replace(image_match.group(0), "", 1).strip()

    link = None
    markdown = _MARKDOWN_LINK_RE.search(rest)
    if markdown:
        link = markdown.group(2)
        rest = rest.replace(markdown.group(0), markdown.group(1), 1).strip()
    else:
        url_match = _URL_RE.search(rest)
        if url_match:
            link = url_match.group(0)
            rest = rest.replace(link, "", 1).strip()

    rest = _LEADING_BULLET_RE.sub("", rest).strip()

    # Only the text before the first separator holds the item; its last
    # parenthesised group is price/retailer, earlier ones belong to the title
    dot = rest.find(MIDDLE_DOT)
    head = rest[:dot] if dot != -1 else rest
    paren = head.rfind("(")
    brand_item = _clean(head[:paren] if paren != -1 else head)

    price = retailer = None
    if paren != -1:
        close = head.find(")", paren)
        if close != -1:
            parts = [_clean(p) for p in head[paren + 1:close].split(",")]
            parts = [p for p in parts if p]
            if len(parts) == 1:
                if _PRICE_HINT_RE.search(parts[0]):
                    price = parts[0]
                else:
                    retailer = parts[0]
            elif len(parts) >= 2:
                price = parts[0]
                retailer = ", ".join(parts[1:])

    return OutfitItem(
        category=category,
        brand_item=brand_item,
        price=price,
        retailer=retailer,
        link=link,
        image=image,
    )


def parse_outfit(text: str) -> List[OutfitItem]:
    """All outfit items found in the `Outfit:` section (or the whole text)."""
    if not text:
        return []
    block = extract_section(text, "Outfit")
    items = []
    for raw in re.split(r"\r?\n", block):
        item = parse_line(raw)
        if item:
            items.append(item)
    return items
