"""
Structured product extraction from HTML
=======================================

Pure parsing helpers for vendor product pages:
- schema.org Product / Offer blocks from JSON-LD (including @graph and ItemList)
- OpenGraph meta fallback when no JSON-LD product is present

No network access here; callers pass the page HTML in.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup

from services.url_utils import ensure_absolute_url, normalize_product_url

_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_WS_RE = re.compile(r"\s+")


@dataclass
class PageProduct:
    """Product data extracted from a page"""
    name: str
    brand: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    availability: Optional[str] = None
    seller: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None
    color: Optional[str] = None
    from_json_ld: bool = True


def clean_text(value: str) -> str:
    return _WS_RE.sub(" ", value.replace("\u0000", "")).strip()


def extract_json_ld_blocks(html: str) -> List[Any]:
    """Parse every application/ld+json script; malformed blocks are skipped."""
    soup = BeautifulSoup(html or "", "html.parser")
    blocks = []
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string if script.string is not None else script.get_text()
        if not raw:
            continue
        raw = _COMMENT_RE.sub("", raw).strip()
        try:
            blocks.append(json.loads(raw))
        except (json.JSONDecodeError, ValueError):
            continue
    return blocks


def flatten_graph(node: Any) -> Iterator[Dict]:
    """Yield every JSON-LD object, descending into @graph and ItemList."""
    if not node:
        return
    if isinstance(node, list):
        for item in node:
            yield from flatten_graph(item)
        return
    if not isinstance(node, dict):
        return
    if "@graph" in node:
        yield from flatten_graph(node["@graph"])
        return
    if node.get("@type") == "ItemList" and isinstance(node.get("itemListElement"), list):
        for element in node["itemListElement"]:
            if isinstance(element, dict):
                yield from flatten_graph(element.get("item") or element)
        return
    yield node


def _is_product(node: Dict) -> bool:
    schema_type = node.get("@type")
    types = schema_type if isinstance(schema_type, list) else [schema_type]
    return any(isinstance(t, str) and "product" in t.lower() for t in types)


def _first_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, list):
        for item in value:
            found = _first_string(item)
            if found:
                return found
    if isinstance(value, dict):
        # ImageObject / Brand / Organization
        return _first_string(value.get("url") or value.get("name"))
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip().replace(" ", "")
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        else:
            text = text.replace(",", "")
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _resolve_brand(brand: Any) -> Optional[str]:
    if isinstance(brand, str):
        return clean_text(brand) or None
    if isinstance(brand, dict):
        name = brand.get("name")
        return clean_text(name) if isinstance(name, str) and name.strip() else None
    if isinstance(brand, list) and brand:
        return _resolve_brand(brand[0])
    return None


def normalize_offer(offers: Any) -> Dict[str, Any]:
    """
    Reduce an Offer / AggregateOffer / list of offers to one price record.
    The first offer carrying a price wins.
    """
    result = {"price": None, "currency": None, "availability": None, "url": None, "seller": None}
    offer_list = offers if isinstance(offers, list) else [offers]

    for offer in offer_list:
        if not isinstance(offer, dict):
            continue
        price = _as_number(offer.get("price"))
        if price is None:
            price = _as_number(offer.get("lowPrice", offer.get("highPrice")))
        seller = offer.get("seller")
        result.update({
            "price": price,
            "currency": _first_string(offer.get("priceCurrency")),
            "availability": _first_string(offer.get("availability") or offer.get("itemAvailability")),
            "url": _first_string(offer.get("url")),
            "seller": seller if isinstance(seller, str) else _first_string(seller),
        })
        if price is not None:
            break

    return result


def extract_products_from_json_ld(html: str) -> List[PageProduct]:
    """All schema.org products found in a page's JSON-LD."""
    products = []
    for block in extract_json_ld_blocks(html):
        for node in flatten_graph(block):
            if not _is_product(node):
                continue

            offer = normalize_offer(node.get("offers"))
            image = _first_string(node.get("image"))
            url = _first_string(node.get("url")) or offer["url"]

            products.append(PageProduct(
                name=clean_text(_first_string(node.get("name")) or ""),
                brand=_resolve_brand(node.get("brand")),
                description=_first_string(node.get("description")),
                image=ensure_absolute_url(image) if image else None,
                url=normalize_product_url(url) if url else None,
                price=offer["price"],
                currency=offer["currency"],
                availability=offer["availability"],
                seller=offer["seller"],
                sku=_first_string(node.get("sku") or node.get("mpn") or node.get("gtin13")),
                category=_first_string(node.get("category")),
                color=_first_string(node.get("color")),
            ))

    return products


def extract_meta(html: str, name: str) -> Optional[str]:
    """Content of a <meta property=...> or <meta name=...> tag."""
    soup = BeautifulSoup(html or "", "html.parser")
    tag = soup.find("meta", attrs={"property": name}) or soup.find("meta", attrs={"name": name})
    if tag and tag.get("content"):
        return clean_text(tag["content"])
    return None


def parse_product_page(html: str, url: str) -> Optional[PageProduct]:
    """
    Best product on a vendor page: first JSON-LD product with a name,
    else OpenGraph title/image only.
    """
    og_title = extract_meta(html, "og:title")
    og_image = extract_meta(html, "og:image")

    for product in extract_products_from_json_ld(html):
        if not product.name and og_title:
            product.name = og_title
        if not product.name:
            continue
        if not product.image and og_image:
            product.image = ensure_absolute_url(og_image)
        if not product.url:
            product.url = normalize_product_url(url)
        return product

    if not og_title:
        return None

    return PageProduct(
        name=og_title,
        image=ensure_absolute_url(og_image) if og_image else None,
        url=normalize_product_url(url),
        price=_as_number(extract_meta(html, "product:price:amount")),
        currency=extract_meta(html, "product:price:currency"),
        from_json_ld=False,
    )
