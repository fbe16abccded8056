# services/product_validator.py
"""
Strict product validation.

Turns raw provider Candidates into StrictProducts or rejects them with a
reason code. This is a strict filter: nothing is coerced beyond whitespace
trimming and case normalization of currency and retailer.

Rejection reasons:
- missing_id / missing_title / missing_brand
- invalid_price (missing, non-finite or <= 0)
- invalid_currency (not a 3-letter code)
- invalid_url / invalid_affiliate_url / invalid_image (not absolute http(s),
  or a bare origin with no path)
- missing_availability / missing_category / missing_retailer
- retailer_mismatch (host-shaped retailer disagrees with the affiliate host)
"""
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from contracts.models import Candidate, StrictProduct
from services.url_utils import host_of
from services.slot_resolver import resolve_slot

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


@dataclass
class ValidationOutcome:
    """Result of validating one candidate"""
    product: Optional[StrictProduct] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.product is not None


@dataclass
class ValidationReport:
    """Result of validating a batch"""
    products: List[StrictProduct] = field(default_factory=list)
    rejected: Dict[str, int] = field(default_factory=dict)

    @property
    def rejected_total(self) -> int:
        return sum(self.rejected.values())


def _text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def valid_url(value) -> Optional[str]:
    """
    Absolute http(s) URL with a real path, else None.
    """
    text = _text(value)
    if not text:
        return None
    try:
        parsed = urlparse(text)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    if parsed.path in ("", "/") or not parsed.path.strip():
        return None
    return text


def normalize_currency(value) -> Optional[str]:
    text = _text(value)
    if not text:
        return None
    cur = text.upper()
    return cur if _CURRENCY_RE.match(cur) else None


def is_provider_tagged(retailer: str) -> bool:
    """Provider-tagged retailers look like 'awin:1234' (a colon, no dot)."""
    return ":" in retailer and "." not in retailer


def normalize_retailer(value, url: str) -> Optional[str]:
    """
    Trim and lowercase a retailer; host-shaped names lose a leading 'www.'.
    Provider-tagged retailers are kept verbatim. Missing retailers fall back
    to the product URL host.
    """
    text = _text(value)
    if text:
        if is_provider_tagged(text):
            return text
        text = text.lower()
        if "." in text and text.startswith("www."):
            text = text[4:]
        return text
    return host_of(url)


def retailer_matches_url(retailer: str, url: str) -> bool:
    """
    Host-shaped retailers must equal the URL host or be a parent domain of it.
    Retailers without a dot (plain names, provider tags) always match.
    """
    if "." not in retailer:
        return True
    host = host_of(url)
    if not host:
        return False
    r = retailer.lower()
    if r.startswith("www."):
        r = r[4:]
    return host == r or host.endswith("." + r)


def _price(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    price = float(value)
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def validate(candidate: Candidate, fallback_slot: Optional[str] = None) -> ValidationOutcome:
    """
    Validate one candidate.

    Args:
        candidate: Raw provider record
        fallback_slot: Slot to assign when the category does not resolve to one
                       (usually the slot that was being searched)

    Returns:
        ValidationOutcome with either a StrictProduct or a reason code
    """
    pid = _text(candidate.id)
    if not pid:
        return ValidationOutcome(reason="missing_id")

    title = _text(candidate.title)
    if not title:
        return ValidationOutcome(reason="missing_title")

    brand = _text(candidate.brand)
    if not brand:
        return ValidationOutcome(reason="missing_brand")

    price = _price(candidate.price)
    if price is None:
        return ValidationOutcome(reason="invalid_price")

    currency = normalize_currency(candidate.currency)
    if not currency:
        return ValidationOutcome(reason="invalid_currency")

    url = valid_url(candidate.url)
    if not url:
        return ValidationOutcome(reason="invalid_url")

    affiliate = valid_url(candidate.affiliate_url if candidate.affiliate_url is not None else candidate.url)
    if not affiliate:
        return ValidationOutcome(reason="invalid_affiliate_url")

    image = valid_url(candidate.image)
    if not image:
        return ValidationOutcome(reason="invalid_image")

    availability = _text(candidate.availability)
    if not availability:
        return ValidationOutcome(reason="missing_availability")

    category = _text(candidate.category)
    if not category:
        return ValidationOutcome(reason="missing_category")

    retailer = normalize_retailer(candidate.retailer, url)
    if not retailer:
        return ValidationOutcome(reason="missing_retailer")
    if not is_provider_tagged(retailer) and not retailer_matches_url(retailer, affiliate):
        return ValidationOutcome(reason="retailer_mismatch")

    slot = resolve_slot(category, candidate.slot or fallback_slot)
    if not slot:
        return ValidationOutcome(reason="missing_category")

    return ValidationOutcome(product=StrictProduct(
        id=pid,
        title=title,
        brand=brand,
        price=price,
        currency=currency,
        image=image,
        url=url,
        affiliate_url=affiliate,
        retailer=retailer,
        availability=availability,
        category=category,
        slot=slot,
        source=candidate.source,
        tags=list(candidate.tags),
    ))


def validate_many(
    candidates: Iterable[Candidate],
    fallback_slot: Optional[str] = None
) -> ValidationReport:
    """Validate a batch; keeps input order and counts rejections by reason."""
    report = ValidationReport()
    reasons: Counter = Counter()
    for candidate in candidates:
        outcome = validate(candidate, fallback_slot)
        if outcome.ok:
            report.products.append(outcome.product)
        else:
            reasons[outcome.reason] += 1
    report.rejected = dict(reasons)
    return report

