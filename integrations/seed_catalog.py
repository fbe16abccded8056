"""
Static seed catalog.

A small curated, slot-tagged list of real-shaped products used only as the
last-resort fallback when live search yields nothing for a slot. Every entry
passes strict validation as-is.
"""

import logging
from typing import Dict, List, Optional

from contracts.models import Candidate
from integrations.base import ProviderAdapter, SearchOptions

logger = logging.getLogger(__name__)


SEED_CATALOG: List[Dict] = [
    # ---- NL / EUR ----
    {
        "id": "seed-nl-cos-wool-blazer", "slot": "anchor", "category": "Blazer", "region": "NL",
        "brand": "COS", "title": "Relaxed Wool Blazer", "price": 225.0, "currency": "EUR",
        "retailer": "cos.com",
        "url": "https://www.cos.com/en-nl/women/blazers/product.relaxed-wool-blazer-black.1203647001.html",
        "image": "https://media.cos.com/assets/001/relaxed-wool-blazer-black.jpg",
        "tags": ["tailored", "minimal", "office", "black", "wool"],
    },
    {
        "id": "seed-nl-zara-trench", "slot": "anchor", "category": "Coat", "region": "NL",
        "brand": "Zara", "title": "Belted Trench Coat", "price": 89.95, "currency": "EUR",
        "retailer": "zara.com",
        "url": "https://www.zara.com/nl/en/belted-trench-coat-p02753250.html",
        "image": "https://static.zara.net/photos/2024/I/0/1/p/2753/250/710/2/belted-trench-coat.jpg",
        "tags": ["classic", "beige", "street", "minimal"],
    },
    {
        "id": "seed-nl-stories-silk-cami", "slot": "top", "category": "Top", "region": "NL",
        "brand": "& Other Stories", "title": "Silk Cami Top", "price": 69.0, "currency": "EUR",
        "retailer": "stories.com",
        "url": "https://www.stories.com/en_eur/clothing/tops/product.silk-cami-top-black.1187466001.html",
        "image": "https://media.stories.com/assets/002/silk-cami-top-black.jpg",
        "tags": ["evening", "silk", "black", "minimal", "gala"],
    },
    {
        "id": "seed-nl-cos-ribbed-knit", "slot": "top", "category": "Knitwear", "region": "NL",
        "brand": "COS", "title": "Ribbed Merino Turtleneck", "price": 79.0, "currency": "EUR",
        "retailer": "cos.com",
        "url": "https://www.cos.com/en-nl/women/knitwear/product.ribbed-merino-turtleneck-ivory.1199865002.html",
        "image": "https://media.cos.com/assets/003/ribbed-merino-turtleneck-ivory.jpg",
        "tags": ["minimal", "ivory", "knit", "office"],
    },
    {
        "id": "seed-nl-zara-wide-trousers", "slot": "bottom", "category": "Trousers", "region": "NL",
        "brand": "Zara", "title": "High-Waist Wide Leg Trousers", "price": 45.95, "currency": "EUR",
        "retailer": "zara.com",
        "url": "https://www.zara.com/nl/en/high-waist-wide-leg-trousers-p07385401.html",
        "image": "https://static.zara.net/photos/2024/I/0/1/p/7385/401/800/2/wide-leg-trousers.jpg",
        "tags": ["tailored", "black", "office", "minimal"],
    },
    {
        "id": "seed-nl-stories-satin-skirt", "slot": "bottom", "category": "Skirt", "region": "NL",
        "brand": "& Other Stories", "title": "Satin Midi Slip Skirt", "price": 79.0, "currency": "EUR",
        "retailer": "stories.com",
        "url": "https://www.stories.com/en_eur/clothing/skirts/product.satin-midi-slip-skirt-red.1154310003.html",
        "image": "https://media.stories.com/assets/004/satin-midi-slip-skirt-red.jpg",
        "tags": ["evening", "satin", "red", "gala", "red carpet"],
    },
    {
        "id": "seed-nl-cos-column-dress", "slot": "dress", "category": "Dress", "region": "NL",
        "brand": "COS", "title": "Draped Column Maxi Dress", "price": 190.0, "currency": "EUR",
        "retailer": "cos.com",
        "url": "https://www.cos.com/en-nl/women/dresses/product.draped-column-maxi-dress-red.1210081003.html",
        "image": "https://media.cos.com/assets/005/draped-column-maxi-dress-red.jpg",
        "tags": ["evening", "gala", "red carpet", "red", "draped"],
    },
    {
        "id": "seed-nl-zara-satin-dress", "slot": "dress", "category": "Dress", "region": "NL",
        "brand": "Zara", "title": "Satin Effect Slip Dress", "price": 59.95, "currency": "EUR",
        "retailer": "zara.com",
        "url": "https://www.zara.com/nl/en/satin-effect-slip-dress-p02183152.html",
        "image": "https://static.zara.net/photos/2024/I/0/1/p/2183/152/800/2/satin-slip-dress.jpg",
        "tags": ["evening", "satin", "black", "minimal"],
    },
    {
        "id": "seed-nl-stories-slingback", "slot": "shoe", "category": "Heels", "region": "NL",
        "brand": "& Other Stories", "title": "Leather Slingback Pumps", "price": 129.0, "currency": "EUR",
        "retailer": "stories.com",
        "url": "https://www.stories.com/en_eur/shoes/heels/product.leather-slingback-pumps-black.1176543001.html",
        "image": "https://media.stories.com/assets/006/leather-slingback-pumps-black.jpg",
        "tags": ["evening", "black", "leather", "office", "gala"],
    },
    {
        "id": "seed-nl-cos-loafers", "slot": "shoe", "category": "Shoes", "region": "NL",
        "brand": "COS", "title": "Chunky Leather Loafers", "price": 150.0, "currency": "EUR",
        "retailer": "cos.com",
        "url": "https://www.cos.com/en-nl/women/shoes/product.chunky-leather-loafers-black.1139987001.html",
        "image": "https://media.cos.com/assets/007/chunky-leather-loafers-black.jpg",
        "tags": ["minimal", "black", "leather", "street"],
    },
    {
        "id": "seed-nl-zara-clutch", "slot": "accessory", "category": "Bag", "region": "NL",
        "brand": "Zara", "title": "Metallic Box Clutch", "price": 35.95, "currency": "EUR",
        "retailer": "zara.com",
        "url": "https://www.zara.com/nl/en/metallic-box-clutch-p16309410.html",
        "image": "https://static.zara.net/photos/2024/I/1/1/p/1630/941/303/2/metallic-box-clutch.jpg",
        "tags": ["evening", "gala", "gold", "metallic"],
    },
    {
        "id": "seed-nl-stories-earrings", "slot": "accessory", "category": "Jewellery", "region": "NL",
        "brand": "& Other Stories", "title": "Sculptural Drop Earrings", "price": 29.0, "currency": "EUR",
        "retailer": "stories.com",
        "url": "https://www.stories.com/en_eur/accessories/jewellery/product.sculptural-drop-earrings-gold.1198004001.html",
        "image": "https://media.stories.com/assets/008/sculptural-drop-earrings-gold.jpg",
        "tags": ["evening", "gold", "red carpet", "minimal"],
    },

    # ---- US / USD ----
    {
        "id": "seed-us-jcrew-blazer", "slot": "anchor", "category": "Blazer", "region": "US",
        "brand": "J.Crew", "title": "Parke Blazer in Italian Stretch Wool", "price": 298.0, "currency": "USD",
        "retailer": "jcrew.com",
        "url": "https://www.jcrew.com/p/womens/categories/clothing/blazers/parke-blazer/BF447",
        "image": "https://www.jcrew.com/s7-img-facade/BF447_BK0001",
        "tags": ["tailored", "office", "black", "wool"],
    },
    {
        "id": "seed-us-everlane-tee", "slot": "top", "category": "Top", "region": "US",
        "brand": "Everlane", "title": "The Organic Cotton Box-Cut Tee", "price": 30.0, "currency": "USD",
        "retailer": "everlane.com",
        "url": "https://www.everlane.com/products/womens-box-cut-tee-white",
        "image": "https://media.everlane.com/images/womens-box-cut-tee-white.jpg",
        "tags": ["minimal", "white", "street", "cotton"],
    },
    {
        "id": "seed-us-levis-501", "slot": "bottom", "category": "Jeans", "region": "US",
        "brand": "Levi's", "title": "501 Original Fit Women's Jeans", "price": 79.5, "currency": "USD",
        "retailer": "levi.com",
        "url": "https://www.levi.com/US/en_US/clothing/women/jeans/501-original-fit-womens-jeans/p/125010404",
        "image": "https://lsco.scene7.com/is/image/lsco/125010404-front-pdp",
        "tags": ["street", "denim", "blue", "classic"],
    },
    {
        "id": "seed-us-revolve-gown", "slot": "dress", "category": "Gown", "region": "US",
        "brand": "Lovers and Friends", "title": "Cara Satin Gown", "price": 248.0, "currency": "USD",
        "retailer": "revolve.com",
        "url": "https://www.revolve.com/lovers-and-friends-cara-gown/dp/LOVF-WD3381/",
        "image": "https://is4.revolveassets.com/images/p4/n/z/LOVF-WD3381_V1.jpg",
        "tags": ["evening", "gala", "red carpet", "red", "satin"],
    },
    {
        "id": "seed-us-nordstrom-pump", "slot": "shoe", "category": "Heels", "region": "US",
        "brand": "Sam Edelman", "title": "Hazel Pointed Toe Pump", "price": 130.0, "currency": "USD",
        "retailer": "nordstrom.com",
        "url": "https://www.nordstrom.com/s/sam-edelman-hazel-pointed-toe-pump/4329563",
        "image": "https://n.nordstrommedia.com/id/sr3/hazel-pointed-toe-pump.jpeg",
        "tags": ["evening", "office", "black", "leather"],
    },
    {
        "id": "seed-us-madewell-tote", "slot": "accessory", "category": "Bag", "region": "US",
        "brand": "Madewell", "title": "The Zip-Top Essential Tote", "price": 168.0, "currency": "USD",
        "retailer": "madewell.com",
        "url": "https://www.madewell.com/the-zip-top-essential-tote-in-leather-NA025.html",
        "image": "https://www.madewell.com/images/NA025_BR6012_m.jpg",
        "tags": ["minimal", "leather", "office", "brown"],
    },
]


def search_catalog(
    slot: str,
    region: Optional[str] = None,
    max_price: Optional[float] = None,
    tags: Optional[List[str]] = None,
    catalog: Optional[List[Dict]] = None
) -> List[Dict]:
    """
    Catalog entries for a slot, in catalog order.

    Args:
        slot: Slot name to match exactly
        region: ISO-2 region; empty matches every region
        max_price: Upper price bound; None or 0 means no bound
        tags: Keep items sharing any tag (or containing it in the title);
              empty keeps everything
        catalog: Entries to search (defaults to SEED_CATALOG)
    """
    region = (region or "").upper()
    wanted = [t.lower() for t in (tags or []) if t]

    items = []
    for item in (SEED_CATALOG if catalog is None else catalog):
        if item["slot"] != slot:
            continue
        if region and item["region"].upper() != region:
            continue
        if max_price and item["price"] > max_price:
            continue
        if wanted:
            item_tags = [t.lower() for t in item["tags"]]
            title = item["title"].lower()
            if not any(t in item_tags or t in title for t in wanted):
                continue
        items.append(item)
    return items


def to_candidate(item: Dict) -> Candidate:
    return Candidate(
        id=item["id"],
        title=item["title"],
        brand=item["brand"],
        price=item["price"],
        currency=item["currency"],
        image=item["image"],
        url=item["url"],
        affiliate_url=item["url"],
        retailer=item["retailer"],
        availability="InStock",
        category=item["category"],
        slot=item["slot"],
        source="seed",
        tags=list(item["tags"]),
    )


class SeedCatalogAdapter(ProviderAdapter):
    """Last-resort static catalog; never queried during live search"""

    key = "seed"

    def __init__(self, catalog: Optional[List[Dict]] = None):
        self.catalog = catalog

    async def _search(self, query: str, options: SearchOptions) -> List[Candidate]:
        return self.lookup(options.slot, options.region, options.max_price, options.tags)[:options.limit]

    def lookup(
        self,
        slot: Optional[str],
        region: Optional[str] = None,
        max_price: Optional[float] = None,
        tags: Optional[List[str]] = None
    ) -> List[Candidate]:
        """Synchronous lookup used by the assembler."""
        if not slot:
            return []
        items = search_catalog(slot, region, max_price, tags, catalog=self.catalog)
        logger.debug(f"[Seed] {len(items)} catalog items for slot={slot} region={region}")
        return [to_candidate(item) for item in items]
