# services/stylist_copy.py
"""
Human-readable stylist message for a finished look.

The deterministic message is always available. When stylist copy is enabled
and an OpenAI key is configured, the mini model rewrites it in a warmer
voice; any failure falls back to the deterministic text.
"""
import asyncio
import logging
from typing import List, Optional

from openai import OpenAI

import config
from contracts.models import SLOT_ORDER, StrictProduct, StylePlan
from services.outfit_assembler import format_price

logger = logging.getLogger(__name__)

_LINE_LABELS = {
    "anchor": "Anchor",
    "shoe": "Footwear",
    "accessory": "Optional accent",
}

SYSTEM_PROMPT = """You are a concise personal stylist.
Rewrite the look summary you are given as a short, warm message to the client.
Keep every product, price and retailer exactly as given. Do not invent products,
links or prices. Plain text, at most 8 lines."""


def build_message(
    plan: StylePlan,
    products: List[StrictProduct],
    missing: List[str],
    total: Optional[float] = None
) -> str:
    """Deterministic stylist copy: opening, direction, one line per pick, total, note."""
    opening = f"Okay. {plan.preferences.prompt or 'I have got you.'} I'm balancing your budget with the silhouette you asked for."
    direction = f"We're going for {plan.aesthetic_read.strip().lower() or 'a clean, considered look'}."

    lines = []
    by_slot = {p.slot: p for p in products}
    for slot in SLOT_ORDER:
        item = by_slot.get(slot)
        if not item:
            continue
        label = _LINE_LABELS.get(slot, slot.capitalize())
        lines.append(f"{label}: {item.brand}, {item.title}, {item.currency} {format_price(item.price)}, {item.retailer}")

    total_line = f"Estimated total: {plan.currency} {format_price(total)}." if total else "Estimated total: n/a."
    if missing:
        note = f"I'm still missing {', '.join(missing)}. If you want, I can loosen the budget or colors to fill those."
    else:
        note = "If you want this sharper, tighten the palette by one shade; if softer, add texture."

    return "\n".join([opening, direction, "The look:", *lines, total_line, note])


def _complete(draft: str) -> Optional[str]:
    client = OpenAI(api_key=config.OPENAI_API_KEY)
    resp = client.chat.completions.create(
        model=config.OPENAI_MINI_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": draft},
        ],
        temperature=0.5,
        max_tokens=400
    )
    content = resp.choices[0].message.content
    return content.strip() if content else None


async def write_message(
    plan: StylePlan,
    products: List[StrictProduct],
    missing: List[str],
    total: Optional[float] = None,
    enabled: Optional[bool] = None
) -> str:
    """
    Stylist message for a result. Uses the OpenAI mini model when enabled,
    else (or on any error) the deterministic copy.
    """
    draft = build_message(plan, products, missing, total)
    enabled = config.ENABLE_STYLIST_COPY if enabled is None else enabled
    if not enabled or not products:
        return draft

    loop = asyncio.get_running_loop()
    try:
        text = await loop.run_in_executor(None, _complete, draft)
    except Exception as e:
        logger.warning(f"[Stylist] OpenAI copy failed, using deterministic message: {e}")
        return draft

    return text or draft
