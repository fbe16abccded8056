"""
Tests for stylist copy. The OpenAI call is monkeypatched; nothing leaves the process.
"""
import asyncio

from contracts.models import StrictProduct, StylePlan
from services import stylist_copy
from services.stylist_copy import build_message, write_message


def make_plan() -> StylePlan:
    return StylePlan(
        look_id="look-1",
        aesthetic_read="Sculpted Evening Minimalism",
        required_slots=["top", "shoe"],
        currency="EUR",
        preferences={"country": "NL", "prompt": "Gala on Friday."},
    )


def product(slot, price, brand, title) -> StrictProduct:
    return StrictProduct(
        id=f"{slot}-1", title=title, brand=brand, price=price, currency="EUR",
        image="https://media.cos.com/a.jpg", url="https://www.cos.com/p/1.html",
        affiliate_url="https://www.cos.com/p/1.html", retailer="cos.com",
        availability="InStock", category=slot, slot=slot,
    )


PRODUCTS = [product("shoe", 129, "& Other Stories", "Slingback Pumps"), product("top", 69.5, "COS", "Silk Cami")]


def test_build_message_lists_picks_in_slot_order():
    message = build_message(make_plan(), PRODUCTS, [], 198.5)
    lines = message.splitlines()

    assert lines[0].startswith("Okay. Gala on Friday.")
    assert lines[1] == "We're going for sculpted evening minimalism."
    assert lines[3] == "Top: COS, Silk Cami, EUR 69.50, cos.com"
    assert lines[4] == "Footwear: & Other Stories, Slingback Pumps, EUR 129, cos.com"
    assert lines[5] == "Estimated total: EUR 198.50."


def test_build_message_mentions_missing_slots():
    message = build_message(make_plan(), PRODUCTS[:1], ["top"], None)
    assert "Estimated total: n/a." in message
    assert "I'm still missing top." in message


def test_write_message_disabled_returns_deterministic_copy(monkeypatch):
    def fail(draft):
        raise AssertionError("should not be called")

    monkeypatch.setattr(stylist_copy, "_complete", fail)
    text = asyncio.run(write_message(make_plan(), PRODUCTS, [], 198.5, enabled=False))
    assert text == build_message(make_plan(), PRODUCTS, [], 198.5)


def test_write_message_uses_model_copy(monkeypatch):
    monkeypatch.setattr(stylist_copy, "_complete", lambda draft: "A warmer note.")
    assert asyncio.run(write_message(make_plan(), PRODUCTS, [], 198.5, enabled=True)) == "A warmer note."


def test_write_message_falls_back_on_error_or_empty_answer(monkeypatch):
    draft = build_message(make_plan(), PRODUCTS, [], 198.5)

    def boom(draft):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(stylist_copy, "_complete", boom)
    assert asyncio.run(write_message(make_plan(), PRODUCTS, [], 198.5, enabled=True)) == draft

    monkeypatch.setattr(stylist_copy, "_complete", lambda draft: None)
    assert asyncio.run(write_message(make_plan(), PRODUCTS, [], 198.5, enabled=True)) == draft
