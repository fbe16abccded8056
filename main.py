# main.py
"""
Command-line entry point for the Lookbook look pipeline.
Runs one look job in the foreground:
1. Validate the plan
2. Concurrent per-slot search across providers
3. Strict validation of candidates
4. Budget-aware assembly (seed fallback when live data is missing)
"""
import asyncio
import json
import sys

from contracts.models import StylePlan
from services.job_store import JobStore
from services.look_service import parse_plan
from services.look_worker import LookWorker
from services.unified_search import get_unified_search


def demo_plan() -> dict:
    """
    A red-carpet look on a 1500 EUR budget, shopped in the Netherlands.
    """
    return {
        "look_id": "demo-zendaya-gala",
        "aesthetic_read": "Zendaya red carpet gala: sculpted, bold color, clean lines",
        "vibe_keywords": ["evening", "gala", "red carpet"],
        "required_slots": ["top", "bottom", "shoe", "accessory"],
        "per_slot": [
            {"slot": "top", "category": "Top", "keywords": ["silk", "cami"],
             "allowed_colors": ["black", "red"], "max_price": 300},
            {"slot": "bottom", "category": "Skirt", "keywords": ["satin", "midi", "skirt"],
             "allowed_colors": ["red", "black"], "max_price": 400},
            {"slot": "shoe", "category": "Heels", "keywords": ["pumps", "heels"],
             "banned_materials": ["pvc"], "max_price": 450},
            {"slot": "accessory", "category": "Accessory", "keywords": ["clutch", "earrings"],
             "max_price": 250},
        ],
        "budget_split": [
            {"slot": "top", "min": 50, "max": 300},
            {"slot": "bottom", "min": 50, "max": 400},
            {"slot": "shoe", "min": 80, "max": 450},
            {"slot": "accessory", "min": 20, "max": 250},
        ],
        "retailer_priority": ["cos.com", "zara.com", "stories.com"],
        "search_queries": [
            {"slot": "top", "query": "women black silk cami top"},
            {"slot": "bottom", "query": "women red satin midi skirt"},
            {"slot": "shoe", "query": "women black slingback pumps"},
            {"slot": "accessory", "query": "gold evening clutch"},
        ],
        "budget_total": 1500,
        "currency": "EUR",
        "allow_stretch": False,
        "preferences": {
            "gender": "female",
            "country": "NL",
            "budget": "€1500",
            "keywords": ["zendaya", "red carpet"],
            "prompt": "Zendaya red carpet gala look",
        },
    }


async def run_look_async(plan: StylePlan) -> dict:
    store = JobStore()
    worker = LookWorker(store, get_unified_search())
    store.create_job(plan)
    await worker.run(plan.look_id)
    return store.get_job(plan.look_id).to_payload()


def run_look(plan_input: dict) -> dict:
    """
    Run a look job to completion and return its polling payload.

    Args:
        plan_input: StylePlan as a dict

    Returns:
        dict polling payload (status, progress, errors, logs, result)
    """
    plan = parse_plan(plan_input)
    return asyncio.run(run_look_async(plan))


if __name__ == "__main__":
    if len(sys.argv) > 1:
        with open(sys.argv[1]) as f:
            plan_input = json.load(f)
    else:
        plan_input = demo_plan()

    print("=" * 60)
    print("LOOKBOOK LOOK PIPELINE")
    print("=" * 60)
    print()

    payload = run_look(plan_input)

    print(json.dumps(payload, indent=2, ensure_ascii=False))
