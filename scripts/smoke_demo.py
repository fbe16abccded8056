# scripts/smoke_demo.py
"""
Smoke test / demo script for the look pipeline.
Submits the demo plan through LookService, polls until the job settles and
prints the look as a table.
"""
import os
import sys
import time
from dotenv import load_dotenv
from tabulate import tabulate

# Load environment variables
load_dotenv()

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from main import demo_plan
from services.look_service import get_look_service

TERMINAL = {"complete", "failed"}


def wait_for(service, job_id: str, timeout: float = 90.0, interval: float = 1.0) -> dict:
    """Poll until the job is terminal (or partial with a result)."""
    deadline = time.time() + timeout
    payload = service.poll(job_id)
    while time.time() < deadline:
        if payload["status"] in TERMINAL or (payload["status"] == "partial" and payload["result"]):
            break
        time.sleep(interval)
        payload = service.poll(job_id)
    return payload


def print_look(payload: dict):
    result = payload.get("result")
    print(f"Status: {payload['status']}  progress: {payload['progress']}")

    if payload["errors"]:
        print()
        print(tabulate(
            [[e["retailer"], e["slot"], e["message"]] for e in payload["errors"]],
            headers=["Provider", "Slot", "Error"],
            tablefmt="grid"
        ))

    if not result:
        print("\nNo result.")
        return

    table_data = [
        [p["slot"], p["brand"], p["title"][:40], f"{p['currency']} {p['price']:.2f}", p["retailer"], p["source"]]
        for p in result["slots"]
    ]
    print()
    print(tabulate(table_data, headers=["Slot", "Brand", "Title", "Price", "Retailer", "Source"], tablefmt="grid"))
    print(f"\nTotal: {result['currency']} {result['total_price']}")
    if result["missing_slots"]:
        print(f"Missing: {', '.join(result['missing_slots'])}")
    if result["note"]:
        print(f"Note: {result['note']}")
    print()
    print(result["message"])


def main():
    service = get_look_service()

    print("=" * 60)
    print("LOOK PIPELINE SMOKE DEMO")
    print("=" * 60)

    submitted = service.submit(demo_plan())
    print(f"Job: {submitted.job_id} (cached={submitted.cached})")

    payload = wait_for(service, submitted.job_id)
    print_look(payload)

    # Second submission of the same plan is served from the cache
    again = service.submit(demo_plan())
    print(f"\nResubmitted: {again.job_id} (cached={again.cached})")


if __name__ == "__main__":
    main()
