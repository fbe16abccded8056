"""
Tests for the in-memory job registry and result cache.
"""
import threading

from contracts.models import LookResult, StrictProduct, StylePlan
from services.job_store import JobStore, fingerprint


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def make_plan(look_id="look-1", **overrides) -> StylePlan:
    fields = dict(
        look_id=look_id,
        aesthetic_read="clean evening minimalism",
        required_slots=["top", "shoe"],
        search_queries=[
            {"slot": "top", "query": "black silk cami"},
            {"slot": "shoe", "query": "black slingback pumps"},
        ],
        budget_total=500,
        currency="EUR",
        preferences={"country": "NL"},
    )
    fields.update(overrides)
    return StylePlan(**fields)


def make_product(pid="p1", slot="top") -> StrictProduct:
    return StrictProduct(
        id=pid, title="Silk Cami", brand="COS", price=69.0, currency="EUR",
        image="https://media.cos.com/a/1.jpg", url="https://www.cos.com/p/1.html",
        affiliate_url="https://www.cos.com/p/1.html", retailer="cos.com",
        availability="InStock", category="Top", slot=slot,
    )


def make_result(look_id="look-1") -> LookResult:
    return LookResult(look_id=look_id, status="complete", message="done", currency="EUR")


def test_create_and_get_returns_snapshot():
    store = JobStore(clock=FakeClock())
    job = store.create_job(make_plan())

    assert job.id == "look-1"
    assert job.status == "queued"
    assert job.created_at == job.updated_at == 1000.0

    snapshot = store.get_job("look-1")
    snapshot.logs.append("mutated outside the store")
    snapshot.progress["top"] = 99
    assert store.get_job("look-1").logs == []
    assert store.get_job("look-1").progress == {}


def test_update_job_merges_and_refreshes_updated_at():
    clock = FakeClock()
    store = JobStore(clock=clock)
    store.create_job(make_plan())

    clock.t = 1005.0
    updated = store.update_job("look-1", status="running")

    assert updated.status == "running"
    assert updated.updated_at == 1005.0
    assert updated.created_at == 1000.0


def test_update_unknown_job_is_noop():
    store = JobStore(clock=FakeClock())
    assert store.update_job("missing", status="running") is None
    assert store.get_job("missing") is None


def test_logs_and_errors_are_bounded():
    store = JobStore(clock=FakeClock(), log_limit=3)
    store.create_job(make_plan())

    for i in range(5):
        store.append_log("look-1", f"line {i}")
        store.append_error("look-1", "web", "top", f"error {i}")

    job = store.get_job("look-1")
    assert job.logs == ["line 2", "line 3", "line 4"]
    assert [e.message for e in job.errors] == ["error 2", "error 3", "error 4"]


def test_pool_deduplicates_by_id():
    store = JobStore(clock=FakeClock())
    store.create_job(make_plan())

    store.add_to_pool("look-1", "top", [make_product("a"), make_product("b")])
    store.add_to_pool("look-1", "top", [make_product("b"), make_product("c")])
    store.set_progress("look-1", "top", 3)

    job = store.get_job("look-1")
    assert [p.id for p in job.pool["top"]] == ["a", "b", "c"]
    assert job.progress == {"top": 3}
    assert "pool" not in job.to_payload()


def test_evict_job():
    store = JobStore(clock=FakeClock())
    store.create_job(make_plan())

    assert store.evict_job("look-1")
    assert store.get_job("look-1") is None
    assert not store.evict_job("look-1")


def test_fingerprint_ignores_look_id():
    assert fingerprint(make_plan("a")) == fingerprint(make_plan("b"))


def test_fingerprint_depends_on_budget_currency_region_and_order():
    base = fingerprint(make_plan())
    assert fingerprint(make_plan(budget_total=600)) != base
    assert fingerprint(make_plan(currency="USD")) != base
    assert fingerprint(make_plan(preferences={"country": "DE"})) != base
    assert fingerprint(make_plan(required_slots=["shoe", "top"])) != base


def test_fingerprint_uses_slot_keywords_when_no_query():
    plan_a = make_plan(search_queries=[], per_slot=[{"slot": "top", "category": "Top", "keywords": ["silk"]}])
    plan_b = make_plan(search_queries=[], per_slot=[{"slot": "top", "category": "Top", "keywords": ["wool"]}])
    assert fingerprint(plan_a) != fingerprint(plan_b)


def test_cache_expires_after_ttl():
    clock = FakeClock()
    store = JobStore(clock=clock, ttl=900)
    store.set_cached("fp", make_result())

    clock.t += 899
    assert store.get_cached("fp") is not None

    clock.t += 1
    assert store.get_cached("fp") is None
    # Purged: stays gone even if the clock went backwards
    clock.t = 1000.0
    assert store.get_cached("fp") is None


def test_cache_custom_ttl():
    clock = FakeClock()
    store = JobStore(clock=clock)
    store.set_cached("fp", make_result(), ttl=10)

    clock.t += 11
    assert store.get_cached("fp") is None


def test_update_job_if_only_applies_in_expected_status():
    clock = FakeClock()
    store = JobStore(clock=clock)
    store.create_job(make_plan())
    store.update_job("look-1", status="running")

    clock.t = 1010.0
    assert store.update_job_if("look-1", "running", status="partial").status == "partial"

    store.update_job("look-1", status="complete", result=make_result())
    clock.t = 1020.0
    assert store.update_job_if("look-1", "running", status="partial") is None
    job = store.get_job("look-1")
    assert job.status == "complete"
    assert job.updated_at == 1010.0

    assert store.update_job_if("missing", "running", status="partial") is None


def test_concurrent_writers_lose_nothing():
    store = JobStore(log_limit=1000)
    store.create_job(make_plan())
    threads, rounds = 8, 25
    start = threading.Barrier(threads)

    def writer(n):
        start.wait()
        for i in range(rounds):
            store.update_job("look-1", status="running")
            store.append_log("look-1", f"writer {n} line {i}")
            store.append_error("look-1", f"shop-{n}", "top", f"error {i}")
            store.set_progress("look-1", f"slot-{n}", i + 1)
            store.add_to_pool("look-1", "top", [make_product(f"p-{n}-{i}"), make_product("shared")])

    workers = [threading.Thread(target=writer, args=(n,)) for n in range(threads)]
    for t in workers:
        t.start()
    for t in workers:
        t.join(timeout=10)

    job = store.get_job("look-1")
    assert job.status == "running"
    assert len(job.logs) == len(set(job.logs)) == threads * rounds
    assert len(job.errors) == threads * rounds
    assert {(e.retailer, e.message) for e in job.errors} == {
        (f"shop-{n}", f"error {i}") for n in range(threads) for i in range(rounds)
    }
    assert job.progress == {f"slot-{n}": rounds for n in range(threads)}
    pooled = [p.id for p in job.pool["top"]]
    assert len(pooled) == len(set(pooled)) == threads * rounds + 1
