"""Tests for the HTTP API."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from flipledger.api.server import create_app
from flipledger.domain.record import Record
from flipledger.importers.prefill import PrefillFields
from flipledger.importers.screenshot import ExtractedItem
from flipledger.matching.keyword_categories import KeywordRuleLayers
from flipledger.runtime.ai_service import AIServiceError
from flipledger.runtime.store import RecordStore

PURCHASE = Record(id="b", name="iPhone 13 Pro", date=date(2024, 7, 1), buy_price=Decimal("4200"), smart_tag="主机设备")
SALE = Record(
    id="s",
    name="iPhone 13 Pro Max",
    date=date(2024, 7, 5),
    sell_price=Decimal("4800"),
    is_sold=True,
    sell_date=date(2024, 7, 5),
    shipping_cost=Decimal("5.6"),
    shipping_method="STO",
    smart_tag="主机设备",
)


class StubAI:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.categorized: list[str] = []

    async def extract_screenshot_items(self, images: Sequence[tuple[str, bytes]], leg: str) -> list[ExtractedItem]:
        if self.fail:
            raise AIServiceError("down")
        return [ExtractedItem(name=filename, price=Decimal("10")) for filename, _ in images]

    async def extract_fields(self, text: str) -> PrefillFields:
        if self.fail:
            raise AIServiceError("down")
        return PrefillFields(name="Kindle", category="Books", buy_price=Decimal("450"))

    async def categorize(self, names: Sequence[str]) -> dict[str, str]:
        self.categorized.extend(names)
        if self.fail:
            raise AIServiceError("down")
        return {name: "测试" for name in names}

    async def write_report(self, payload: Mapping[str, Any]) -> str:
        if self.fail:
            raise AIServiceError("down")
        return "Report"


@pytest.fixture
def store() -> RecordStore:
    return RecordStore([PURCHASE, SALE])


@pytest.fixture
def ai() -> StubAI:
    return StubAI()


@pytest.fixture
def client(store: RecordStore, ai: StubAI, bundled_rules: KeywordRuleLayers):
    app = create_app(store=store, ai_client=ai, rule_layers=bundled_rules)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_list_records_with_counts(client: TestClient) -> None:
    response = client.get("/records", params={"state": "inventory"})

    assert response.status_code == 200
    body = response.json()
    assert [r["id"] for r in body["records"]] == ["b"]
    assert body["counts"] == {"INVENTORY": 1, "ORPHAN_SALE": 1, "CLOSED_LOOP": 0, "UNCLASSIFIED": 0}


def test_list_records_rejects_unknown_state(client: TestClient) -> None:
    response = client.get("/records", params={"state": "bogus"})
    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_create_record_and_auto_tag(store: RecordStore, ai: StubAI, bundled_rules: KeywordRuleLayers) -> None:
    app = create_app(store=store, ai_client=ai, rule_layers=bundled_rules)
    with TestClient(app) as client:
        response = client.post("/records", json={"id": "n", "name": "Desk lamp", "buyPrice": 30})
        assert response.status_code == 201
        assert response.json()["record"]["buyPrice"] == 30
        assert client.post("/records", json={"id": "n", "name": "Other"}).status_code == 409

    assert store.snapshot()[0].id == "n"
    assert store.get("n").smart_tag == "测试"
    assert "Desk lamp" in ai.categorized


def test_patch_record(client: TestClient, store: RecordStore) -> None:
    response = client.patch("/records/b", json={"field": "buyPrice", "value": "4100"})
    assert response.status_code == 200
    assert store.get("b").buy_price == Decimal("4100")

    assert client.patch("/records/missing", json={"field": "name", "value": "x"}).status_code == 404
    assert client.patch("/records/b", json={"field": "bogus", "value": 1}).status_code == 400
    assert client.patch("/records/b", json={"value": 1}).status_code == 400


def test_candidates_ranked_against_anchor(client: TestClient) -> None:
    body = client.get("/match/candidates", params={"anchor_id": "b"}).json()

    assert body["anchor"]["id"] == "b"
    assert [r["id"] for r in body["purchases"]] == ["b"]
    assert body["sales"][0]["record"]["id"] == "s"
    assert body["sales"][0]["score"] > 0


def test_merge_and_split_round_trip(client: TestClient, store: RecordStore) -> None:
    merged = client.post("/merge", json={"purchaseId": "b", "saleId": "s"})
    assert merged.status_code == 200
    assert merged.json()["record"]["sellPrice"] == 4800
    assert len(store) == 1

    pending = client.delete("/records/b")
    assert pending.status_code == 409
    assert pending.json()["reversible"] is True
    assert pending.json()["accepted"] == ["delete-permanently", "split"]

    split = client.delete("/records/b", params={"confirm": "split"})
    assert split.status_code == 200
    assert split.json()["status"] == "split"
    assert split.json()["fidelity"] == "provenance"
    assert split.json()["sale"]["name"] == "iPhone 13 Pro Max"
    assert {r.id for r in store.snapshot()} == {"b", split.json()["sale"]["id"]}


def test_split_without_provenance_reports_degraded(bundled_rules: KeywordRuleLayers) -> None:
    closed = Record(
        id="c",
        name="Old trade",
        date=date(2024, 1, 1),
        buy_price=Decimal("10"),
        sell_price=Decimal("20"),
        is_sold=True,
    )
    store = RecordStore([closed])
    with TestClient(create_app(store=store, ai_client=StubAI(), rule_layers=bundled_rules)) as client:
        body = client.delete("/records/c", params={"confirm": "split"}).json()

    assert body["fidelity"] == "degraded"
    assert "could not be recovered" in body["message"]


def test_merge_errors(client: TestClient) -> None:
    assert client.post("/merge", json={"purchaseId": "b"}).status_code == 400
    assert client.post("/merge", json={"purchaseId": "b", "saleId": "ghost"}).status_code == 404
    assert client.post("/merge", json={"purchaseId": "s", "saleId": "b"}).status_code == 409


def test_delete_permanently(client: TestClient, store: RecordStore) -> None:
    assert client.delete("/records/ghost").status_code == 404
    response = client.delete("/records/s", params={"confirm": "delete-permanently"})
    assert response.json() == {"status": "deleted", "id": "s"}
    assert store.get("s") is None


def test_import_merge_and_replace(client: TestClient, store: RecordStore) -> None:
    text = '[{"id": "s", "sellPrice": 1}, {"id": "x", "name": "Lamp", "buyPrice": 30}]'

    merged = client.post("/import", json={"text": text})
    assert merged.status_code == 200
    assert merged.json()["added"] == 1
    assert merged.json()["skippedExisting"] == 1

    preview = client.post("/import", json={"text": text, "mode": "replace"})
    assert preview.status_code == 409
    assert len(store) == 3

    replaced = client.post("/import", json={"text": text, "mode": "REPLACE", "confirm": True})
    assert replaced.status_code == 200
    assert {r.id for r in store.snapshot()} == {"s", "x"}


def test_import_errors(client: TestClient) -> None:
    assert client.post("/import", json={"text": "no json here"}).status_code == 400
    assert client.post("/import", json={"text": "[]", "mode": "APPEND"}).status_code == 400
    assert client.post("/import", json={"mode": "MERGE"}).status_code == 400


def test_screenshot_import(client: TestClient, store: RecordStore) -> None:
    response = client.post(
        "/import/screenshots",
        data={"leg": "SELL"},
        files=[("files", ("order-1.png", b"a", "image/png")), ("files", ("order-2.png", b"b", "image/png"))],
    )

    assert response.status_code == 200
    assert [r["name"] for r in response.json()["records"]] == ["order-1.png", "order-2.png"]
    assert response.json()["counts"]["ORPHAN_SALE"] == 2
    assert len(store) == 4


def test_screenshot_import_validation(client: TestClient) -> None:
    assert client.post("/import/screenshots", data={"leg": "SELL"}).status_code == 400
    no_leg = client.post("/import/screenshots", files={"files": ("a.png", b"a", "image/png")})
    assert no_leg.status_code == 400


def test_service_outage_returns_503(store: RecordStore, bundled_rules: KeywordRuleLayers) -> None:
    app = create_app(store=store, ai_client=StubAI(fail=True), rule_layers=bundled_rules)
    with TestClient(app) as client:
        shots = client.post("/import/screenshots", data={"leg": "BUY"}, files={"files": ("a.png", b"a", "image/png")})
        fill = client.post("/smart-fill", json={"text": "kindle 450"})
        report = client.post("/reports/narrative")

    assert shots.status_code == 503
    assert fill.status_code == 503
    assert report.status_code == 503
    assert store.snapshot() == (PURCHASE, SALE)


def test_smart_fill(client: TestClient, store: RecordStore) -> None:
    response = client.post("/smart-fill", json={"text": "收了个kindle 450"})

    assert response.status_code == 200
    draft = response.json()["draft"]
    assert (draft["name"], draft["category"], draft["buyPrice"]) == ("Kindle", "Books", 450)
    assert len(store) == 2
    assert client.post("/smart-fill", json={"text": " "}).status_code == 400


def test_export(client: TestClient) -> None:
    response = client.get("/export")

    assert response.status_code == 200
    assert "trade_data_backup_" in response.headers["content-disposition"]
    assert [r["id"] for r in response.json()] == ["b", "s"]


def test_stats_and_charts(client: TestClient) -> None:
    stats = client.get("/stats").json()
    assert stats["totalInvested"] == 4200.0
    assert stats["totalRevenue"] == 4800.0
    assert stats["closedLoopCount"] == 0

    charts = client.get("/reports/charts").json()
    assert {"timeline", "monthly"} <= set(charts)


def test_narrative_report(client: TestClient) -> None:
    response = client.post("/reports/narrative")
    assert response.status_code == 200
    assert response.json()["text"] == "Report"


def test_narrative_report_without_records(bundled_rules: KeywordRuleLayers) -> None:
    with TestClient(create_app(store=RecordStore(), ai_client=StubAI(), rule_layers=bundled_rules)) as client:
        assert client.post("/reports/narrative").status_code == 400


def test_default_store_reads_snapshot(isolated_data_root, bundled_rules: KeywordRuleLayers) -> None:
    from flipledger.runtime.snapshot_storage import JsonSnapshotStorage

    JsonSnapshotStorage().save((PURCHASE,))
    app = create_app(ai_client=StubAI(), rule_layers=bundled_rules)

    with TestClient(app) as client:
        assert [r["id"] for r in client.get("/records").json()["records"]] == ["b"]
