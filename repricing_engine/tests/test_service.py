import pymysql
import pytest

from repricer.catalog.store import InMemoryProductCatalog, InMemoryRuleStore
from repricer.catalog import velocity as velocity_mod
from repricer.catalog.velocity import InMemorySalesVelocity, MySQLSalesVelocity
from repricer.errors import ExternalServiceError
from repricer.models.proposal import ProposalFilters, ProposalStatus
from repricer.models.schemas import ActionType
from repricer.service import RepricingService

from conftest import FakeChannel, make_product, make_rule

@pytest.fixture
def service(settings, repo, channel):
    products = [
        make_product(sku="BATH-1", brand="Acme", current_price=100.0),
        make_product(sku="BATH-2", brand="Acme", current_price=90.0, competitor_floor_price=80.0),
        make_product(sku="KIT-1", brand="Zen", category="Kitchen", current_price=40.0),
        make_product(sku="NOCOST", cost_price=0.0),
    ]
    rules = [
        make_rule("acme", priority=10, value=20.0, rounding="nearest_99p", brands=frozenset({"Acme"})),
        make_rule("kitchen", priority=20, action_type=ActionType.ADJUST_PERCENT, value=10.0,
                  categories=("kitchen",)),
        make_rule("off", priority=1, is_active=False, action_type=ActionType.SET_PRICE, value=1.0),
    ]
    return RepricingService(
        catalog=InMemoryProductCatalog(products),
        rule_store=InMemoryRuleStore(rules),
        velocity=InMemorySalesVelocity({"BATH-1": 3.0}),
        repository=repo,
        channel=channel,
        settings=settings,
    )

def test_full_cycle(service, channel):
    summary = service.trigger_batch_run()
    assert summary["proposal_count"] == 3
    assert summary["skipped_count"] == 1
    assert summary["error_count"] == 0

    page = service.query_proposals(ProposalFilters(batch_id=summary["batch_id"]), page=1, page_size=10)
    by_sku = {p.sku: p for p in page.items}
    assert by_sku["BATH-1"].proposed_price == pytest.approx(68.99)
    assert by_sku["BATH-1"].sales_velocity == 3.0
    assert by_sku["KIT-1"].proposed_price == pytest.approx(44.0)
    assert by_sku["KIT-1"].applied_rule_id == "kitchen"
    assert any("competitor floor" in w for w in by_sku["BATH-2"].warnings)

    service.review_proposal(by_sku["BATH-1"].proposal_id, "approve", "alice")
    service.review_proposal(by_sku["KIT-1"].proposal_id, "modify", "alice", modified_price=43.5)
    bulk = service.bulk_review([by_sku["BATH-2"].proposal_id], "reject", "bob", notes="below floor")
    assert bulk.succeeded == [by_sku["BATH-2"].proposal_id]

    dry = service.push_approved(dry_run=True)
    assert {(u.sku, u.price) for u in dry.updates} == {("BATH-1", 68.99), ("KIT-1", 43.5)}
    assert channel.calls == []

    report = service.push_approved()
    assert report.pushed == 2
    assert service.get_proposal(by_sku["KIT-1"].proposal_id).status == ProposalStatus.PUSHED

    counts = service.status_counts()
    assert counts["pushed"] == 2
    assert counts["rejected"] == 1

    batch = service.batch_summary(summary["batch_id"])
    assert batch.total_proposals == 3

def test_bulk_approve_filtered(service):
    service.trigger_batch_run()
    result = service.bulk_approve_filtered(ProposalFilters(brand="Acme"), "alice")
    assert len(result.succeeded) == 2
    assert service.status_counts()["approved"] == 2

def test_snapshot_load_failure_surfaces(service):
    class BrokenCatalog:
        def load_all(self):
            raise pymysql.err.OperationalError(2003, "Can't connect")

    service.catalog = BrokenCatalog()
    with pytest.raises(ExternalServiceError):
        service.trigger_batch_run()

def test_each_run_prices_with_fresh_sales_velocity(settings, repo, channel, monkeypatch):
    loads = iter([[{"sku": "BATH-1", "units": 7}], [{"sku": "BATH-1", "units": 70}]])
    monkeypatch.setattr(velocity_mod, "fetch_all", lambda sql, params=(): next(loads))
    service = RepricingService(
        catalog=InMemoryProductCatalog([make_product(sku="BATH-1", sales_velocity=0.0)]),
        rule_store=InMemoryRuleStore([]),
        velocity=MySQLSalesVelocity(),
        repository=repo,
        channel=channel,
        settings=settings,
    )

    first = service.trigger_batch_run()
    second = service.trigger_batch_run()

    def velocity_in(batch_id):
        [proposal] = service.query_proposals(ProposalFilters(batch_id=batch_id)).items
        return proposal.sales_velocity

    assert velocity_in(first["batch_id"]) == pytest.approx(1.0)
    assert velocity_in(second["batch_id"]) == pytest.approx(10.0)
