from datetime import date

import pytest

from records import (
    DailyStockLog, FrkRecord, LiftingRecord, RecordKind, ReleaseOrder, RiceDeliveryRecord,
)
from stock_summary import (
    DashboardMetrics, bag_summary, delivery_summary, do_register, do_wise_summary,
    filter_lifting_report, frk_stock, godown_summary, lifting_godowns, paddy_stock,
    plain_rice_stock, rice_stock_bags, total_pending, turnout_breakdown,
)


def _lift(do_no, net, godown="G", new=0, used=0, when="2024-11-05T10:00:00+05:30", rst="1"):
    return LiftingRecord(
        id=f"lift-{do_no}-{rst}", rst_no=rst, do_no=do_no, godown=godown,
        gross_lifted_quantity=net + 0.1, total_bag_weight=0.1, net_paddy_quantity=net,
        truck_no="T", number_of_new_bags=new, number_of_used_bags=used, lifting_date=when,
    )


def _delivery(qty, agency="FCI", do_no="DO-1", bags=None, date_="2024-12-01"):
    bags = int(qty / 0.5) if bags is None else bags
    return RiceDeliveryRecord(
        id=f"d-{qty}-{agency}", date=date_, agency=agency, do_no=do_no,
        bags_delivered=bags, quantity_delivered_qtls=qty,
    )


def test_frk_stock_after_deliveries(config):
    frk = [FrkRecord(id="f1", date="2024-11-01", invoice_no="I1", supplier="S", quantity_qtls=10.0)]
    deliveries = [_delivery(300.0), _delivery(200.0, agency="MPSCSC")]
    assert frk_stock(frk, deliveries, config) == pytest.approx(5.0)


def test_plain_rice_stock_excludes_frk_share(config):
    logs = [DailyStockLog(id="l1", date="2024-11-01", rice_quantity=600.0)]
    assert plain_rice_stock(logs, [_delivery(500.0)], config) == pytest.approx(600.0 - 495.0)


@pytest.mark.parametrize("stock,bags", [(10.0, 20), (10.4, 20), (0.0, 0), (-3.0, 0)])
def test_rice_stock_bags(stock, bags, config):
    assert rice_stock_bags(stock, config) == bags


def test_godown_summary_ignores_godowns_without_orders():
    orders = [
        ReleaseOrder(do_no="DO-1", godown="A", quantity="100"),
        ReleaseOrder(do_no="DO-2", godown="A", quantity="50"),
        ReleaseOrder(do_no="DO-3", godown="B", quantity="20"),
    ]
    lifts = [_lift("DO-1", 60.0, godown="A"), _lift("DO-3", 20.0, godown="B"), _lift("DO-X", 9.0, godown="C")]
    summary = godown_summary(orders, lifts)
    assert [row["godown"] for row in summary] == ["A", "B"]
    assert summary[0]["allotted"] == pytest.approx(150.0)
    assert summary[0]["pending"] == pytest.approx(90.0)
    assert summary[1]["pending"] == pytest.approx(0.0)
    assert total_pending(orders, lifts) == pytest.approx(90.0)


def test_do_wise_summary(config):
    orders = [ReleaseOrder(do_no="DO-2", godown="A", quantity="50"), ReleaseOrder(do_no="DO-1", godown="A", quantity="100")]
    rows = do_wise_summary(orders, [_lift("DO-1", 100.0)], [_delivery(20.0)], config)
    assert [r["do_no"] for r in rows] == ["DO-1", "DO-2"]
    assert rows[0]["rice_entitlement"] == pytest.approx(67.0)
    assert rows[0]["rice_pending"] == pytest.approx(67.0 - 19.8)
    assert rows[1]["paddy_pending"] == pytest.approx(50.0)


def test_delivery_summary_shares():
    summary = delivery_summary([_delivery(30.0), _delivery(10.0, agency="MPSCSC")])
    assert summary["total_delivered"] == pytest.approx(40.0)
    assert summary["by_agency"] == {"FCI": pytest.approx(30.0), "MPSCSC": pytest.approx(10.0)}
    assert summary["share_percent"]["FCI"] == pytest.approx(75.0)
    assert summary["total_bags"] == 80


def test_delivery_summary_without_deliveries():
    summary = delivery_summary([])
    assert summary["share_percent"] == {"FCI": 0.0, "MPSCSC": 0.0}


def test_bag_summary_and_empty_bags():
    lifts = [_lift("DO-1", 40.0, new=80, used=20)]
    logs = [DailyStockLog(id="l1", date="2024-11-01", paddy_bags_opened_new=50, paddy_bags_opened_used=5)]
    summary = bag_summary(lifts, logs, [_delivery(10.0, bags=20)])
    assert summary["stock_new"] == 30
    assert summary["stock_used"] == 15
    assert summary["stock_total"] == 45
    assert summary["empty_bags_available"] == 30


def test_paddy_stock():
    lifts = [_lift("DO-1", 40.0, new=100)]
    logs = [DailyStockLog(id="l1", date="2024-11-01", paddy_bags_opened_new=25)]
    stock = paddy_stock(lifts, logs, 0.4)
    assert stock["consumed"] == pytest.approx(10.0)
    assert stock["stock"] == pytest.approx(30.0)
    assert stock["stock_bags"] == 75


def test_turnout_breakdown_slices():
    logs = [DailyStockLog(
        id="l1", date="2024-11-01", rice_quantity=60.0, husk_sold=20.0, bran_sold=5.0,
        sortex_broken_sold=2.0, non_sortex_broken_sold=1.0, rejection_sold=4.0, paddy_consumed_qtls=100.0,
    )]
    slices = {s["name"]: s for s in turnout_breakdown(logs)}
    assert set(slices) == {"Rice", "Husk", "Bran", "Broken Rice", "WIP / Loss"}
    assert slices["Rice"]["percentage"] == pytest.approx(60.0)
    assert slices["Broken Rice"]["value"] == pytest.approx(3.0)
    # rejection is not a turnout product, it lands in WIP / Loss
    assert slices["WIP / Loss"]["value"] == pytest.approx(12.0)


def test_turnout_breakdown_empty_without_consumption():
    assert turnout_breakdown([DailyStockLog(id="l1", date="2024-11-01", rice_quantity=5.0)]) == []


def test_filter_lifting_report_by_date_and_godown():
    lifts = [
        _lift("DO-1", 10.0, godown="A", new=20, when="2024-11-01T09:00:00+05:30", rst="1"),
        _lift("DO-1", 12.0, godown="A", new=25, when="2024-11-03T23:30:00+05:30", rst="2"),
        _lift("DO-2", 15.0, godown="B", used=30, when="2024-11-03T11:00:00+05:30", rst="3"),
        _lift("DO-1", 11.0, godown="A", when="2024-11-04T00:10:00+05:30", rst="4"),
    ]
    report = filter_lifting_report(lifts, date(2024, 11, 2), date(2024, 11, 3), "All")
    assert [r.rst_no for r in report["records"]] == ["2", "3"]
    assert report["totals"]["net"] == pytest.approx(27.0)
    assert report["totals"]["new_bags"] == 25
    assert report["totals"]["used_bags"] == 30

    only_a = filter_lifting_report(lifts, None, None, "A")
    assert [r.rst_no for r in only_a["records"]] == ["4", "2", "1"]
    assert lifting_godowns(lifts) == ["A", "B"]


def test_do_register_groups_by_order():
    orders = [ReleaseOrder(do_no="DO-1", godown="A", quantity="100")]
    lifts = [
        _lift("DO-1", 30.0, new=60, when="2024-11-03T10:00:00+05:30", rst="2"),
        _lift("DO-1", 20.0, new=40, when="2024-11-01T10:00:00+05:30", rst="1"),
        _lift("DO-2", 5.0),
    ]
    (entry,) = do_register(orders, lifts, [_delivery(10.0)])
    assert [r.rst_no for r in entry["lifting_records"]] == ["1", "2"]
    assert entry["total_lifted"] == pytest.approx(50.0)
    assert entry["total_pending"] == pytest.approx(50.0)
    assert entry["total_bags"] == 100
    assert entry["total_delivered"] == pytest.approx(10.0)


def test_season_summary(season_store, config):
    season_store.save(RecordKind.RELEASE_ORDERS, [ReleaseOrder(do_no="DO-1", godown="A", quantity="100")])
    season_store.save(RecordKind.LIFTING_RECORDS, [_lift("DO-1", 40.0, godown="A", new=100)])
    season_store.save(RecordKind.DAILY_STOCK_LOGS, [
        DailyStockLog(id="l1", date="2024-11-01", paddy_bags_opened_new=50, rice_bags_new=20, rice_quantity=10.0),
    ])
    summary = DashboardMetrics.get_season_summary(season_store, config)
    assert summary["total_pending"] == pytest.approx(60.0)
    assert summary["paddy_stock"]["stock"] == pytest.approx(20.0)
    assert summary["current_wip"] == pytest.approx(10.0)
    assert summary["paddy_on_hand"] == pytest.approx(30.0)
    assert summary["plain_rice_stock"] == pytest.approx(10.0)
