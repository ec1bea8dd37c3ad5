from datetime import datetime, timedelta

import pytest
from booking.domain.orders import OrderSnapshot
from booking.usecases import cleanup as uc
from fakes import FakeLedger, FakeOrderBackend, order_snapshot

NOW = datetime(2024, 3, 1, 12, 0)


def _stale(order_id: str, *, days_old: int = 30, provider: str = "CAWL") -> OrderSnapshot:
    snapshot = order_snapshot(order_id, status="pending", meta={"payment_provider": provider})
    return OrderSnapshot(
        order_id=snapshot.order_id,
        status=snapshot.status,
        lines=snapshot.lines,
        meta=snapshot.meta,
        meta_fields=snapshot.meta_fields,
        created_at=NOW - timedelta(days=days_old),
    )


@pytest.mark.asyncio
async def test_cleanup_deletes_only_stale_provider_orders(
    order_backend: FakeOrderBackend,
    ledger: FakeLedger,
) -> None:
    order_backend.listed = [_stale("1"), _stale("2", days_old=3), _stale("3", provider="stripe"), _stale("4")]

    report = await uc.cleanup_stale_orders(order_backend, ledger.release_order, days=14, now=NOW)

    assert report.scanned == 4
    assert report.deleted == ["1", "4"]
    assert report.failed == []
    assert ledger.release_calls == ["1", "4"]
    assert order_backend.list_params is not None
    assert order_backend.list_params["status"] == "cancelled,failed,pending"


@pytest.mark.asyncio
async def test_cleanup_continues_past_failures(order_backend: FakeOrderBackend, ledger: FakeLedger) -> None:
    order_backend.listed = [_stale("1"), _stale("2"), _stale("3")]
    order_backend.fail_delete_for = {"2"}
    ledger.fail_release_for = {"3"}

    report = await uc.cleanup_stale_orders(order_backend, ledger.release_order, days=14, now=NOW)

    assert report.deleted == ["1"]
    assert [failure.order_id for failure in report.failed] == ["2", "3"]
    assert "500" in report.failed[0].message
    assert order_backend.deleted == ["1"]


@pytest.mark.asyncio
async def test_cleanup_uses_given_statuses(order_backend: FakeOrderBackend, ledger: FakeLedger) -> None:
    await uc.cleanup_stale_orders(order_backend, ledger.release_order, days=7, statuses=["failed"], now=NOW)
    assert order_backend.list_params is not None
    assert order_backend.list_params["status"] == "failed"
    assert order_backend.list_params["per_page"] == uc.CLEANUP_PAGE_SIZE


def test_is_older_than() -> None:
    assert uc.is_older_than(NOW - timedelta(days=15), 14, now=NOW)
    assert not uc.is_older_than(NOW - timedelta(days=13), 14, now=NOW)
    assert not uc.is_older_than(None, 14, now=NOW)
