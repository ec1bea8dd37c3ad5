import logging

import pytest
from booking.domain.payment_status import OrderBucket, is_committed, is_released, map_provider_status


@pytest.mark.parametrize(
    ("status", "bucket"),
    [
        ("CAPTURED", OrderBucket.PROCESSING),
        ("paid", OrderBucket.PROCESSING),
        ("PENDING_CAPTURE", OrderBucket.PROCESSING),
        ("REFUSED", OrderBucket.FAILED),
        ("Cancelled", OrderBucket.FAILED),
        ("CHARGEBACKED", OrderBucket.FAILED),
        ("REDIRECTED", OrderBucket.PENDING),
        (" created ", OrderBucket.PENDING),
    ],
)
def test_map_provider_status(status: str, bucket: OrderBucket) -> None:
    assert map_provider_status(status) == bucket


def test_unknown_status_is_held_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="booking.domain.payment_status"):
        assert map_provider_status("MYSTERY") == OrderBucket.ON_HOLD
    assert "MYSTERY" in caplog.text
    assert map_provider_status(None) == OrderBucket.ON_HOLD


def test_committed_and_released_sets() -> None:
    assert is_committed("processing")
    assert is_committed("Completed")
    assert not is_committed("pending")
    assert is_released("refunded")
    assert is_released("failed")
    assert not is_released("on-hold")
    assert not is_committed(None)
