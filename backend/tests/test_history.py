from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from notifyhub.models import DispatchRecord
from notifyhub.services.history import DeliveryHistoryStore


@pytest.fixture()
def history(engine) -> DeliveryHistoryStore:
    return DeliveryHistoryStore(engine)


def _fill(history: DeliveryHistoryStore, sender_id, count: int) -> None:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for index in range(count):
        history.append(
            DispatchRecord(
                title=f"Notification {index}",
                message="Body",
                sent_by=sender_id,
                created_at=start + timedelta(minutes=index),
            )
        )


def test_first_page_of_three(history, admin) -> None:
    _fill(history, admin.id, 25)

    page = history.page(1, 10)

    assert len(page.records) == 10
    assert page.current_page == 1
    assert page.total_pages == 3
    assert page.total_records == 25
    assert page.has_next is True
    assert page.has_prev is False


def test_last_page_is_partial(history, admin) -> None:
    _fill(history, admin.id, 25)

    page = history.page(3, 10)

    assert len(page.records) == 5
    assert page.has_next is False
    assert page.has_prev is True


def test_page_past_the_end_is_empty_with_same_totals(history, admin) -> None:
    _fill(history, admin.id, 25)

    page = history.page(4, 10)

    assert page.records == []
    assert page.total_pages == 3
    assert page.total_records == 25
    assert page.has_next is False


def test_records_are_newest_first(history, admin) -> None:
    _fill(history, admin.id, 5)

    titles = [record.title for record in history.page(1, 10).records]

    assert titles == [f"Notification {index}" for index in range(4, -1, -1)]


def test_empty_history(history) -> None:
    page = history.page(1, 10)

    assert page.records == []
    assert page.total_pages == 0
    assert page.total_records == 0
    assert page.has_next is False
    assert page.has_prev is False


@pytest.mark.parametrize(("page", "page_size"), [(0, 10), (1, 0)])
def test_invalid_page_arguments(history, page, page_size) -> None:
    with pytest.raises(ValueError):
        history.page(page, page_size)
