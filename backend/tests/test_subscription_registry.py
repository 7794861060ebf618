from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from notifyhub.core.exceptions import InvalidSubscription
from notifyhub.models import PushSubscription, User
from notifyhub.services.subscriptions import SubscriptionRegistry


@pytest.fixture()
def registry(engine) -> SubscriptionRegistry:
    return SubscriptionRegistry(engine)


def test_register_creates_active_subscription(registry, make_user) -> None:
    user = make_user("alice")

    subscription = registry.register(user.id, "https://push.example/a", "key-1", "auth-1", "Firefox")

    assert subscription.is_active
    assert subscription.user_id == user.id
    assert subscription.user_agent == "Firefox"
    assert registry.active_count_for_account(user.id) == 1


def test_register_same_endpoint_twice_keeps_one_row_with_latest_keys(registry, make_user, engine) -> None:
    user = make_user("alice")

    first = registry.register(user.id, "https://push.example/a", "key-1", "auth-1")
    registry.deactivate(first.id)
    second = registry.register(user.id, "https://push.example/a", "key-2", "auth-2")

    assert second.id == first.id
    assert second.is_active
    with Session(engine) as session:
        rows = session.exec(select(PushSubscription).where(PushSubscription.user_id == user.id)).all()
    assert len(rows) == 1
    assert rows[0].p256dh == "key-2"
    assert rows[0].auth == "auth-2"


def test_same_endpoint_for_two_accounts_is_two_subscriptions(registry, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")

    registry.register(alice.id, "https://push.example/shared", "k", "a")
    registry.register(bob.id, "https://push.example/shared", "k", "a")

    assert len(registry.list_active_for_accounts(None)) == 2


@pytest.mark.parametrize(
    ("endpoint", "p256dh", "auth"),
    [
        ("", "key", "auth"),
        ("https://push.example/a", "", "auth"),
        ("https://push.example/a", "key", "   "),
    ],
)
def test_register_rejects_missing_fields(registry, make_user, endpoint, p256dh, auth) -> None:
    user = make_user("alice")

    with pytest.raises(InvalidSubscription):
        registry.register(user.id, endpoint, p256dh, auth)

    assert registry.active_count_for_account(user.id) == 0


def test_list_active_for_accounts_filters_by_owner_and_state(registry, make_user, subscribe) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    subscribe(alice, "a1")
    subscribe(alice, "a2")
    subscribe(bob, "b1")
    subscribe(carol, "c1", is_active=False)

    only_alice = registry.list_active_for_accounts({alice.id})
    everyone = registry.list_active_for_accounts(None)

    assert {s.endpoint for s in only_alice} == {"a1", "a2"}
    assert {s.endpoint for s in everyone} == {"a1", "a2", "b1"}
    assert registry.list_active_for_accounts(set()) == []
    assert registry.list_active_for_accounts({carol.id}) == []


def test_deactivate_is_idempotent(registry, make_user, subscribe) -> None:
    user = make_user("alice")
    subscription = subscribe(user, "a1")

    registry.deactivate(subscription.id)
    registry.deactivate(subscription.id)
    registry.deactivate(uuid4())

    assert registry.active_count_for_account(user.id) == 0


def test_deactivate_all_for_account(registry, make_user, subscribe) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    subscribe(alice, "a1")
    subscribe(alice, "a2")
    subscribe(bob, "b1")

    assert registry.deactivate_all_for_account(alice.id) == 2
    assert registry.deactivate_all_for_account(alice.id) == 0
    assert registry.active_count_for_account(alice.id) == 0
    assert registry.active_count_for_account(bob.id) == 1


def test_active_counts_by_account(registry, make_user, subscribe) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    subscribe(alice, "a1")
    subscribe(alice, "a2")
    subscribe(bob, "b1", is_active=False)

    counts = registry.active_counts_by_account()

    assert counts == {alice.id: 2}


def test_mark_used_stamps_last_used_at(registry, make_user, subscribe, engine) -> None:
    user = make_user("alice")
    subscription = subscribe(user, "a1")

    registry.mark_used(subscription.id)

    with Session(engine) as session:
        assert session.get(PushSubscription, subscription.id).last_used_at is not None


def test_register_retries_as_update_after_losing_insert_race(registry, make_user, engine, monkeypatch) -> None:
    user = make_user("alice")
    upsert = registry._upsert
    attempts = []

    def racing_upsert(*args):
        attempts.append(args)
        if len(attempts) == 1:
            # A concurrent request inserts the same pair between lookup and commit
            upsert(user.id, "https://push.example/a", "key-old", "auth-old", None)
            raise IntegrityError("INSERT INTO push_subscriptions", {}, Exception("UNIQUE constraint failed"))
        return upsert(*args)

    monkeypatch.setattr(registry, "_upsert", racing_upsert)

    subscription = registry.register(user.id, "https://push.example/a", "key-new", "auth-new")

    assert len(attempts) == 2
    with Session(engine) as session:
        rows = session.exec(select(PushSubscription).where(PushSubscription.user_id == user.id)).all()
    assert len(rows) == 1
    assert rows[0].id == subscription.id
    assert (rows[0].p256dh, rows[0].auth) == ("key-new", "auth-new")


def test_new_rows_carry_timezone_aware_timestamps() -> None:
    user = User(username="alice", email="alice@example.com")
    subscription = PushSubscription(user_id=uuid4(), endpoint="e", p256dh="k", auth="a")

    assert user.created_at.tzinfo is not None
    assert subscription.created_at.tzinfo is not None
    assert subscription.updated_at.tzinfo is not None
