import logging

import pytest

from svip_subscription_svc import stripe_event_processor
from svip_subscription_svc.exceptions import MirrorStoreError
from svip_subscription_svc.mirror_store import MirrorStore
from svip_subscription_svc.models.subscription import Subscription
from svip_subscription_svc.stripe_event_processor import (
    DeleteSubscriptionRow,
    NoAction,
    UpsertSubscriptionRow,
    WebhookEventKind,
)


def create_subscription(db, subscription_id: str, status: str = 'active') -> Subscription:
    subscription = Subscription(stripe_subscription_id=subscription_id, status=status)
    db.add(subscription)
    db.commit()
    return subscription


def event(event_type: str, obj: dict) -> dict:
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}, "created": 1234567890}


def test_event_kind_from_type():
    assert WebhookEventKind.from_type('customer.subscription.deleted') is WebhookEventKind.SUBSCRIPTION_DELETED
    assert WebhookEventKind.from_type('invoice.paid') is WebhookEventKind.UNKNOWN
    assert WebhookEventKind.from_type(None) is WebhookEventKind.UNKNOWN


@pytest.mark.parametrize("event_type", [
    'payment_intent.succeeded',
    'customer.subscription.updated',
    'customer.subscription.payment_method_updated',
    'charge.refunded',
])
def test_informational_events_plan_no_action(event_type):
    action = stripe_event_processor.plan_event(event(event_type, {"id": "obj_1"}))
    assert isinstance(action, NoAction)


def test_created_event_plans_upsert():
    obj = {
        "id": "sub_1",
        "customer": "cus_1",
        "status": "incomplete",
        "current_period_end": 1700000000,
        "items": {"data": [{"price": {"id": "price_a"}}]},
    }
    action = stripe_event_processor.plan_event(event('customer.subscription.created', obj))
    assert action == UpsertSubscriptionRow(row={
        "stripe_subscription_id": "sub_1",
        "stripe_customer_id": "cus_1",
        "price_id": "price_a",
        "status": "incomplete",
        "current_period_end": 1700000000,
    })


def test_deleted_event_plans_delete():
    action = stripe_event_processor.plan_event(event('customer.subscription.deleted', {"id": "sub_1"}))
    assert action == DeleteSubscriptionRow(subscription_id="sub_1")


def test_deleted_event_without_id_is_ignored():
    action = stripe_event_processor.plan_event(event('customer.subscription.deleted', {}))
    assert isinstance(action, NoAction)


def test_customer_subscription_deleted_event(db_session):
    create_subscription(db_session, 'sub_456')
    store = MirrorStore(db_session)

    message = stripe_event_processor.process_event(event('customer.subscription.deleted', {"id": "sub_456"}), store)

    assert message == "Subscription sub_456 deleted"
    assert store.find_subscription('sub_456') is None


def test_duplicate_deleted_event_is_a_no_op(db_session):
    create_subscription(db_session, 'sub_456')
    store = MirrorStore(db_session)
    deleted = event('customer.subscription.deleted', {"id": "sub_456"})

    stripe_event_processor.process_event(deleted, store)
    message = stripe_event_processor.process_event(deleted, store)

    assert "not tracked locally" in message


def test_created_event_is_recorded(db_session):
    store = MirrorStore(db_session)
    stripe_event_processor.process_event(
        event('customer.subscription.created', {"id": "sub_new", "customer": "cus_1", "status": "incomplete"}),
        store,
    )
    found = store.find_subscription('sub_new')
    assert found["stripe_customer_id"] == "cus_1"
    assert found["status"] == "incomplete"


def test_unhandled_event_type(db_session, caplog):
    caplog.set_level(logging.INFO)
    store = MirrorStore(db_session)
    stripe_event_processor.process_event(event('unknown.event', {}), store)
    assert any("Unhandled event type" in record.message for record in caplog.records)


def test_store_failure_propagates(db_session, monkeypatch):
    store = MirrorStore(db_session)

    def failing_find(subscription_id):
        raise MirrorStoreError("lookup failed")

    monkeypatch.setattr(store, "find_subscription", failing_find)
    with pytest.raises(MirrorStoreError, match="lookup failed"):
        stripe_event_processor.process_event(event('customer.subscription.deleted', {"id": "sub_1"}), store)


@pytest.mark.parametrize("data", [None, "sub_1", ["sub_1"], {"object": "sub_1"}, {"object": None}])
def test_event_without_data_object_plans_no_action(data):
    action = stripe_event_processor.plan_event(
        {"id": "evt_1", "type": "customer.subscription.deleted", "data": data}
    )
    assert isinstance(action, NoAction)


def test_event_without_data_object_leaves_mirror_alone(db_session):
    create_subscription(db_session, 'sub_1')
    store = MirrorStore(db_session)
    stripe_event_processor.process_event(
        {"id": "evt_1", "type": "customer.subscription.deleted", "data": {"object": "sub_1"}}, store
    )
    assert store.find_subscription('sub_1') is not None
