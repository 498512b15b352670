import enum
import logging
import datetime
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

from svip_subscription_svc.mirror_store import MirrorStore


class WebhookEventKind(enum.Enum):
    PAYMENT_INTENT_SUCCEEDED = 'payment_intent.succeeded'
    SUBSCRIPTION_CREATED = 'customer.subscription.created'
    SUBSCRIPTION_UPDATED = 'customer.subscription.updated'
    SUBSCRIPTION_DELETED = 'customer.subscription.deleted'
    SUBSCRIPTION_PAYMENT_METHOD_UPDATED = 'customer.subscription.payment_method_updated'
    UNKNOWN = 'unknown'

    @classmethod
    def from_type(cls, event_type: Optional[str]) -> 'WebhookEventKind':
        for kind in cls:
            if kind.value == event_type and kind is not cls.UNKNOWN:
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class NoAction:
    message: str


@dataclass(frozen=True)
class UpsertSubscriptionRow:
    row: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteSubscriptionRow:
    subscription_id: str


WebhookAction = Union[NoAction, UpsertSubscriptionRow, DeleteSubscriptionRow]


def _first_price_id(subscription: Dict[str, Any]) -> Optional[str]:
    items = (subscription.get('items') or {}).get('data') or []
    if not items:
        return None
    price = items[0].get('price') or {}
    return price.get('id') if isinstance(price, dict) else price


def _customer_id(subscription: Dict[str, Any]) -> Optional[str]:
    customer = subscription.get('customer')
    if isinstance(customer, dict):
        return customer.get('id')
    return customer


def on_payment_intent_succeeded(obj: Dict[str, Any]) -> WebhookAction:
    logging.info(f"Payment succeeded: payment intent {obj.get('id')} amount {obj.get('amount')}")
    return NoAction('Payment intent succeeded')


def on_subscription_created(obj: Dict[str, Any]) -> WebhookAction:
    sub_id = obj.get('id')
    if not sub_id:
        logging.warning("customer.subscription.created event without subscription id. No action taken.")
        return NoAction('Subscription id missing; nothing to record')
    return UpsertSubscriptionRow(row={
        'stripe_subscription_id': sub_id,
        'stripe_customer_id': _customer_id(obj),
        'price_id': _first_price_id(obj),
        'status': obj.get('status'),
        'current_period_end': obj.get('current_period_end'),
    })


def on_subscription_updated(obj: Dict[str, Any]) -> WebhookAction:
    logging.info(f"Subscription {obj.get('id')} updated, status {obj.get('status')}")
    return NoAction('Subscription update received')


def on_subscription_deleted(obj: Dict[str, Any]) -> WebhookAction:
    sub_id = obj.get('id')
    if not sub_id:
        logging.warning("customer.subscription.deleted event without subscription id. No action taken.")
        return NoAction('Subscription id missing; nothing to delete')
    return DeleteSubscriptionRow(subscription_id=sub_id)


def on_payment_method_updated(obj: Dict[str, Any]) -> WebhookAction:
    logging.info(f"Payment method updated for subscription {obj.get('id')}")
    return NoAction('Subscription payment method update received')


def on_unknown(obj: Dict[str, Any]) -> WebhookAction:
    return NoAction('Event received')


HANDLERS: Dict[WebhookEventKind, Callable[[Dict[str, Any]], WebhookAction]] = {
    WebhookEventKind.PAYMENT_INTENT_SUCCEEDED: on_payment_intent_succeeded,
    WebhookEventKind.SUBSCRIPTION_CREATED: on_subscription_created,
    WebhookEventKind.SUBSCRIPTION_UPDATED: on_subscription_updated,
    WebhookEventKind.SUBSCRIPTION_DELETED: on_subscription_deleted,
    WebhookEventKind.SUBSCRIPTION_PAYMENT_METHOD_UPDATED: on_payment_method_updated,
    WebhookEventKind.UNKNOWN: on_unknown,
}


def plan_event(event: Dict[str, Any]) -> WebhookAction:
    """
    Decide what a verified Stripe event means for the mirror without touching it.

    :param event: Dictionary representing the Stripe event payload.
    :return: The action to apply.
    """
    kind = WebhookEventKind.from_type(event.get('type'))
    data = event.get('data')
    obj = data.get('object') if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        logging.warning(f"Event {event.get('id', 'N/A')} carries no data object. No action taken.")
        kind, obj = WebhookEventKind.UNKNOWN, {}
    return HANDLERS[kind](obj)


def apply_action(action: WebhookAction, store: MirrorStore) -> str:
    """
    Apply an action to the mirror and describe the outcome.

    :raises MirrorStoreError: on any database failure.
    """
    if isinstance(action, UpsertSubscriptionRow):
        store.upsert_subscription(action.row)
        return f"Subscription {action.row['stripe_subscription_id']} recorded"

    if isinstance(action, DeleteSubscriptionRow):
        sub_id = action.subscription_id
        if store.find_subscription(sub_id) is None:
            logging.info(f"Subscription with id {sub_id} not found in mirror. Nothing to delete.")
            return f"Subscription {sub_id} not tracked locally; nothing to delete"
        store.delete_subscription(sub_id)
        logging.info(f"Subscription {sub_id} removed from mirror.")
        return f"Subscription {sub_id} deleted"

    return action.message


def process_event(event: Dict[str, Any], store: MirrorStore) -> str:
    """
    Process a verified Stripe event and reconcile the mirror accordingly.

    :param event: Dictionary representing the Stripe event payload.
    :param store: Mirror store bound to the request's session.
    :return: A human readable outcome.
    :raises MirrorStoreError: on any database failure.
    """
    event_id = event.get('id', 'N/A')
    event_type = event.get('type')
    timestamp = event.get('created', datetime.datetime.now(datetime.timezone.utc).timestamp())

    action = plan_event(event)
    if WebhookEventKind.from_type(event_type) is WebhookEventKind.UNKNOWN:
        logging.info(f"Unhandled event type: {event_type} for event {event_id} at {timestamp}. No action taken.")

    try:
        message = apply_action(action, store)
    except Exception as e:
        logging.error(f"Event {event_id} ({event_type}) failed: {e}", exc_info=True)
        raise
    logging.info(f"Event {event_id} at {timestamp}: {event_type} processed. {message}")
    return message
