import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy.orm import Session

from svip_subscription_svc.config import Settings, get_settings
from svip_subscription_svc.exceptions import MirrorStoreError, ProviderError, WebhookVerificationError
from svip_subscription_svc.mirror_store import MirrorStore
from svip_subscription_svc.models.base import get_db
from svip_subscription_svc.responses import ApiError, success
from svip_subscription_svc.stripe_event_processor import process_event
from svip_subscription_svc.stripe_integration import StripeIntegration

router = APIRouter()

PRODUCT_NAME = 'niceNovel_Svip'
PRODUCT_DESCRIPTION = 'Unlimited reading access'
CURRENCY = 'usd'
# (response key, interval_count in days, unit_amount in cents, nickname)
PRICE_TIERS = (
    ('threeDays', 3, 990, '3-day subscription'),
    ('sevenDays', 7, 1499, '7-day subscription'),
)


class SubscriptionRequest(BaseModel):
    priceId: Optional[str] = None
    email: Optional[str] = None


def _stripe_integration(settings: Settings) -> StripeIntegration:
    try:
        return StripeIntegration(settings.stripe_api_key)
    except EnvironmentError as e:
        logging.error(e)
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), internal=True)


def get_mirror_store(db: Session = Depends(get_db)) -> MirrorStore:
    return MirrorStore(db)


def _price_row(price: dict) -> dict:
    recurring = price.get('recurring') or {}
    return {
        'price_id': price['id'],
        'product_id': price['product'],
        'nickname': price.get('nickname'),
        'unit_amount': price['unit_amount'],
        'currency': price['currency'],
        'interval': recurring.get('interval'),
        'interval_count': recurring.get('interval_count'),
    }


@router.post("/create-subscription-products")
def create_subscription_products(
    settings: Settings = Depends(get_settings),
    store: MirrorStore = Depends(get_mirror_store),
):
    stripe_integration = _stripe_integration(settings)
    try:
        product = stripe_integration.create_subscription_product(PRODUCT_NAME, PRODUCT_DESCRIPTION)
        prices = {}
        for key, days, amount, nickname in PRICE_TIERS:
            prices[key] = stripe_integration.create_price(
                product_id=product['id'],
                unit_amount=amount,
                currency=CURRENCY,
                interval='day',
                interval_count=days,
                nickname=nickname,
            )
    except ProviderError as e:
        logging.error(f"Error creating subscription products: {e}")
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), internal=True)

    try:
        saved_prices = store.insert_prices(_price_row(prices[key]) for key, _, _, _ in PRICE_TIERS)
    except MirrorStoreError as e:
        logging.error(f"Error saving to database: {e}")
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, 'Database error', error=str(e))

    return success({"product": product, "prices": prices, "savedPrices": saved_prices})


@router.get("/subscription-prices")
def list_subscription_prices(store: MirrorStore = Depends(get_mirror_store)):
    try:
        prices = store.list_prices()
    except MirrorStoreError as e:
        logging.error(f"Error fetching prices: {e}")
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), internal=True)
    return success(prices)


@router.post("/create-subscription")
def create_subscription(
    subscription_request: Optional[SubscriptionRequest] = Body(None),
    settings: Settings = Depends(get_settings),
):
    subscription_request = subscription_request or SubscriptionRequest()
    if not subscription_request.priceId or not subscription_request.email:
        raise ApiError(status.HTTP_400_BAD_REQUEST, 'Missing required parameters: priceId or email')

    stripe_integration = _stripe_integration(settings)
    try:
        customer = stripe_integration.create_customer(subscription_request.email)
        subscription = stripe_integration.create_subscription(customer['id'], subscription_request.priceId)
    except ProviderError as e:
        logging.error(f"Error creating subscription: {e}")
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), internal=True)

    return success({
        "customerId": customer['id'],
        "subscriptionId": subscription['id'],
        "clientSecret": StripeIntegration.client_secret_for(subscription),
    })


@router.post("/webhook")
async def process_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: MirrorStore = Depends(get_mirror_store),
):
    payload_bytes = await request.body()
    sig_header = request.headers.get("Stripe-Signature")
    if not sig_header:
        raise ApiError(status.HTTP_400_BAD_REQUEST, 'Missing Stripe-Signature header')
    endpoint_secret = settings.stripe_webhook_secret
    if not endpoint_secret:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, 'Stripe webhook secret not configured')

    try:
        event = await run_in_threadpool(
            StripeIntegration.process_webhook_event, payload_bytes, sig_header, endpoint_secret
        )
    except WebhookVerificationError as e:
        logging.error(f"Webhook Error: {e}")
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Webhook Error: {e}")

    try:
        message = await run_in_threadpool(process_event, event, store)
    except MirrorStoreError as e:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e), internal=True)

    return success(message=message)
