import logging
from typing import Any, Dict, Optional, Union

import stripe

from svip_subscription_svc.exceptions import ProviderError, WebhookVerificationError


def _as_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, stripe.StripeObject):
        return obj.to_dict()
    return obj


class StripeIntegration:
    """
    This class encapsulates the integration with the Stripe API: catalog
    creation, customer and subscription creation, and webhook verification.

    The secret key is passed on every request instead of being set on the
    stripe module, so several integrations with different keys can coexist.
    Failed calls are not retried.
    """

    def __init__(self, api_key: Optional[str]) -> None:
        if not api_key:
            raise EnvironmentError('Stripe API key (STRIPE_API_KEY) not set in environment variables.')
        self.api_key = api_key

    def _call(self, action: str, fn, **params) -> Dict[str, Any]:
        try:
            return _as_dict(fn(api_key=self.api_key, **params))
        except stripe.StripeError as e:
            logging.error(f"Error during {action}: {e}", exc_info=True)
            message = getattr(e, 'user_message', None) or str(e)
            raise ProviderError(message) from e

    def create_subscription_product(self, name: str, description: str) -> Dict[str, Any]:
        """
        Create a new product. Every call creates a distinct product.

        :param name: Product name shown in Stripe.
        :param description: Product description.
        :return: The created product as a dictionary.
        :raises ProviderError: if Stripe rejects the request.
        """
        return self._call('product creation', stripe.Product.create, name=name, description=description)

    def create_price(
        self,
        product_id: str,
        unit_amount: int,
        currency: str,
        interval: str,
        interval_count: int,
        nickname: str,
    ) -> Dict[str, Any]:
        """
        Create a recurring price for a product.

        :param unit_amount: Amount in the smallest currency unit.
        :param interval: One of day, week, month, year.
        :return: The created price as a dictionary.
        :raises ProviderError: if Stripe rejects the request.
        """
        return self._call(
            'price creation',
            stripe.Price.create,
            product=product_id,
            unit_amount=unit_amount,
            currency=currency,
            recurring={'interval': interval, 'interval_count': interval_count},
            nickname=nickname,
        )

    def create_customer(self, email: str) -> Dict[str, Any]:
        return self._call('customer creation', stripe.Customer.create, email=email)

    def create_subscription(self, customer_id: str, price_id: str) -> Dict[str, Any]:
        """
        Start an incomplete subscription that the client confirms with the
        confirmation secret of its first invoice.

        :param customer_id: The ID of the customer in Stripe.
        :param price_id: The price ID for the subscription plan.
        :return: The created subscription, latest invoice and its confirmation secret expanded.
        :raises ProviderError: if Stripe rejects the request.
        """
        return self._call(
            'subscription creation',
            stripe.Subscription.create,
            customer=customer_id,
            items=[{'price': price_id, 'quantity': 1}],
            payment_behavior='default_incomplete',
            payment_settings={'save_default_payment_method': 'on_subscription'},
            expand=['latest_invoice.confirmation_secret'],
        )

    @staticmethod
    def client_secret_for(subscription: Dict[str, Any]) -> Optional[str]:
        invoice = subscription.get('latest_invoice') or {}
        if not isinstance(invoice, dict):
            return None
        confirmation_secret = invoice.get('confirmation_secret') or {}
        if not isinstance(confirmation_secret, dict):
            return None
        return confirmation_secret.get('client_secret')

    @staticmethod
    def process_webhook_event(payload: Union[bytes, str], sig_header: str, endpoint_secret: str) -> Dict[str, Any]:
        """
        Verify and decode a webhook event from Stripe.

        The signature covers the exact bytes Stripe sent, so the payload must
        be the untouched request body.

        :param payload: The raw payload from the webhook.
        :param sig_header: The Stripe-Signature header from the webhook.
        :param endpoint_secret: The webhook endpoint secret used for signature verification.
        :return: The decoded event as a dictionary.
        :raises WebhookVerificationError: if the signature or the payload is invalid.
        """
        try:
            event = stripe.Webhook.construct_event(payload, sig_header, endpoint_secret)
        except stripe.SignatureVerificationError as e:
            logging.error(f'Webhook signature verification failed: {e}', exc_info=True)
            raise WebhookVerificationError('Invalid signature.') from e
        except ValueError as e:
            # Undecodable bytes or invalid JSON.
            logging.error(f'Invalid webhook payload: {e}', exc_info=True)
            raise WebhookVerificationError('Invalid payload.') from e
        if not isinstance(event, stripe.StripeObject):
            raise WebhookVerificationError('Invalid payload.')
        return _as_dict(event)
