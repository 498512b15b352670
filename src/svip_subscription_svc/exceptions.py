class ProviderError(Exception):
    """Raised when a Stripe API call fails."""


class WebhookVerificationError(Exception):
    """Raised when a webhook payload fails signature verification or cannot be decoded."""


class MirrorStoreError(Exception):
    """Raised when a read or write against the mirror database fails."""
