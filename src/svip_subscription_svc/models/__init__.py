from svip_subscription_svc.models.base import Base
from svip_subscription_svc.models.price import StripePrice
from svip_subscription_svc.models.subscription import Subscription

__all__ = ["Base", "StripePrice", "Subscription"]
