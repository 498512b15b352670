from typing import Any, Dict

from sqlalchemy import Column, Integer, String
from svip_subscription_svc.models.base import Base


class Subscription(Base):
    """
    Subscription model mirroring a Stripe subscription at the last event seen.
    """
    __tablename__ = 'subscriptions'

    stripe_subscription_id = Column(String, primary_key=True, unique=True, nullable=False)
    stripe_customer_id = Column(String, nullable=True)
    price_id = Column(String, nullable=True)
    status = Column(String, nullable=True)
    current_period_end = Column(Integer, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stripe_subscription_id": self.stripe_subscription_id,
            "stripe_customer_id": self.stripe_customer_id,
            "price_id": self.price_id,
            "status": self.status,
            "current_period_end": self.current_period_end,
        }

    def __repr__(self) -> str:
        return f"<Subscription(id={self.stripe_subscription_id}, status={self.status})>"
