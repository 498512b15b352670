from typing import Any, Dict

from sqlalchemy import Column, Integer, String
from svip_subscription_svc.models.base import Base


class StripePrice(Base):
    """
    One purchasable price option copied from the Stripe catalog.
    """
    __tablename__ = 'stripe_prices'

    price_id = Column(String, primary_key=True, unique=True, nullable=False)
    product_id = Column(String, nullable=False, index=True)
    nickname = Column(String, nullable=True)
    unit_amount = Column(Integer, nullable=False, index=True)
    currency = Column(String(10), nullable=False)
    interval = Column(String(10), nullable=False)
    interval_count = Column(Integer, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price_id": self.price_id,
            "product_id": self.product_id,
            "nickname": self.nickname,
            "unit_amount": self.unit_amount,
            "currency": self.currency,
            "interval": self.interval,
            "interval_count": self.interval_count,
        }

    def __repr__(self) -> str:
        return f"<StripePrice(id={self.price_id}, unit_amount={self.unit_amount}, currency={self.currency})>"
