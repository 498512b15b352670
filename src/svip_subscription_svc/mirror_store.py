import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from svip_subscription_svc.exceptions import MirrorStoreError
from svip_subscription_svc.models.price import StripePrice
from svip_subscription_svc.models.subscription import Subscription


class MirrorStore:
    """
    Local copy of Stripe prices and subscriptions.

    Every failing database operation is rolled back and re-raised as
    MirrorStoreError so callers only deal with one error type.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logging.error(e, exc_info=True)
            raise MirrorStoreError(str(e)) from e

    def insert_prices(self, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Insert price rows in one commit. No upsert: a price_id that is already
        mirrored makes the whole batch fail.
        """
        prices = [StripePrice(**row) for row in rows]
        try:
            self.db.add_all(prices)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise MirrorStoreError(str(e)) from e
        self._commit()
        logging.info(f"Mirrored {len(prices)} price(s): {[p.price_id for p in prices]}")
        return [p.to_dict() for p in prices]

    def list_prices(self) -> List[Dict[str, Any]]:
        try:
            prices = self.db.query(StripePrice).order_by(StripePrice.unit_amount.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logging.error(e, exc_info=True)
            raise MirrorStoreError(str(e)) from e
        return [p.to_dict() for p in prices]

    def find_subscription(self, subscription_id: str) -> Optional[Dict[str, Any]]:
        try:
            subscription = self.db.query(Subscription).filter(
                Subscription.stripe_subscription_id == subscription_id
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logging.error(e, exc_info=True)
            raise MirrorStoreError(str(e)) from e
        return subscription.to_dict() if subscription else None

    def delete_subscription(self, subscription_id: str) -> int:
        """Delete the mirrored row and return how many rows were removed."""
        try:
            deleted = self.db.query(Subscription).filter(
                Subscription.stripe_subscription_id == subscription_id
            ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            logging.error(e, exc_info=True)
            raise MirrorStoreError(str(e)) from e
        self._commit()
        return deleted

    def upsert_subscription(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            subscription = self.db.merge(Subscription(**row))
        except SQLAlchemyError as e:
            self.db.rollback()
            logging.error(e, exc_info=True)
            raise MirrorStoreError(str(e)) from e
        self._commit()
        return subscription.to_dict()
