import logging
from typing import Optional

from database import Store
from errors import AlreadyUsed, LinkExpired, LinkUsed, NotFound
from schemas import PaymentLink, utcnow

logger = logging.getLogger(__name__)


def is_expired(link: PaymentLink) -> bool:
    return link.expires_at is not None and link.expires_at < utcnow()


class PaymentLinkService:
    """Public, unauthenticated side of payment links: look one up, pay it once."""

    def __init__(self, store: Store):
        self.store = store

    def _find(self, link_id: str) -> PaymentLink:
        link = self.store.find_payment_link(link_id)
        if link is None:
            raise NotFound("Payment link not found")
        return link

    def get_link_details(self, link_id: str) -> dict:
        link = self._find(link_id)
        if link.used:
            raise LinkUsed()
        if is_expired(link):
            raise LinkExpired()
        return {
            "amount": link.amount,
            "description": link.description,
            "requester": link.requester.model_dump(mode="json", by_alias=True),
            "participantName": link.participant_name,
            "expiresAt": link.expires_at.isoformat() if link.expires_at else None,
        }

    def redeem(self, link_id: str, payment_method: Optional[str] = None) -> PaymentLink:
        with self.store.lock:
            link = self._find(link_id)
            if link.used:
                raise AlreadyUsed()
            if is_expired(link):
                raise LinkExpired()

            link.used = True
            link.paid_at = utcnow()
            link.payment_method = payment_method

            expense = self.store.find_expense(link.expense_id)
            if expense:
                share = next((p for p in expense.participants if p.payment_link_id == link.id), None)
                if share:
                    share.paid = True
                    share.paid_at = link.paid_at
                    share.payment_method = payment_method
            self.store.save()
        logger.info("Payment link %s paid (%s) for expense %s", link.id, payment_method, link.expense_id)
        return link
