"""
Expense ledger: expenses owned by their payer, split equally between the
payer and every participant. Each participant gets one payment link.
"""

import logging
import math
from datetime import timedelta
from typing import Dict, List, Optional

from database import Store
from errors import NotFound, UserNotFound, ValidationError
from schemas import Expense, ParticipantShare, PayerSnapshot, PaymentLink, new_id, utcnow

logger = logging.getLogger(__name__)

PAYMENT_LINK_TTL = timedelta(days=7)


class ExpenseLedger:
    def __init__(self, store: Store, payment_link_ttl: Optional[timedelta] = PAYMENT_LINK_TTL):
        self.store = store
        self.payment_link_ttl = payment_link_ttl

    def create_expense(
        self,
        payer_id: str,
        description: Optional[str],
        amount: Optional[float],
        participants: Optional[List[dict]],
        split_type: Optional[str] = "equal",
    ) -> Expense:
        if not description or not description.strip() or not amount or not participants:
            raise ValidationError()
        if not math.isfinite(amount) or amount < 0:
            raise ValidationError("Amount must be a positive number")
        if any(not (p.get("name") or "").strip() for p in participants):
            raise ValidationError("Every participant needs a name")

        payer = self.store.find_user(payer_id)
        if payer is None:
            raise UserNotFound()
        paid_by = PayerSnapshot(id=payer.id, name=payer.name, phone=payer.phone, email=payer.email)

        total_people = len(participants) + 1
        amount_per_person = round(amount / total_people, 2)
        expense_id = new_id()
        created_at = utcnow()
        expires_at = created_at + self.payment_link_ttl if self.payment_link_ttl else None

        links = []
        shares = []
        for p in participants:
            link = PaymentLink(
                expense_id=expense_id,
                participant_name=p["name"].strip(),
                participant_email=p.get("email"),
                amount=amount_per_person,
                description=description,
                requester=paid_by,
                created_at=created_at,
                expires_at=expires_at,
            )
            links.append(link)
            shares.append(ParticipantShare(
                name=link.participant_name,
                email=link.participant_email,
                amount=amount_per_person,
                payment_link_id=link.id,
            ))

        expense = Expense(
            id=expense_id,
            description=description,
            amount=amount,
            paid_by=paid_by,
            split_type=split_type or "equal",
            participants=shares,
            total_people=total_people,
            amount_per_person=amount_per_person,
            created_at=created_at,
        )
        with self.store.lock:
            self.store.payment_links.extend(links)
            self.store.expenses.append(expense)
            self.store.save()
        logger.info("Expense %s created by %s: %.2f split %d ways", expense.id, payer.id, amount, total_people)
        return expense

    def list_expenses(self, user_id: str) -> List[Expense]:
        return [e for e in self.store.expenses if e.paid_by.id == user_id]

    def get_expense(self, user_id: str, expense_id: str) -> Expense:
        expense = self.store.find_expense(expense_id)
        if expense is None or expense.paid_by.id != user_id:
            raise NotFound("Expense not found")
        return expense

    def compute_stats(self, user_id: str) -> Dict[str, float]:
        with self.store.lock:
            expenses = self.list_expenses(user_id)
            expense_ids = {e.id for e in expenses}
            links = [p for p in self.store.payment_links if p.expense_id in expense_ids]
            return {
                "total_expenses": len(expenses),
                "total_amount": sum(e.amount for e in expenses),
                "total_paid": len([p for p in links if p.used]),
                "total_pending": len([p for p in links if not p.used]),
            }
