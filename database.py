"""
Persistent store for SplitEase.

All four collections live in memory and are the single source of truth.
JsonFileStore writes the whole document to disk after every mutation and
reads it back verbatim at startup.
"""

import json
import logging
import os
import threading
from typing import Dict, List, Optional

from schemas import Expense, PaymentLink, User, VerificationCode

logger = logging.getLogger(__name__)

# document key -> (attribute, model)
COLLECTIONS = {
    "expenses": ("expenses", Expense),
    "paymentLinks": ("payment_links", PaymentLink),
    "users": ("users", User),
    "verificationCodes": ("verification_codes", VerificationCode),
}


class Store:
    """Repository shared by every service. Subclasses decide what save() does.

    Services hold `lock` across each read-modify-save so requests served from
    the threadpool never interleave.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.expenses: List[Expense] = []
        self.payment_links: List[PaymentLink] = []
        self.users: List[User] = []
        self.verification_codes: List[VerificationCode] = []

    def save(self) -> None:
        raise NotImplementedError

    def to_document(self) -> Dict[str, list]:
        return {
            key: [item.model_dump(mode="json", by_alias=True) for item in getattr(self, attr)]
            for key, (attr, _) in COLLECTIONS.items()
        }

    def load_document(self, data: dict) -> None:
        for key, (attr, model) in COLLECTIONS.items():
            setattr(self, attr, [model.model_validate(item) for item in data.get(key) or []])

    # Lookups
    def find_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def find_user_by_contact(self, contact_type: str, contact: str) -> Optional[User]:
        return next((u for u in self.users if getattr(u, contact_type) == contact), None)

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def find_payment_link(self, link_id: str) -> Optional[PaymentLink]:
        return next((p for p in self.payment_links if p.id == link_id), None)


class InMemoryStore(Store):
    def save(self) -> None:
        pass


class JsonFileStore(Store):
    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            logger.info("No data file at %s, starting with empty data", self.path)
            return
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.load_document(data)
        logger.info(
            "Loaded %d users, %d expenses, %d payment links from %s",
            len(self.users), len(self.expenses), len(self.payment_links), self.path,
        )

    def save(self) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.to_document(), f, indent=2)
        except OSError:
            logger.exception("Failed to write data file %s", self.path)
            raise
