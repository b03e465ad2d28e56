"""
Passwordless sign-up and log-in with one-time verification codes.

A contact is either an email address or a phone number. Codes are bound to
the normalized contact, live for ten minutes and can be redeemed once.
Requesting a new code for a contact replaces whatever code it had before.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

import phonenumbers
from email_validator import EmailNotValidError, validate_email

from auth import TokenIssuer
from database import Store
from errors import AccountExists, AccountNotFound, CodeInvalid, InvalidContact, UserNotFound, ValidationError
from notifier import Notifier
from schemas import User, VerificationCode, utcnow

logger = logging.getLogger(__name__)

CODE_TTL = timedelta(minutes=10)


def normalize_contact(contact: str, default_region: str = "US") -> Tuple[str, str]:
    """Return (contact_type, normalized contact) or raise InvalidContact."""
    contact = (contact or "").strip()
    if not contact:
        raise InvalidContact()
    if "@" in contact:
        try:
            validate_email(contact, check_deliverability=False)
        except EmailNotValidError:
            raise InvalidContact("Invalid email address")
        return "email", contact.lower()
    try:
        number = phonenumbers.parse(contact, default_region)
    except phonenumbers.NumberParseException:
        raise InvalidContact()
    if not phonenumbers.is_valid_number(number):
        raise InvalidContact("Invalid phone number")
    return "phone", phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164)


def generate_code() -> str:
    return str(secrets.randbelow(900000) + 100000)


@dataclass
class CodeDelivery:
    contact_type: str
    dev_mode: bool
    code: Optional[str] = None


class VerificationService:
    def __init__(self, store: Store, tokens: TokenIssuer, notifier: Notifier, default_region: str = "US"):
        self.store = store
        self.tokens = tokens
        self.notifier = notifier
        self.default_region = default_region

    def request_code(self, contact: str, name: Optional[str] = None, is_signup: bool = False) -> CodeDelivery:
        contact_type, normalized = normalize_contact(contact, self.default_region)
        self.notifier.ensure_channel(contact_type)
        with self.store.lock:
            existing = self.store.find_user_by_contact(contact_type, normalized)
            if is_signup:
                if existing:
                    raise AccountExists()
                if not name or not name.strip():
                    raise ValidationError("Name is required to sign up")
            elif not existing:
                raise AccountNotFound()

            code = generate_code()
            self.store.verification_codes = [
                vc for vc in self.store.verification_codes if vc.contact != normalized
            ]
            self.store.verification_codes.append(VerificationCode(
                contact=normalized,
                contact_type=contact_type,
                code=code,
                expires_at=utcnow() + CODE_TTL,
                name=name.strip() if is_signup else None,
                is_signup=is_signup,
            ))
            self.store.save()

        if self.notifier.deliver_code(contact_type, normalized, code):
            return CodeDelivery(contact_type=contact_type, dev_mode=False)
        logger.warning("DEV MODE: no notifier configured, code for %s is %s", normalized, code)
        return CodeDelivery(contact_type=contact_type, dev_mode=True, code=code)

    def verify_code(self, contact: str, code: str) -> Tuple[User, str]:
        contact_type, normalized = normalize_contact(contact, self.default_region)
        with self.store.lock:
            now = utcnow()
            record = next(
                (vc for vc in self.store.verification_codes
                 if vc.contact == normalized and vc.code == code and not vc.used and vc.expires_at > now),
                None,
            )
            if record is None:
                raise CodeInvalid()
            record.used = True
            self.store.save()

            user = self.store.find_user_by_contact(contact_type, normalized)
            if record.is_signup:
                if user:
                    raise AccountExists()
                user = User(name=record.name or normalized, verified=True, **{contact_type: normalized})
                self.store.users.append(user)
                self.store.save()
                logger.info("Created user %s for %s", user.id, normalized)
            elif user is None:
                raise UserNotFound()
            elif not user.verified:
                user.verified = True
                self.store.save()

        return user, self.tokens.issue(user.id, user.name)
