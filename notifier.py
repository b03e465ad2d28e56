"""
Delivery of verification codes over SMS (Twilio) and email (SendGrid).

Both providers are plain REST APIs, called with requests. A Notifier with no
provider configured at all is in development mode: nothing is sent and the
caller hands the code back itself. Once any provider is configured, a contact
type without one is refused.
"""

import logging
from typing import Optional

import requests

from errors import ChannelUnavailable, NotificationError

logger = logging.getLogger(__name__)

TWILIO_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


def code_message(code: str) -> str:
    return f"Your SplitEase verification code is {code}. It expires in 10 minutes."


class TwilioSms:
    def __init__(self, account_sid: str, auth_token: str, from_number: str, timeout: int = 10):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    def send(self, to: str, code: str) -> None:
        url = TWILIO_URL.format(sid=self.account_sid)
        try:
            r = requests.post(
                url,
                data={"To": to, "From": self.from_number, "Body": code_message(code)},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"SMS provider unreachable: {e}")
        if r.status_code >= 400:
            raise NotificationError(f"SMS provider error ({r.status_code})")


class SendGridMail:
    def __init__(self, api_key: str, from_email: str, timeout: int = 10):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout

    def send(self, to: str, code: str) -> None:
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email},
            "subject": "Your SplitEase verification code",
            "content": [{"type": "text/plain", "value": code_message(code)}],
        }
        try:
            r = requests.post(
                SENDGRID_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"Email provider unreachable: {e}")
        if r.status_code >= 400:
            raise NotificationError(f"Email provider error ({r.status_code})")


class Notifier:
    def __init__(self, sms: Optional[TwilioSms] = None, email: Optional[SendGridMail] = None):
        self.channels = {"phone": sms, "email": email}

    @property
    def dev_mode(self) -> bool:
        """No provider configured at all: codes are only logged and handed back."""
        return all(channel is None for channel in self.channels.values())

    def ensure_channel(self, contact_type: str) -> None:
        if not self.dev_mode and self.channels.get(contact_type) is None:
            raise ChannelUnavailable(f"Verification by {contact_type} is not available")

    def deliver_code(self, contact_type: str, contact: str, code: str) -> bool:
        """Send the code; False means dev mode, nothing was sent."""
        if self.dev_mode:
            return False
        self.ensure_channel(contact_type)
        channel = self.channels[contact_type]
        try:
            channel.send(contact, code)
        except NotificationError as e:
            logger.error("Could not deliver code to %s: %s", contact, e.message)
            raise
        logger.info("Sent verification code to %s via %s", contact, contact_type)
        return True
