from datetime import timedelta

import pytest

from conftest import RecordingChannel
from errors import (
    AccountExists,
    AccountNotFound,
    ChannelUnavailable,
    CodeInvalid,
    InvalidContact,
    NotificationError,
    UserNotFound,
    ValidationError,
)
from notifier import Notifier
from schemas import utcnow
from verification import VerificationService, generate_code, normalize_contact


@pytest.fixture
def service(store, tokens):
    return VerificationService(store, tokens, Notifier())


def test_normalize_email_is_lowercased():
    assert normalize_contact(" Alice@SplitEase.IO ") == ("email", "alice@splitease.io")


def test_normalize_phone_to_e164():
    assert normalize_contact("(650) 253-0000") == ("phone", "+16502530000")
    assert normalize_contact("+1 650-253-0000") == ("phone", "+16502530000")


@pytest.mark.parametrize("contact", ["", "not a contact", "12345", "alice@"])
def test_normalize_rejects_garbage(contact):
    with pytest.raises(InvalidContact):
        normalize_contact(contact)


def test_generate_code_is_six_digits():
    for _ in range(50):
        code = generate_code()
        assert len(code) == 6 and code.isdigit()


def test_malformed_contact_stores_nothing(service, store):
    with pytest.raises(InvalidContact):
        service.request_code("nope", name="Carol", is_signup=True)
    assert store.verification_codes == []


def test_signup_creates_verified_user(service, store, tokens):
    delivery = service.request_code("Carol@SplitEase.io", name="Carol", is_signup=True)
    assert delivery.dev_mode and delivery.contact_type == "email"

    user, token = service.verify_code("carol@splitease.io", delivery.code)
    assert user.name == "Carol"
    assert user.email == "carol@splitease.io"
    assert user.verified
    assert store.users == [user]
    assert tokens.verify(token) == {"id": user.id, "name": "Carol"}


def test_signup_requires_name(service):
    with pytest.raises(ValidationError):
        service.request_code("carol@splitease.io", is_signup=True)


def test_signup_rejects_existing_account(service, alice):
    with pytest.raises(AccountExists):
        service.request_code("ALICE@splitease.io", name="Alice again", is_signup=True)


def test_login_requires_existing_account(service):
    with pytest.raises(AccountNotFound):
        service.request_code("+16502530000")


def test_login_returns_existing_user(service, bob):
    delivery = service.request_code("650 253 0000")
    assert delivery.contact_type == "phone"
    user, _ = service.verify_code("+16502530000", delivery.code)
    assert user is bob


def test_new_request_replaces_previous_code(service, store):
    first = service.request_code("carol@splitease.io", name="Carol", is_signup=True).code
    second = service.request_code("carol@splitease.io", name="Carol", is_signup=True).code
    assert len(store.verification_codes) == 1
    if first != second:
        with pytest.raises(CodeInvalid):
            service.verify_code("carol@splitease.io", first)
    user, _ = service.verify_code("carol@splitease.io", second)
    assert user.name == "Carol"


def test_code_is_single_use(service, alice):
    code = service.request_code("alice@splitease.io").code
    service.verify_code("alice@splitease.io", code)
    with pytest.raises(CodeInvalid):
        service.verify_code("alice@splitease.io", code)


def test_wrong_code_is_rejected(service, alice):
    code = service.request_code("alice@splitease.io").code
    wrong = "000000" if code != "000000" else "111111"
    with pytest.raises(CodeInvalid):
        service.verify_code("alice@splitease.io", wrong)


def test_expired_code_is_rejected(service, store, alice):
    code = service.request_code("alice@splitease.io").code
    store.verification_codes[0].expires_at = utcnow() - timedelta(seconds=1)
    with pytest.raises(CodeInvalid):
        service.verify_code("alice@splitease.io", code)


def test_login_fails_when_user_was_removed(service, store, alice):
    code = service.request_code("alice@splitease.io").code
    store.users.clear()
    with pytest.raises(UserNotFound):
        service.verify_code("alice@splitease.io", code)
    assert store.verification_codes[0].used


def test_configured_channel_receives_code(store, tokens, alice):
    email = RecordingChannel()
    service = VerificationService(store, tokens, Notifier(email=email))
    delivery = service.request_code("alice@splitease.io")
    assert not delivery.dev_mode
    assert delivery.code is None
    assert email.sent == [("alice@splitease.io", store.verification_codes[0].code)]


def test_notifier_failure_keeps_stored_code(store, tokens, bob):
    class BrokenChannel:
        def send(self, to, code):
            raise NotificationError("SMS provider error (500)")

    service = VerificationService(store, tokens, Notifier(sms=BrokenChannel()))
    with pytest.raises(NotificationError):
        service.request_code("+16502530000")
    assert len(store.verification_codes) == 1


def test_unconfigured_channel_is_refused_when_another_is_live(store, tokens, alice):
    service = VerificationService(store, tokens, Notifier(sms=RecordingChannel()))
    with pytest.raises(ChannelUnavailable):
        service.request_code("alice@splitease.io")
    assert store.verification_codes == []
