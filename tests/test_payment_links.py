from datetime import timedelta

import pytest

from errors import AlreadyUsed, LinkExpired, LinkUsed, NotFound
from ledger import ExpenseLedger
from payment_links import PaymentLinkService
from schemas import utcnow


@pytest.fixture
def expense(store, alice):
    return ExpenseLedger(store).create_expense(alice.id, "Dinner", 90, [{"name": "Bob"}, {"name": "Carol"}])


@pytest.fixture
def service(store):
    return PaymentLinkService(store)


def test_link_details(service, expense):
    details = service.get_link_details(expense.participants[0].payment_link_id)
    assert details["amount"] == 30
    assert details["description"] == "Dinner"
    assert details["participantName"] == "Bob"
    assert details["requester"]["name"] == "Alice"


def test_unknown_link(service):
    with pytest.raises(NotFound):
        service.get_link_details("missing")
    with pytest.raises(NotFound):
        service.redeem("missing", "card")


def test_redeem_marks_link_and_participant_paid(service, store, expense):
    link_id = expense.participants[1].payment_link_id
    link = service.redeem(link_id, "card")

    assert link.used
    assert link.payment_method == "card"
    assert link.paid_at is not None

    share = expense.participants[1]
    assert share.paid
    assert share.paid_at == link.paid_at
    assert share.payment_method == "card"
    assert not expense.participants[0].paid


def test_redeem_twice_fails(service, expense):
    link_id = expense.participants[0].payment_link_id
    service.redeem(link_id, "card")
    with pytest.raises(AlreadyUsed):
        service.redeem(link_id, "card")
    with pytest.raises(LinkUsed):
        service.get_link_details(link_id)


def test_expired_link(service, store, expense):
    link = store.payment_links[0]
    link.expires_at = utcnow() - timedelta(minutes=1)
    with pytest.raises(LinkExpired):
        service.get_link_details(link.id)
    with pytest.raises(LinkExpired):
        service.redeem(link.id, "card")
    assert not link.used


def test_link_without_expiry_never_expires(service, store, expense):
    link = store.payment_links[0]
    link.expires_at = None
    assert service.get_link_details(link.id)["expiresAt"] is None
