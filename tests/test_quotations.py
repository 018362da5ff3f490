from datetime import date, timedelta
from decimal import Decimal

import pytest

from clientdesk.core.exceptions import NotFound, ValidationFailed
from clientdesk.models import AuthUser, Client, InvoiceItem
from clientdesk.schemas import LineItemIn, QuotationCreate, QuotationUpdate
from clientdesk.services.quotation_service import QuotationService


@pytest.fixture
def quotations(db, clients):
    return QuotationService(db, clients)


def prospect_quote(quotations, **overrides):
    fields = dict(
        company_name="Acme Corp",
        company_email="billing@acme.io",
        contact_person_name="Wile E.",
        description="Rocket skates",
        total_amount=Decimal("1200.00"),
        issue_date=date(2026, 3, 1),
    )
    fields.update(overrides)
    return quotations.create(QuotationCreate(**fields))


def test_create_starts_as_draft_with_number(quotations):
    quotation = prospect_quote(quotations)
    assert quotation.quotation_number == "QUO-001"
    assert quotation.status == "Draft"
    assert quotation.client_id is None


def test_create_requires_issue_date(quotations):
    with pytest.raises(ValidationFailed, match="issue date are required"):
        prospect_quote(quotations, issue_date=None)


def test_create_for_client_copies_company_details(quotations, make_client):
    client = make_client()["client"]
    quotation = quotations.create(QuotationCreate(
        client_id=client.id, description="Support plan", total_amount=Decimal("90.00"), issue_date=date(2026, 3, 1)
    ))
    assert quotation.company_name == "Acme Corp"
    assert quotation.company_email == "billing@acme.io"


def test_approve_prospect_creates_client_once(db, quotations):
    quotation = prospect_quote(quotations)

    result = quotations.approve(quotation.id)

    assert result["client_created"] is True
    assert result["password"]
    db.refresh(quotation)
    assert quotation.status == "Approved"
    assert quotation.client_id == result["client_id"]
    assert quotation.approved_at is not None
    assert db.query(Client).filter(Client.company_name == "Acme Corp").count() == 1

    with pytest.raises(ValidationFailed, match="already approved"):
        quotations.approve(quotation.id)
    assert db.query(Client).count() == 1


def test_approve_reuses_client_with_same_name(db, quotations, make_client):
    existing = make_client()["client"]
    quotation = prospect_quote(quotations, company_email="other@acme.io")

    result = quotations.approve(quotation.id)

    assert result == {"client_id": existing.id, "client_created": False}
    assert db.query(Client).count() == 1


def test_approve_without_email_creates_record_without_login(db, quotations):
    quotation = prospect_quote(quotations, company_name="Cash Only Ltd", company_email=None)

    result = quotations.approve(quotation.id)

    client = db.get(Client, result["client_id"])
    assert client.user_id is None
    assert "password" not in result
    assert db.query(AuthUser).count() == 0


def test_approve_with_email_already_registered_creates_record_without_login(db, quotations, make_client):
    existing = make_client()["client"]
    quotation = prospect_quote(quotations, company_name="Acme Holdings")

    result = quotations.approve(quotation.id)

    client = db.get(Client, result["client_id"])
    assert client.id != existing.id
    assert client.company_name == "Acme Holdings"
    assert client.company_email == "billing@acme.io"
    assert client.user_id is None
    assert result["client_created"] is True
    assert "password" not in result
    assert db.query(AuthUser).count() == 1


def test_convert_creates_invoice_with_items(db, quotations):
    quotation = prospect_quote(quotations, due_date=date(2026, 4, 15))
    quotations.set_items(quotation.id, [
        LineItemIn(title="Skates", price=Decimal("1000.00")),
        LineItemIn(title="Helmet", description="Safety first", price=Decimal("200.00")),
    ])
    approval = quotations.approve(quotation.id)

    invoice, client_id = quotations.convert(quotation.id)

    assert client_id == approval["client_id"]
    assert invoice.invoice_number == "INV-001"
    assert invoice.quotation_id == quotation.id
    assert invoice.due_date == date(2026, 4, 15)
    assert Decimal(invoice.total_amount) == Decimal("1200.00")
    assert invoice.status == "unpaid"
    items = db.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice.id).order_by(InvoiceItem.position).all()
    assert [(i.position, i.title) for i in items] == [(1, "Skates"), (2, "Helmet")]

    db.refresh(quotation)
    assert quotation.status == "Converted"
    assert quotation.is_converted is True
    assert quotation.converted_to_invoice_id == invoice.id

    client = db.get(Client, client_id)
    assert Decimal(client.regular_balance) == Decimal("1200.00")


def test_convert_defaults_due_date_to_thirty_days(quotations):
    quotation = prospect_quote(quotations)
    quotations.approve(quotation.id)

    invoice, _ = quotations.convert(quotation.id)

    assert invoice.due_date == date.today() + timedelta(days=30)


def test_convert_requires_approval(quotations):
    quotation = prospect_quote(quotations)
    with pytest.raises(ValidationFailed, match="must be approved before conversion"):
        quotations.convert(quotation.id)


def test_convert_twice_is_rejected(quotations):
    quotation = prospect_quote(quotations)
    quotations.approve(quotation.id)
    quotations.convert(quotation.id)

    with pytest.raises(ValidationFailed, match="already converted"):
        quotations.convert(quotation.id)
    with pytest.raises(ValidationFailed, match="cannot be edited"):
        quotations.update(quotation.id, QuotationUpdate(description="late change"))


def test_update_rejects_workflow_statuses(quotations):
    quotation = prospect_quote(quotations)

    updated = quotations.update(quotation.id, QuotationUpdate(status="Sent"))
    assert updated.status == "Sent"

    with pytest.raises(ValidationFailed, match="Status must be one of"):
        quotations.update(quotation.id, QuotationUpdate(status="Approved"))


def test_update_with_unknown_client_is_not_found(db, quotations, make_client):
    quotation = prospect_quote(quotations)

    with pytest.raises(NotFound, match="Client not found"):
        quotations.update(quotation.id, QuotationUpdate(client_id=9999))

    db.refresh(quotation)
    assert quotation.client_id is None

    existing = make_client(company_name="Acme Holdings", company_email="ops@acme.io")["client"]
    assert quotations.update(quotation.id, QuotationUpdate(client_id=existing.id)).client_id == existing.id
