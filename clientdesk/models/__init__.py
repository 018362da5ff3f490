"""
SQLAlchemy Models for ClientDesk
"""
from decimal import Decimal
import enum
import uuid

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date, Numeric,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from clientdesk.core.database import Base, utcnow


def new_uuid() -> str:
    return str(uuid.uuid4())


# ==================== ENUMS ====================

class UserRole(enum.Enum):
    ADMIN = "admin"
    CLIENT = "client"


class InvoiceStatus(enum.Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class QuotationStatus(enum.Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CONVERTED = "Converted"


class TicketStatus(enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


# ==================== AUTH & PROFILES ====================

class AuthUser(Base):
    """Login account. Owned by the auth side; profiles and clients refer to it by id only."""
    __tablename__ = 'auth_users'

    id = Column(String(36), primary_key=True, default=new_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    email_confirmed = Column(Boolean, default=True)
    is_active = Column(Boolean, default=True)
    last_sign_in_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class UserProfile(Base):
    """Profile row keyed by the auth account id"""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True)
    role = Column(String(20), nullable=False, default=UserRole.CLIENT.value)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


# ==================== CLIENTS ====================

class Client(Base):
    """Customer with (usually) a portal login"""
    __tablename__ = 'clients'

    id = Column(Integer, primary_key=True)
    company_name = Column(String(255), nullable=False)
    company_email = Column(String(255), nullable=True)
    contact_person_name = Column(String(255), nullable=True)
    contact_person_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    mof_number = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    regular_balance = Column(Numeric(15, 2), default=Decimal("0.00"))
    paid_amount = Column(Numeric(15, 2), default=Decimal("0.00"))
    has_changed_password = Column(Boolean, default=False)
    user_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    invoices = relationship("Invoice", back_populates="client", passive_deletes=True)
    receipts = relationship("Receipt", back_populates="client", passive_deletes=True)
    tickets = relationship("Ticket", back_populates="client", passive_deletes=True)

    __table_args__ = (
        Index('ix_clients_user_id', 'user_id'),
        Index('ix_clients_company_name', 'company_name'),
    )


# ==================== INVOICES ====================

class Invoice(Base):
    """Invoice billed to an existing client"""
    __tablename__ = 'invoices'

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String(50), nullable=False)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False)
    quotation_id = Column(Integer, ForeignKey('quotations.id', ondelete='SET NULL', use_alter=True), nullable=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    description = Column(Text, nullable=False)
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    amount_paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    balance_due = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    status = Column(String(20), default=InvoiceStatus.UNPAID.value)
    uses_items = Column(Boolean, default=False)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    client = relationship("Client", back_populates="invoices")
    items = relationship(
        "InvoiceItem", back_populates="invoice",
        order_by="InvoiceItem.position", cascade="all, delete-orphan", passive_deletes=True
    )
    receipts = relationship("Receipt", back_populates="invoice")

    __table_args__ = (
        UniqueConstraint('invoice_number', name='uq_invoice_number'),
        Index('ix_invoices_client_id', 'client_id'),
    )


class InvoiceItem(Base):
    """Invoice line item"""
    __tablename__ = 'invoice_items'

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(15, 2), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    invoice = relationship("Invoice", back_populates="items")


# ==================== QUOTATIONS ====================

class Quotation(Base):
    """Quotation, possibly for a company that is not a client yet"""
    __tablename__ = 'quotations'

    id = Column(Integer, primary_key=True)
    quotation_number = Column(String(50), nullable=False)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=True)

    # Prospective client data
    company_name = Column(String(255), nullable=True)
    company_email = Column(String(255), nullable=True)
    contact_person_name = Column(String(255), nullable=True)
    contact_person_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    mof_number = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    description = Column(Text, nullable=False)
    terms_and_conditions = Column(Text, nullable=True)
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    status = Column(String(20), default=QuotationStatus.DRAFT.value)
    uses_items = Column(Boolean, default=False)
    is_converted = Column(Boolean, default=False)
    converted_to_invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='SET NULL'), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    client = relationship("Client")
    items = relationship(
        "QuotationItem", back_populates="quotation",
        order_by="QuotationItem.position", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint('quotation_number', name='uq_quotation_number'),
        Index('ix_quotations_client_id', 'client_id'),
    )


class QuotationItem(Base):
    """Quotation line item"""
    __tablename__ = 'quotation_items'

    id = Column(Integer, primary_key=True)
    quotation_id = Column(Integer, ForeignKey('quotations.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(15, 2), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    quotation = relationship("Quotation", back_populates="items")


# ==================== RECEIPTS ====================

class Receipt(Base):
    """Payment against an invoice. Never updated after insert."""
    __tablename__ = 'receipts'

    id = Column(Integer, primary_key=True)
    receipt_number = Column(String(50), nullable=False)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False)
    invoice_id = Column(Integer, ForeignKey('invoices.id'), nullable=False)
    payment_date = Column(Date, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    client = relationship("Client", back_populates="receipts")
    invoice = relationship("Invoice", back_populates="receipts")

    __table_args__ = (
        Index('ix_receipts_client_id', 'client_id'),
        Index('ix_receipts_invoice_id', 'invoice_id'),
    )


# ==================== SUPPORT ====================

class Ticket(Base):
    """Support ticket opened by a client"""
    __tablename__ = 'tickets'

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), default=TicketStatus.OPEN.value)
    priority = Column(String(20), default="normal")
    file_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client = relationship("Client", back_populates="tickets")

    __table_args__ = (
        Index('ix_tickets_client_id', 'client_id'),
    )


class Update(Base):
    """Announcement, global when client_id is empty"""
    __tablename__ = 'updates'

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    update_type = Column(String(50), nullable=False)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=True)
    ticket_id = Column(Integer, ForeignKey('tickets.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_updates_client_id', 'client_id'),
    )


# ==================== CREDENTIALS ====================

class PasswordResetToken(Base):
    """Single-use password reset token"""
    __tablename__ = 'password_reset_tokens'

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), nullable=False)
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class PasswordStorage(Base):
    """Generated client credentials kept for admin display (database cache backend)"""
    __tablename__ = 'password_storage'

    client_id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)


# ==================== SETTINGS ====================

class BrandingSettings(Base):
    """Company branding used on documents and emails (single row)"""
    __tablename__ = 'branding_settings'

    id = Column(Integer, primary_key=True)
    company_name = Column(String(255), nullable=False)
    company_address = Column(Text, nullable=True)
    company_phone = Column(String(50), nullable=True)
    company_email = Column(String(255), nullable=True)
    company_website = Column(String(255), nullable=True)
    primary_color = Column(String(7), nullable=False)
    secondary_color = Column(String(7), nullable=True)
    accent_color = Column(String(7), nullable=True)
    font_family = Column(String(100), nullable=True)
    logo_url = Column(String(500), nullable=True)
    footer_text = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
