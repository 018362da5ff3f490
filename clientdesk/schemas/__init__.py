"""
Pydantic Schemas for API Validation

Request bodies forbid unknown fields; responses are read from ORM rows.
"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ==================== ENUMS ====================

class TicketStatusEnum(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class TicketPriorityEnum(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PaymentMethodEnum(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    CARD = "card"
    OTHER = "other"


# ==================== AUTH SCHEMAS ====================

class LoginRequest(RequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(RequestModel):
    email: Optional[str] = None


class ResetPasswordRequest(RequestModel):
    token: str = Field(..., min_length=1)
    password: str


class ChangePasswordRequest(RequestModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class UserResponse(ResponseModel):
    id: str
    name: str
    role: str
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthUserResponse(ResponseModel):
    id: str
    email: str
    email_confirmed: bool
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None


# ==================== CLIENT SCHEMAS ====================

class ClientCreate(RequestModel):
    company_name: str
    company_email: str
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    mof_number: Optional[str] = None
    notes: Optional[str] = None


class ClientUpdate(RequestModel):
    company_name: Optional[str] = Field(None, min_length=1)
    company_email: Optional[EmailStr] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    mof_number: Optional[str] = None
    notes: Optional[str] = None


class ClientResponse(ResponseModel):
    id: int
    company_name: str
    company_email: Optional[str] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    mof_number: Optional[str] = None
    notes: Optional[str] = None
    regular_balance: float = 0
    paid_amount: float = 0
    has_changed_password: bool = False
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeletionSummary(BaseModel):
    client_name: str
    tickets: int
    invoices: int
    receipts: int
    quotations: int
    updates: int
    files: List[str] = []


# ==================== LINE ITEMS ====================

class LineItemIn(RequestModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Decimal("0")


class LineItemsReplace(RequestModel):
    items: List[LineItemIn]


class LineItemResponse(ResponseModel):
    id: int
    position: int
    title: str
    description: Optional[str] = None
    price: float


# ==================== INVOICE SCHEMAS ====================

class InvoiceCreate(RequestModel):
    client_id: int
    description: str
    total_amount: Decimal
    issue_date: Optional[date] = None
    due_date: Optional[date] = None


class InvoiceUpdate(RequestModel):
    description: Optional[str] = Field(None, min_length=1)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    total_amount: Optional[Decimal] = None


class InvoiceResponse(ResponseModel):
    id: int
    invoice_number: str
    client_id: int
    quotation_id: Optional[int] = None
    issue_date: date
    due_date: Optional[date] = None
    description: str
    total_amount: float
    amount_paid: float
    balance_due: float
    status: str
    uses_items: bool = False
    created_at: Optional[datetime] = None


class SendEmailRequest(RequestModel):
    to: Optional[EmailStr] = None


# ==================== QUOTATION SCHEMAS ====================

class QuotationCreate(RequestModel):
    client_id: Optional[int] = None
    company_name: Optional[str] = None
    company_email: Optional[EmailStr] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    mof_number: Optional[str] = None
    notes: Optional[str] = None
    description: str
    terms_and_conditions: Optional[str] = None
    total_amount: Decimal
    issue_date: Optional[date] = None
    due_date: Optional[date] = None


class QuotationUpdate(RequestModel):
    client_id: Optional[int] = None
    company_name: Optional[str] = None
    company_email: Optional[EmailStr] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    mof_number: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    total_amount: Optional[Decimal] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[str] = None


class QuotationResponse(ResponseModel):
    id: int
    quotation_number: str
    client_id: Optional[int] = None
    company_name: Optional[str] = None
    company_email: Optional[str] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    description: str
    terms_and_conditions: Optional[str] = None
    total_amount: float
    issue_date: date
    due_date: Optional[date] = None
    status: str
    uses_items: bool = False
    is_converted: bool = False
    converted_to_invoice_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# ==================== RECEIPT SCHEMAS ====================

class ReceiptCreate(RequestModel):
    client_id: int
    invoice_id: int
    payment_date: date
    amount: Decimal
    payment_method: PaymentMethodEnum
    receipt_number: Optional[str] = None
    notes: Optional[str] = None


class ReceiptResponse(ResponseModel):
    id: int
    receipt_number: str
    client_id: int
    invoice_id: int
    payment_date: date
    amount: float
    payment_method: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# ==================== SUPPORT SCHEMAS ====================

class TicketStatusUpdate(RequestModel):
    status: TicketStatusEnum


class TicketResponse(ResponseModel):
    id: int
    client_id: int
    subject: str
    description: str
    status: str
    priority: str
    file_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UpdateCreate(RequestModel):
    title: Optional[str] = None
    content: Optional[str] = None
    update_type: Optional[str] = None
    client_id: Optional[int] = None
    ticket_id: Optional[int] = None


class UpdateResponse(ResponseModel):
    id: int
    title: str
    content: str
    update_type: str
    client_id: Optional[int] = None
    ticket_id: Optional[int] = None
    created_at: Optional[datetime] = None


# ==================== BRANDING SCHEMAS ====================

class BrandingUpdate(RequestModel):
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[EmailStr] = None
    company_website: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    font_family: Optional[str] = None
    logo_url: Optional[str] = None
    footer_text: Optional[str] = None


class BrandingResponse(ResponseModel):
    company_name: str
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    company_website: Optional[str] = None
    primary_color: str
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    font_family: Optional[str] = None
    logo_url: Optional[str] = None
    footer_text: Optional[str] = None
