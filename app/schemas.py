from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class LineItemType(str, Enum):
    SIMPLE = "Simple"
    PRODUCT = "Product"
    KIT = "Kit"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"


class BillLineItemInput(BaseModel):
    model_config = {"populate_by_name": True}

    item_type: Optional[LineItemType] = Field(default=None, alias="itemType")
    item_id: Optional[int] = Field(default=None, alias="itemId")
    item_model: Optional[str] = Field(default=None, alias="itemModel")
    name: Optional[str] = None
    quantity: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2, alias="taxRate")


class BillCreate(BaseModel):
    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "customerName": "Ravi Kumar",
                "customerPhone": "9876543210",
                "billDate": "2025-06-01T10:30:00+05:30",
                "shop": 1,
                "items": [
                    {"itemType": "Product", "itemId": 1, "name": "LED Bulb 9W", "quantity": 4, "rate": 120},
                    {"itemType": "Kit", "itemId": 1, "name": "Wiring Kit", "quantity": 1, "rate": 950},
                    {"itemType": "Simple", "name": "Installation", "quantity": 1, "rate": 300},
                ],
                "paymentStatus": "Partial",
                "paidAmount": 1000,
                "paymentMode": "UPI",
            }
        },
    }

    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    bill_date: Optional[datetime] = Field(default=None, alias="billDate")
    items: list[BillLineItemInput] = Field(default_factory=list)
    shop: Optional[int] = None
    grand_total: Optional[Decimal] = Field(default=None, alias="grandTotal", max_digits=14, decimal_places=2)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, alias="paymentStatus")
    paid_amount: Decimal = Field(default=Decimal("0"), alias="paidAmount", max_digits=14, decimal_places=2)
    payment_mode: Optional[str] = Field(default=None, alias="paymentMode")
    notes: Optional[str] = None
    bill_copy: Optional[str] = Field(default=None, alias="billCopy")
    created_by: Optional[str] = Field(default=None, alias="createdBy")


class BillUpdate(BaseModel):
    model_config = {"populate_by_name": True}

    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    bill_date: Optional[datetime] = Field(default=None, alias="billDate")
    items: Optional[list[BillLineItemInput]] = None
    grand_total: Optional[Decimal] = Field(default=None, alias="grandTotal", max_digits=14, decimal_places=2)
    payment_status: Optional[PaymentStatus] = Field(default=None, alias="paymentStatus")
    paid_amount: Optional[Decimal] = Field(default=None, alias="paidAmount", max_digits=14, decimal_places=2)
    payment_mode: Optional[str] = Field(default=None, alias="paymentMode")
    notes: Optional[str] = None
    bill_copy: Optional[str] = Field(default=None, alias="billCopy")
