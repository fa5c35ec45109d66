from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
MONEY_TYPE = Numeric(14, 2)


class ShopProfile(Base):
    __tablename__ = "shop_profile"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    shop_name: Mapped[str] = mapped_column(Text, nullable=False)
    gstin: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    phone_number: Mapped[str] = mapped_column(Text, nullable=False)
    logo_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    bank_account_holder: Mapped[str | None] = mapped_column(Text)
    bank_account_number: Mapped[str | None] = mapped_column(Text)
    bank_ifsc: Mapped[str | None] = mapped_column(Text)
    bank_name: Mapped[str | None] = mapped_column(Text)
    qr_code_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)


class Product(Base):
    __tablename__ = "product"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_product_quantity_non_negative"),
        Index("ix_product_shop_id", "shop_id"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    shop_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("shop_profile.id"), nullable=False
    )
    code: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    sku: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)
    product_type: Mapped[str | None] = mapped_column(Text)
    brand: Mapped[str | None] = mapped_column(Text)
    barcode: Mapped[str | None] = mapped_column(Text)
    price: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False)
    cost_price: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False, default=0)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit_type: Mapped[str] = mapped_column(Text, nullable=False)
    tax_rate: Mapped[Numeric] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    tax_type: Mapped[str] = mapped_column(Text, nullable=False, default="GST")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)


class Kit(Base):
    __tablename__ = "kit"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    shop_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("shop_profile.id"), nullable=False
    )
    code: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    sku: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False, default=0)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)


class KitComponent(Base):
    __tablename__ = "kit_component"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_kit_component_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    kit_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("kit.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Bill(Base):
    __tablename__ = "bill"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bill_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    shop_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("shop_profile.id"), nullable=False
    )
    customer_name: Mapped[str | None] = mapped_column(Text)
    customer_phone: Mapped[str | None] = mapped_column(Text)
    bill_date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    grand_total: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False)
    payment_status: Mapped[str] = mapped_column(Text, nullable=False, default="Pending")
    paid_amount: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False, default=0)
    payment_mode: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    bill_copy: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)


class BillLineItem(Base):
    __tablename__ = "bill_line_item"
    __table_args__ = (Index("ix_bill_line_item_bill_id", "bill_id"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bill_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("bill.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    item_type: Mapped[str] = mapped_column(Text, nullable=False)
    # Product or Kit id depending on item_type; not a foreign key.
    item_id: Mapped[int | None] = mapped_column(BigInteger)
    item_model: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Numeric] = mapped_column(Numeric(14, 3), nullable=False)
    rate: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False)
    tax_rate: Mapped[Numeric] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    total: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False)


class BillStockMovement(Base):
    __tablename__ = "bill_stock_movement"
    __table_args__ = (Index("ix_bill_stock_movement_bill_id", "bill_id"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bill_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("bill.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)


class Supplier(Base):
    __tablename__ = "supplier"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    contact_person: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    gst_id: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)


class Invoice(Base):
    __tablename__ = "invoice"
    __table_args__ = (Index("ix_invoice_supplier_id", "supplier_id"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    # Number printed on the supplier's own document.
    supplier_invoice_number: Mapped[str | None] = mapped_column(Text)
    supplier_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("supplier.id"), nullable=False
    )
    invoice_date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    due_date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False)
    payment_status: Mapped[str] = mapped_column(Text, nullable=False, default="Pending")
    paid_amount: Mapped[Numeric] = mapped_column(MONEY_TYPE, nullable=False, default=0)
    payment_mode: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)


class Counter(Base):
    __tablename__ = "counter"
    __table_args__ = (
        Index("ix_counter_type_year", "type", "year", unique=True),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    # Empty string for counters that are not bucketed by financial year.
    year: Mapped[str] = mapped_column(Text, nullable=False, default="")
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
