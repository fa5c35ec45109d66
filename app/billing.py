"""Bill creation, editing and deletion with their inventory side effects.

Creating a bill deducts stock for every Product line and for every component
of every Kit line, mints a bill number and stores the bill, all inside one
database transaction. A failure anywhere rolls the whole thing back, so
callers never see a partial deduction. Deleting or re-itemising a bill puts
the recorded deductions back in the same all-or-nothing way.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import BillingError, InsufficientStockError, NotFoundError, PersistenceError, ValidationError
from app.models import Bill, BillLineItem, BillStockMovement, Kit, KitComponent, Product, ShopProfile
from app.numbering import generate_number
from app.schemas import BillCreate, BillLineItemInput, BillUpdate, LineItemType, PaymentStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Bounds of the Numeric(14, 3) quantity and Numeric(14, 2) money columns.
QUANTITY_PLACES = 3
QUANTITY_LIMIT = Decimal(10) ** 11
MONEY_PLACES = 2
MONEY_LIMIT = Decimal(10) ** 12


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _fits(value: Decimal, limit: Decimal, places: int) -> bool:
    if not value.is_finite() or abs(value) >= limit:
        return False
    return -value.normalize().as_tuple().exponent <= places


def _line_total(item: BillLineItemInput) -> Decimal:
    return (item.quantity * item.rate).quantize(CENT)


def validate_items(items: Optional[list[BillLineItemInput]]) -> None:
    """Reject malformed line items before anything touches the database."""
    if not items:
        raise ValidationError("Bill must contain at least one item.")
    subtotal = Decimal("0")
    for item in items:
        if item.item_type is None:
            raise ValidationError("Each item must have an itemType (Simple, Product or Kit).")
        if not item.name or not item.name.strip():
            raise ValidationError("Each item must have a name.")
        quantity = item.quantity
        if quantity is None or not _fits(quantity, QUANTITY_LIMIT, QUANTITY_PLACES) or quantity <= 0:
            raise ValidationError(f'Item "{item.name}" must have a valid quantity.')
        rate = item.rate
        if rate is None or not _fits(rate, MONEY_LIMIT, MONEY_PLACES) or rate < 0:
            raise ValidationError(f'Item "{item.name}" must have a valid rate.')
        subtotal += _line_total(item)
        if subtotal >= MONEY_LIMIT:
            raise ValidationError(f'Item "{item.name}" takes the bill total over the maximum amount.')
        if item.item_type is LineItemType.SIMPLE:
            continue
        if item.item_id is None:
            raise ValidationError(
                f'Item "{item.name}" must have an itemId for type {item.item_type.value}.'
            )
        if item.item_model is not None and item.item_model != item.item_type.value:
            raise ValidationError(
                f'Item "{item.name}" has itemModel {item.item_model} but itemType {item.item_type.value}.'
            )
        if item.quantity != item.quantity.to_integral_value():
            raise ValidationError(f'Item "{item.name}" must have a whole-number quantity.')


class StockBook:
    """Stock changes made by one transaction.

    Products are read with ``SELECT ... FOR UPDATE`` the first time they are
    touched and reused afterwards, so repeated lines for the same product are
    checked against the quantity already reduced by earlier lines.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.movements: list[tuple[int, int]] = []
        self._products: dict[int, Optional[Product]] = {}

    def product(self, product_id: int) -> Optional[Product]:
        if product_id not in self._products:
            self._products[product_id] = self.db.get(Product, product_id, with_for_update=True)
        return self._products[product_id]

    def take(self, product: Product, required: int, kit_name: Optional[str] = None) -> None:
        if product.quantity < required:
            raise InsufficientStockError(product.name, product.quantity, required, kit_name)
        product.quantity -= required
        product.updated_at = _now()
        self.movements.append((product.id, required))

    def deduct_items(self, items: list[BillLineItemInput]) -> None:
        for item in items:
            handler = _DEDUCTIONS.get(item.item_type)
            if handler is not None:
                handler(self, item)

    def restock_bill(self, bill_id: int) -> int:
        movements = self.db.scalars(
            select(BillStockMovement)
            .where(BillStockMovement.bill_id == bill_id)
            .order_by(BillStockMovement.id)
        ).all()
        restocked = 0
        for movement in movements:
            product = self.product(movement.product_id)
            if product is None:
                logger.warning(
                    "bill %s: product %s no longer exists, %s units not restocked",
                    bill_id,
                    movement.product_id,
                    movement.quantity,
                )
                continue
            product.quantity += movement.quantity
            product.updated_at = _now()
            restocked += movement.quantity
        self.db.query(BillStockMovement).filter(BillStockMovement.bill_id == bill_id).delete(
            synchronize_session=False
        )
        return restocked

    def record(self, bill_id: int) -> None:
        for product_id, quantity in self.movements:
            self.db.add(BillStockMovement(bill_id=bill_id, product_id=product_id, quantity=quantity))


def _deduct_product_line(book: StockBook, item: BillLineItemInput) -> None:
    product = book.product(item.item_id)
    if product is None:
        raise NotFoundError(f"Product with ID {item.item_id} not found.")
    book.take(product, int(item.quantity))


def _deduct_kit_line(book: StockBook, item: BillLineItemInput) -> None:
    kit = book.db.get(Kit, item.item_id)
    if kit is None:
        raise NotFoundError(f"Kit with ID {item.item_id} not found.")
    for component in kit_components(book.db, kit.id):
        product = book.product(component.product_id)
        if product is None:
            raise NotFoundError(
                f'Product with ID {component.product_id} in kit "{kit.name}" not found.'
            )
        book.take(product, component.quantity * int(item.quantity), kit_name=kit.name)


_DEDUCTIONS: dict[LineItemType, Callable[[StockBook, BillLineItemInput], None]] = {
    LineItemType.PRODUCT: _deduct_product_line,
    LineItemType.KIT: _deduct_kit_line,
}


def kit_components(db: Session, kit_id: int) -> list[KitComponent]:
    return list(
        db.scalars(
            select(KitComponent)
            .where(KitComponent.kit_id == kit_id)
            .order_by(KitComponent.position, KitComponent.id)
        ).all()
    )


def bill_line_items(db: Session, bill_id: int) -> list[BillLineItem]:
    return list(
        db.scalars(
            select(BillLineItem)
            .where(BillLineItem.bill_id == bill_id)
            .order_by(BillLineItem.position)
        ).all()
    )


@contextmanager
def _transaction(db: Session, action: str) -> Iterator[None]:
    try:
        yield
        db.commit()
    except BillingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("could not %s, transaction rolled back", action)
        raise PersistenceError(f"Could not {action}; no changes were saved. Please retry.") from exc


def _write_line_items(db: Session, bill_id: int, items: list[BillLineItemInput]) -> Decimal:
    subtotal = Decimal("0")
    for position, item in enumerate(items):
        total = _line_total(item)
        subtotal += total
        db.add(
            BillLineItem(
                bill_id=bill_id,
                position=position,
                item_type=item.item_type.value,
                item_id=None if item.item_type is LineItemType.SIMPLE else item.item_id,
                item_model=None if item.item_type is LineItemType.SIMPLE else item.item_type.value,
                name=item.name.strip(),
                quantity=item.quantity,
                rate=item.rate,
                tax_rate=item.tax_rate,
                total=total,
            )
        )
    return subtotal


def _settle_payment(bill: Bill) -> None:
    if bill.payment_status == PaymentStatus.PAID.value:
        bill.paid_amount = bill.grand_total


def get_bill(db: Session, bill_id: int) -> Bill:
    bill = db.get(Bill, bill_id)
    if bill is None:
        raise NotFoundError("Bill not found.")
    return bill


def create_bill(db: Session, payload: BillCreate) -> Bill:
    validate_items(payload.items)
    if payload.shop is None:
        raise ValidationError("Bill must belong to a shop.")

    with _transaction(db, "create the bill"):
        if db.get(ShopProfile, payload.shop) is None:
            raise NotFoundError(f"Shop profile with ID {payload.shop} not found.")
        book = StockBook(db)
        book.deduct_items(payload.items)

        now = _now()
        bill = Bill(
            bill_number=generate_number(db, "bill"),
            shop_id=payload.shop,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            bill_date=payload.bill_date or now,
            grand_total=Decimal("0"),
            payment_status=payload.payment_status.value,
            paid_amount=payload.paid_amount,
            payment_mode=payload.payment_mode,
            notes=payload.notes,
            bill_copy=payload.bill_copy,
            created_by=payload.created_by,
            created_at=now,
            updated_at=now,
        )
        db.add(bill)
        db.flush()
        subtotal = _write_line_items(db, bill.id, payload.items)
        bill.grand_total = payload.grand_total if payload.grand_total is not None else subtotal
        _settle_payment(bill)
        book.record(bill.id)

    logger.info(
        "created bill %s with %d items, %d stock movements",
        bill.bill_number,
        len(payload.items),
        len(book.movements),
    )
    return bill


def update_bill(db: Session, bill_id: int, payload: BillUpdate) -> Bill:
    """Update bill header fields and, when ``items`` is given, re-itemise it.

    Re-itemising restocks the quantities the bill originally deducted and
    then deducts for the new items, as one transaction.
    """
    fields = payload.model_fields_set
    if "items" in fields:
        validate_items(payload.items)

    with _transaction(db, "update the bill"):
        bill = get_bill(db, bill_id)
        for name in ("customer_name", "customer_phone", "payment_mode", "notes", "bill_copy"):
            if name in fields:
                setattr(bill, name, getattr(payload, name))
        for name in ("bill_date", "paid_amount"):
            if name in fields and getattr(payload, name) is not None:
                setattr(bill, name, getattr(payload, name))
        if "payment_status" in fields and payload.payment_status is not None:
            bill.payment_status = payload.payment_status.value

        subtotal = None
        if "items" in fields:
            book = StockBook(db)
            restocked = book.restock_bill(bill.id)
            book.deduct_items(payload.items)
            db.query(BillLineItem).filter(BillLineItem.bill_id == bill.id).delete(synchronize_session=False)
            subtotal = _write_line_items(db, bill.id, payload.items)
            book.record(bill.id)
            logger.info(
                "bill %s re-itemised: %d units restocked, %d stock movements applied",
                bill.bill_number,
                restocked,
                len(book.movements),
            )

        if "grand_total" in fields and payload.grand_total is not None:
            bill.grand_total = payload.grand_total
        elif subtotal is not None:
            bill.grand_total = subtotal
        _settle_payment(bill)
        bill.updated_at = _now()

    return bill


def clear_due(db: Session, bill_id: int) -> Bill:
    with _transaction(db, "clear the bill due"):
        bill = get_bill(db, bill_id)
        bill.payment_status = PaymentStatus.PAID.value
        bill.paid_amount = bill.grand_total
        bill.updated_at = _now()
    return bill


def delete_bill(db: Session, bill_id: int) -> int:
    """Delete a bill and return the number of units put back into stock."""
    with _transaction(db, "delete the bill"):
        bill = get_bill(db, bill_id)
        bill_number = bill.bill_number
        restocked = StockBook(db).restock_bill(bill.id)
        db.query(BillLineItem).filter(BillLineItem.bill_id == bill.id).delete(synchronize_session=False)
        db.delete(bill)
    logger.info("deleted bill %s, %d units restocked", bill_number, restocked)
    return restocked
