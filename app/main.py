from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app import billing
from app.config import settings
from app.db import Base, SessionLocal, engine, ping
from app.errors import ConflictError, NotFoundError, register_error_handlers
from app.models import Bill, Invoice, Kit, KitComponent, Product, ShopProfile, Supplier
from app.numbering import generate_number, kit_sku, next_sequence, product_sku
from app.schemas import BillCreate, BillUpdate, PaymentStatus

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.auto_create_tables:
        logger.info("creating missing tables")
        Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Shop Billing Backend", lifespan=lifespan)
register_error_handlers(app)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _money(value: Any) -> float:
    return float(value or 0)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _commit(db: Session, conflict_message: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(conflict_message) from exc


def _paginate_by_page(query, limit: int, page: int) -> tuple[list[Any], dict]:
    total = query.count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {"total": total, "pages": math.ceil(total / limit), "page": page}


@app.get("/", tags=["root"])
def read_root() -> dict:
    return {"status": "ok"}


@app.get("/health", tags=["health"])
def health_check(db: Session = Depends(get_db)) -> dict:
    try:
        ping(db)
    except SQLAlchemyError as exc:
        logger.error("database ping failed: %s", exc)
        raise HTTPException(status_code=503, detail="database unavailable")
    return {"status": "healthy"}


# Shop profile


class BankDetails(BaseModel):
    model_config = {"populate_by_name": True, "str_strip_whitespace": True}
    account_holder_name: Optional[str] = Field(default=None, alias="accountHolderName")
    account_number: Optional[str] = Field(default=None, alias="accountNumber")
    ifsc: Optional[str] = None
    bank_name: Optional[str] = Field(default=None, alias="bankName")


class ShopProfileInput(BaseModel):
    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "json_schema_extra": {
            "example": {
                "shop_name": "Sharma Electricals",
                "gstin": "27ABCDE1234F1Z5",
                "address": "14 MG Road, Pune",
                "phone_number": "9822012345",
                "bankDetails": {"bankName": "HDFC Bank", "accountNumber": "50100012345678", "ifsc": "HDFC0001234"},
            }
        },
    }
    shop_name: str = Field(min_length=1)
    gstin: str = Field(min_length=1)
    address: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    logo_url: str = ""
    bank_details: BankDetails = Field(default_factory=BankDetails, alias="bankDetails")
    qr_code_path: str = Field(default="", alias="qrCodePath")


def _shop_data(shop: ShopProfile) -> dict:
    return {
        "id": shop.id,
        "shop_name": shop.shop_name,
        "gstin": shop.gstin,
        "address": shop.address,
        "phone_number": shop.phone_number,
        "logo_url": shop.logo_url,
        "bankDetails": {
            "accountHolderName": shop.bank_account_holder,
            "accountNumber": shop.bank_account_number,
            "ifsc": shop.bank_ifsc,
            "bankName": shop.bank_name,
        },
        "qrCodePath": shop.qr_code_path,
        "createdAt": _iso(shop.created_at),
        "updatedAt": _iso(shop.updated_at),
    }


def _apply_shop(shop: ShopProfile, payload: ShopProfileInput) -> None:
    shop.shop_name = payload.shop_name
    shop.gstin = payload.gstin
    shop.address = payload.address
    shop.phone_number = payload.phone_number
    shop.logo_url = payload.logo_url
    shop.bank_account_holder = payload.bank_details.account_holder_name
    shop.bank_account_number = payload.bank_details.account_number
    shop.bank_ifsc = payload.bank_details.ifsc
    shop.bank_name = payload.bank_details.bank_name
    shop.qr_code_path = payload.qr_code_path


def _get_shop(db: Session, shop_id: int) -> ShopProfile:
    shop = db.get(ShopProfile, shop_id)
    if not shop:
        raise NotFoundError("Shop profile not found.")
    return shop


@app.post("/api/shop-profile", status_code=201, tags=["Shop Profile"])
def create_shop_profile(payload: ShopProfileInput, db: Session = Depends(get_db)) -> dict:
    now = _now()
    shop = ShopProfile(created_at=now, updated_at=now)
    _apply_shop(shop, payload)
    db.add(shop)
    _commit(db, "A shop profile with this GSTIN already exists.")
    db.refresh(shop)
    return _shop_data(shop)


@app.get("/api/shop-profile", tags=["Shop Profile"])
def list_shop_profiles(db: Session = Depends(get_db)) -> list[dict]:
    shops = db.query(ShopProfile).order_by(ShopProfile.id).all()
    return [_shop_data(shop) for shop in shops]


@app.get("/api/shop-profile/{shop_id}", tags=["Shop Profile"])
def get_shop_profile(shop_id: int, db: Session = Depends(get_db)) -> dict:
    return _shop_data(_get_shop(db, shop_id))


@app.put("/api/shop-profile/{shop_id}", tags=["Shop Profile"])
def update_shop_profile(shop_id: int, payload: ShopProfileInput, db: Session = Depends(get_db)) -> dict:
    shop = _get_shop(db, shop_id)
    _apply_shop(shop, payload)
    shop.updated_at = _now()
    _commit(db, "A shop profile with this GSTIN already exists.")
    db.refresh(shop)
    return _shop_data(shop)


@app.delete("/api/shop-profile/{shop_id}", tags=["Shop Profile"])
def delete_shop_profile(shop_id: int, db: Session = Depends(get_db)) -> dict:
    shop = _get_shop(db, shop_id)
    in_use = (
        db.query(Product.id).filter(Product.shop_id == shop_id).first()
        or db.query(Kit.id).filter(Kit.shop_id == shop_id).first()
        or db.query(Bill.id).filter(Bill.shop_id == shop_id).first()
    )
    if in_use:
        raise ConflictError("Shop profile still has products, kits or bills.")
    db.delete(shop)
    db.commit()
    return {"message": "Shop profile deleted successfully."}


# Products


class ProductInput(BaseModel):
    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "json_schema_extra": {
            "example": {
                "name": "LED Bulb 9W",
                "category": "Lighting",
                "brand": "Philips",
                "price": 120,
                "costPrice": 85,
                "quantity": 200,
                "unitType": "pcs",
                "taxRate": 18,
                "shop": 1,
            }
        },
    }
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    product_type: Optional[str] = Field(default=None, alias="productType")
    brand: Optional[str] = None
    barcode: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    cost_price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=2, alias="costPrice")
    quantity: int = Field(ge=0)
    min_stock_level: int = Field(default=0, ge=0, alias="minStockLevel")
    unit_type: str = Field(min_length=1, alias="unitType")
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, alias="taxRate")
    tax_type: Literal["GST", "VAT", "None"] = Field(default="GST", alias="taxType")
    status: Literal["active", "inactive"] = "active"
    shop: int


def _product_data(product: Product) -> dict:
    return {
        "id": product.id,
        "code": product.code,
        "sku": product.sku,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "productType": product.product_type,
        "brand": product.brand,
        "barcode": product.barcode,
        "price": _money(product.price),
        "costPrice": _money(product.cost_price),
        "quantity": product.quantity,
        "minStockLevel": product.min_stock_level,
        "unitType": product.unit_type,
        "taxRate": _money(product.tax_rate),
        "taxType": product.tax_type,
        "status": product.status,
        "shop": product.shop_id,
        "createdAt": _iso(product.created_at),
        "updatedAt": _iso(product.updated_at),
    }


def _apply_product(product: Product, payload: ProductInput) -> None:
    product.shop_id = payload.shop
    product.name = payload.name
    product.description = payload.description
    product.category = payload.category
    product.product_type = payload.product_type
    product.brand = payload.brand
    product.barcode = payload.barcode
    product.price = payload.price
    product.cost_price = payload.cost_price
    product.quantity = payload.quantity
    product.min_stock_level = payload.min_stock_level
    product.unit_type = payload.unit_type
    product.tax_rate = payload.tax_rate
    product.tax_type = payload.tax_type
    product.status = payload.status


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found.")
    return product


@app.get("/api/products", tags=["Products"])
def list_products(shop: int = Query(), db: Session = Depends(get_db)) -> list[dict]:
    products = (
        db.query(Product)
        .filter(Product.shop_id == shop)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )
    return [_product_data(product) for product in products]


@app.get("/api/products/{product_id}", tags=["Products"])
def get_product(product_id: int, db: Session = Depends(get_db)) -> dict:
    return _product_data(_get_product(db, product_id))


@app.post("/api/products", status_code=201, tags=["Products"])
def create_product(payload: ProductInput, db: Session = Depends(get_db)) -> dict:
    _get_shop(db, payload.shop)
    code = next_sequence(db, "product")
    now = _now()
    product = Product(
        code=code,
        sku=product_sku(payload.category, payload.brand, code),
        created_at=now,
        updated_at=now,
    )
    _apply_product(product, payload)
    db.add(product)
    _commit(db, "SKU or product code conflict. Please try again.")
    db.refresh(product)
    logger.info("created product %s (%s)", product.sku, product.name)
    return _product_data(product)


@app.put("/api/products/{product_id}", tags=["Products"])
def update_product(product_id: int, payload: ProductInput, db: Session = Depends(get_db)) -> dict:
    product = _get_product(db, product_id)
    _get_shop(db, payload.shop)
    _apply_product(product, payload)
    product.updated_at = _now()
    db.commit()
    db.refresh(product)
    return _product_data(product)


@app.delete("/api/products/{product_id}", tags=["Products"])
def delete_product(product_id: int, db: Session = Depends(get_db)) -> dict:
    product = _get_product(db, product_id)
    kit_names = db.scalars(
        select(Kit.name)
        .join(KitComponent, KitComponent.kit_id == Kit.id)
        .where(KitComponent.product_id == product_id)
        .distinct()
    ).all()
    if kit_names:
        raise ConflictError(
            f'Product "{product.name}" is used by kit(s): {", ".join(sorted(kit_names))}.'
        )
    data = _product_data(product)
    db.delete(product)
    db.commit()
    return data


# Kits


class KitComponentInput(BaseModel):
    product: int
    quantity: int = Field(ge=1)


class KitInput(BaseModel):
    model_config = {
        "str_strip_whitespace": True,
        "json_schema_extra": {
            "example": {
                "name": "Wiring Kit",
                "description": "Switch board with bulbs",
                "price": 0,
                "products": [{"product": 1, "quantity": 2}, {"product": 2, "quantity": 1}],
                "shop": 1,
            }
        },
    }
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    products: list[KitComponentInput] = Field(min_length=1)
    shop: int


def _kit_data(db: Session, kit: Kit) -> dict:
    products = []
    for component in billing.kit_components(db, kit.id):
        product = db.get(Product, component.product_id)
        products.append(
            {
                "product": {
                    "id": component.product_id,
                    "name": product.name if product else None,
                    "price": _money(product.price) if product else None,
                    "sku": product.sku if product else None,
                    "quantity": product.quantity if product else None,
                },
                "quantity": component.quantity,
            }
        )
    return {
        "id": kit.id,
        "code": kit.code,
        "sku": kit.sku,
        "name": kit.name,
        "description": kit.description,
        "price": _money(kit.price),
        "products": products,
        "shop": kit.shop_id,
        "createdAt": _iso(kit.created_at),
        "updatedAt": _iso(kit.updated_at),
    }


def _set_kit_components(db: Session, kit: Kit, payload: KitInput) -> None:
    db.query(KitComponent).filter(KitComponent.kit_id == kit.id).delete(synchronize_session=False)
    computed_price = Decimal("0")
    for position, component in enumerate(payload.products):
        product = db.get(Product, component.product)
        if not product:
            raise NotFoundError(f"Product with ID {component.product} not found.")
        computed_price += product.price * component.quantity
        db.add(
            KitComponent(
                kit_id=kit.id,
                product_id=component.product,
                quantity=component.quantity,
                position=position,
            )
        )
    kit.price = payload.price if payload.price > 0 else computed_price


def _get_kit(db: Session, kit_id: int) -> Kit:
    kit = db.get(Kit, kit_id)
    if not kit:
        raise NotFoundError("Kit not found.")
    return kit


@app.get("/api/kits", tags=["Kits"])
def list_kits(shop: int = Query(), db: Session = Depends(get_db)) -> list[dict]:
    kits = db.query(Kit).filter(Kit.shop_id == shop).order_by(Kit.id).all()
    return [_kit_data(db, kit) for kit in kits]


@app.get("/api/kits/{kit_id}", tags=["Kits"])
def get_kit(kit_id: int, db: Session = Depends(get_db)) -> dict:
    return _kit_data(db, _get_kit(db, kit_id))


@app.post("/api/kits", status_code=201, tags=["Kits"])
def create_kit(payload: KitInput, db: Session = Depends(get_db)) -> dict:
    _get_shop(db, payload.shop)
    code = next_sequence(db, "kit")
    now = _now()
    kit = Kit(
        shop_id=payload.shop,
        code=code,
        sku=kit_sku(payload.name, code),
        name=payload.name,
        description=payload.description,
        created_at=now,
        updated_at=now,
    )
    db.add(kit)
    try:
        db.flush()
        _set_kit_components(db, kit, payload)
    except NotFoundError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("A kit with this name or SKU already exists.") from exc
    _commit(db, "A kit with this name or SKU already exists.")
    db.refresh(kit)
    logger.info("created kit %s (%s)", kit.sku, kit.name)
    return _kit_data(db, kit)


@app.put("/api/kits/{kit_id}", tags=["Kits"])
def update_kit(kit_id: int, payload: KitInput, db: Session = Depends(get_db)) -> dict:
    kit = _get_kit(db, kit_id)
    _get_shop(db, payload.shop)
    kit.shop_id = payload.shop
    kit.name = payload.name
    kit.description = payload.description
    kit.updated_at = _now()
    try:
        _set_kit_components(db, kit, payload)
    except NotFoundError:
        db.rollback()
        raise
    _commit(db, "A kit with this name already exists.")
    db.refresh(kit)
    return _kit_data(db, kit)


@app.delete("/api/kits/{kit_id}", tags=["Kits"])
def delete_kit(kit_id: int, db: Session = Depends(get_db)) -> dict:
    kit = _get_kit(db, kit_id)
    db.query(KitComponent).filter(KitComponent.kit_id == kit.id).delete(synchronize_session=False)
    db.delete(kit)
    db.commit()
    return {"message": "Kit deleted successfully."}


# Bills


def _bill_data(db: Session, bill: Bill) -> dict:
    items = [
        {
            "itemType": line.item_type,
            "itemId": line.item_id,
            "itemModel": line.item_model,
            "name": line.name,
            "quantity": float(line.quantity),
            "rate": _money(line.rate),
            "taxRate": _money(line.tax_rate),
            "total": _money(line.total),
        }
        for line in billing.bill_line_items(db, bill.id)
    ]
    return {
        "id": bill.id,
        "billNumber": bill.bill_number,
        "customerName": bill.customer_name,
        "customerPhone": bill.customer_phone,
        "billDate": _iso(bill.bill_date),
        "items": items,
        "grandTotal": _money(bill.grand_total),
        "paymentStatus": bill.payment_status,
        "paidAmount": _money(bill.paid_amount),
        "paymentMode": bill.payment_mode,
        "notes": bill.notes,
        "billCopy": bill.bill_copy,
        "shop": bill.shop_id,
        "createdBy": bill.created_by,
        "createdAt": _iso(bill.created_at),
        "updatedAt": _iso(bill.updated_at),
    }


def _bill_search(query, search: str):
    if not search:
        return query
    pattern = f"%{search}%"
    return query.filter(
        or_(
            Bill.customer_name.ilike(pattern),
            Bill.customer_phone.ilike(pattern),
            Bill.payment_status.ilike(pattern),
        )
    )


@app.get("/api/bills", tags=["Bills"])
def list_bills(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=500),
    search: str = Query(default=""),
    db: Session = Depends(get_db),
) -> dict:
    query = _bill_search(db.query(Bill), search).order_by(Bill.id)
    bills, pagination = _paginate_by_page(query, limit, page)
    return {"bills": [_bill_data(db, bill) for bill in bills], "pagination": pagination}


@app.get("/api/bills/export", tags=["Bills"])
def export_bills(search: str = Query(default=""), db: Session = Depends(get_db)) -> list[dict]:
    bills = _bill_search(db.query(Bill), search).order_by(Bill.bill_date.desc(), Bill.id.desc()).all()
    return [_bill_data(db, bill) for bill in bills]


@app.post("/api/bills", status_code=201, tags=["Bills"])
def create_bill(payload: BillCreate, db: Session = Depends(get_db)) -> dict:
    bill = billing.create_bill(db, payload)
    return _bill_data(db, bill)


@app.get("/api/bills/{bill_id}", tags=["Bills"])
def get_bill(bill_id: int, db: Session = Depends(get_db)) -> dict:
    return _bill_data(db, billing.get_bill(db, bill_id))


@app.put("/api/bills/{bill_id}", tags=["Bills"])
def update_bill(bill_id: int, payload: BillUpdate, db: Session = Depends(get_db)) -> dict:
    bill = billing.update_bill(db, bill_id, payload)
    return _bill_data(db, bill)


@app.put("/api/bills/{bill_id}/clear-due", tags=["Bills"])
def clear_bill_due(bill_id: int, db: Session = Depends(get_db)) -> dict:
    bill = billing.clear_due(db, bill_id)
    return _bill_data(db, bill)


@app.delete("/api/bills/{bill_id}", tags=["Bills"])
def delete_bill(bill_id: int, db: Session = Depends(get_db)) -> dict:
    restocked = billing.delete_bill(db, bill_id)
    return {"message": "Bill deleted and inventory restocked.", "restocked": restocked}


# Suppliers


class SupplierInput(BaseModel):
    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "json_schema_extra": {
            "example": {
                "name": "Havells Distributors",
                "contactPerson": "Anil Joshi",
                "phone": "9890011223",
                "email": "orders@havells-dist.in",
                "address": "Plot 7, MIDC Bhosari, Pune",
                "gstId": "27AAACH1234K1Z2",
            }
        },
    }
    name: str = Field(min_length=1)
    contact_person: Optional[str] = Field(default=None, alias="contactPerson")
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_id: Optional[str] = Field(default=None, alias="gstId")
    notes: Optional[str] = None


def _supplier_data(supplier: Supplier) -> dict:
    return {
        "id": supplier.id,
        "name": supplier.name,
        "contactPerson": supplier.contact_person,
        "phone": supplier.phone,
        "email": supplier.email,
        "address": supplier.address,
        "gstId": supplier.gst_id,
        "notes": supplier.notes,
        "createdAt": _iso(supplier.created_at),
        "updatedAt": _iso(supplier.updated_at),
    }


def _apply_supplier(supplier: Supplier, payload: SupplierInput) -> None:
    supplier.name = payload.name
    supplier.contact_person = payload.contact_person
    supplier.phone = payload.phone
    supplier.email = payload.email
    supplier.address = payload.address
    supplier.gst_id = payload.gst_id
    supplier.notes = payload.notes


def _get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found.")
    return supplier


@app.get("/api/suppliers", tags=["Suppliers"])
def list_suppliers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=1000),
    search: str = Query(default=""),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(Supplier)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Supplier.name.ilike(pattern),
                Supplier.contact_person.ilike(pattern),
                Supplier.phone.ilike(pattern),
            )
        )
    suppliers, pagination = _paginate_by_page(query.order_by(Supplier.name, Supplier.id), limit, page)
    return {"suppliers": [_supplier_data(supplier) for supplier in suppliers], "pagination": pagination}


@app.get("/api/suppliers/{supplier_id}", tags=["Suppliers"])
def get_supplier(supplier_id: int, db: Session = Depends(get_db)) -> dict:
    return _supplier_data(_get_supplier(db, supplier_id))


@app.post("/api/suppliers", status_code=201, tags=["Suppliers"])
def create_supplier(payload: SupplierInput, db: Session = Depends(get_db)) -> dict:
    now = _now()
    supplier = Supplier(created_at=now, updated_at=now)
    _apply_supplier(supplier, payload)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return _supplier_data(supplier)


@app.put("/api/suppliers/{supplier_id}", tags=["Suppliers"])
def update_supplier(supplier_id: int, payload: SupplierInput, db: Session = Depends(get_db)) -> dict:
    supplier = _get_supplier(db, supplier_id)
    _apply_supplier(supplier, payload)
    supplier.updated_at = _now()
    db.commit()
    db.refresh(supplier)
    return _supplier_data(supplier)


@app.delete("/api/suppliers/{supplier_id}", tags=["Suppliers"])
def delete_supplier(supplier_id: int, db: Session = Depends(get_db)) -> dict:
    supplier = _get_supplier(db, supplier_id)
    if db.query(Invoice.id).filter(Invoice.supplier_id == supplier_id).first():
        raise ConflictError(f'Supplier "{supplier.name}" still has invoices.')
    db.delete(supplier)
    db.commit()
    return {"message": "Supplier deleted successfully."}


# Invoices


class InvoiceInput(BaseModel):
    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "json_schema_extra": {
            "example": {
                "supplierId": 1,
                "supplierInvoiceNumber": "HD/2025/0931",
                "invoiceDate": "2025-06-03T00:00:00+05:30",
                "dueDate": "2025-07-03T00:00:00+05:30",
                "amount": 48250,
                "paymentStatus": "Partial",
                "paidAmount": 20000,
                "paymentMode": "Cheque",
            }
        },
    }
    supplier_id: int = Field(alias="supplierId")
    supplier_invoice_number: Optional[str] = Field(default=None, alias="supplierInvoiceNumber")
    invoice_date: datetime = Field(alias="invoiceDate")
    due_date: datetime = Field(alias="dueDate")
    amount: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, alias="paymentStatus")
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=2, alias="paidAmount")
    payment_mode: Optional[str] = Field(default=None, alias="paymentMode")
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    model_config = {"populate_by_name": True, "str_strip_whitespace": True}
    supplier_id: Optional[int] = Field(default=None, alias="supplierId")
    supplier_invoice_number: Optional[str] = Field(default=None, alias="supplierInvoiceNumber")
    invoice_date: Optional[datetime] = Field(default=None, alias="invoiceDate")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    payment_status: Optional[PaymentStatus] = Field(default=None, alias="paymentStatus")
    paid_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=14, decimal_places=2, alias="paidAmount")
    payment_mode: Optional[str] = Field(default=None, alias="paymentMode")
    notes: Optional[str] = None


# Columns that cannot be cleared by sending null.
_INVOICE_REQUIRED = {"supplier_id", "invoice_date", "due_date", "amount", "payment_status", "paid_amount"}


def _invoice_data(db: Session, invoice: Invoice) -> dict:
    supplier = db.get(Supplier, invoice.supplier_id)
    return {
        "id": invoice.id,
        "invoiceNumber": invoice.invoice_number,
        "supplierInvoiceNumber": invoice.supplier_invoice_number,
        "supplierId": invoice.supplier_id,
        "supplier": {"id": supplier.id, "name": supplier.name} if supplier else None,
        "invoiceDate": _iso(invoice.invoice_date),
        "dueDate": _iso(invoice.due_date),
        "amount": _money(invoice.amount),
        "paymentStatus": invoice.payment_status,
        "paidAmount": _money(invoice.paid_amount),
        "paymentMode": invoice.payment_mode,
        "notes": invoice.notes,
        "createdAt": _iso(invoice.created_at),
        "updatedAt": _iso(invoice.updated_at),
    }


def _settle_invoice(invoice: Invoice) -> None:
    if invoice.payment_status == PaymentStatus.PAID.value:
        invoice.paid_amount = invoice.amount


def _get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found.")
    return invoice


@app.get("/api/invoices", tags=["Invoices"])
def list_invoices(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=500),
    search: str = Query(default=""),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(Invoice).join(Supplier, Supplier.id == Invoice.supplier_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Supplier.name.ilike(pattern),
                Invoice.payment_status.ilike(pattern),
                Invoice.invoice_number.ilike(pattern),
            )
        )
    invoices, pagination = _paginate_by_page(query.order_by(Invoice.id), limit, page)
    return {"invoices": [_invoice_data(db, invoice) for invoice in invoices], "pagination": pagination}


@app.get("/api/invoices/{invoice_id}", tags=["Invoices"])
def get_invoice(invoice_id: int, db: Session = Depends(get_db)) -> dict:
    return _invoice_data(db, _get_invoice(db, invoice_id))


@app.post("/api/invoices", status_code=201, tags=["Invoices"])
def create_invoice(payload: InvoiceInput, db: Session = Depends(get_db)) -> dict:
    _get_supplier(db, payload.supplier_id)
    now = _now()
    invoice = Invoice(
        invoice_number=generate_number(db, "invoice"),
        supplier_invoice_number=payload.supplier_invoice_number,
        supplier_id=payload.supplier_id,
        invoice_date=payload.invoice_date,
        due_date=payload.due_date,
        amount=payload.amount,
        payment_status=payload.payment_status.value,
        paid_amount=payload.paid_amount,
        payment_mode=payload.payment_mode,
        notes=payload.notes,
        created_at=now,
        updated_at=now,
    )
    _settle_invoice(invoice)
    db.add(invoice)
    _commit(db, "Invoice number conflict. Please try again.")
    db.refresh(invoice)
    logger.info("created invoice %s for supplier %s", invoice.invoice_number, invoice.supplier_id)
    return _invoice_data(db, invoice)


@app.put("/api/invoices/{invoice_id}", tags=["Invoices"])
def update_invoice(invoice_id: int, payload: InvoiceUpdate, db: Session = Depends(get_db)) -> dict:
    invoice = _get_invoice(db, invoice_id)
    if payload.supplier_id is not None:
        _get_supplier(db, payload.supplier_id)
    for name in payload.model_fields_set:
        value = getattr(payload, name)
        if value is None and name in _INVOICE_REQUIRED:
            continue
        if name == "payment_status":
            value = value.value
        setattr(invoice, name, value)
    _settle_invoice(invoice)
    invoice.updated_at = _now()
    db.commit()
    db.refresh(invoice)
    return _invoice_data(db, invoice)


@app.put("/api/invoices/{invoice_id}/clear-due", tags=["Invoices"])
def clear_invoice_due(invoice_id: int, db: Session = Depends(get_db)) -> dict:
    invoice = _get_invoice(db, invoice_id)
    invoice.payment_status = PaymentStatus.PAID.value
    invoice.paid_amount = invoice.amount
    invoice.updated_at = _now()
    db.commit()
    db.refresh(invoice)
    return _invoice_data(db, invoice)


@app.delete("/api/invoices/{invoice_id}", tags=["Invoices"])
def delete_invoice(invoice_id: int, db: Session = Depends(get_db)) -> dict:
    invoice = _get_invoice(db, invoice_id)
    db.delete(invoice)
    db.commit()
    return {"message": "Invoice deleted successfully."}


# Dues


@app.get("/api/dues/customers", tags=["Dues"])
def list_customer_dues(db: Session = Depends(get_db)) -> list[dict]:
    bills = (
        db.query(Bill)
        .filter(Bill.payment_status != PaymentStatus.PAID.value)
        .order_by(Bill.bill_date, Bill.id)
        .all()
    )
    return [
        {
            "id": bill.id,
            "billNumber": bill.bill_number,
            "customerName": bill.customer_name,
            "customerPhone": bill.customer_phone,
            "billDate": _iso(bill.bill_date),
            "grandTotal": _money(bill.grand_total),
            "paidAmount": _money(bill.paid_amount),
            "balance": _money(Decimal(bill.grand_total) - Decimal(bill.paid_amount)),
            "paymentStatus": bill.payment_status,
        }
        for bill in bills
    ]


@app.get("/api/dues/suppliers", tags=["Dues"])
def list_supplier_dues(db: Session = Depends(get_db)) -> list[dict]:
    rows = (
        db.query(Invoice, Supplier)
        .join(Supplier, Supplier.id == Invoice.supplier_id)
        .filter(Invoice.payment_status != PaymentStatus.PAID.value)
        .order_by(Invoice.due_date, Invoice.id)
        .all()
    )
    return [
        {
            "id": invoice.id,
            "invoiceNumber": invoice.invoice_number,
            "supplier": {"id": supplier.id, "name": supplier.name},
            "invoiceDate": _iso(invoice.invoice_date),
            "dueDate": _iso(invoice.due_date),
            "amount": _money(invoice.amount),
            "paidAmount": _money(invoice.paid_amount),
            "balance": _money(Decimal(invoice.amount) - Decimal(invoice.paid_amount)),
            "paymentStatus": invoice.payment_status,
        }
        for invoice, supplier in rows
    ]
