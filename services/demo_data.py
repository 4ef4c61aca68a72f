"""
Sample data for trying the application out.

The demo orders carry raw material deductions but no ledger rows, the same
shape as data created before the ledger existed, so ``sync-order-ledger``
has something to backfill.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy.orm import Session

from models.material import Material, MaterialCategory
from models.order import Order, OrderItem, RawMaterialDeduction, OrderStatus
from models.party import Party
from models.stock_ledger import StockTransaction, TransactionType, StockInSource, StockOutReason
from services.orders import format_order_number, line_amount
from services.stock import post_movement
from utils.ids import generate_code

logger = logging.getLogger(__name__)

DEMO_PARTIES = [
    {"name": "Sharma Textiles", "prefix": "ST", "address": "Karol Bagh, Delhi", "phone": "9876543210", "email": "sharma@example.com"},
    {"name": "Gupta Garments", "prefix": "GG", "address": "Chandni Chowk, Delhi", "phone": "9876543211", "email": "gupta@example.com"},
    {"name": "Agarwal Fabrics", "prefix": "AF", "address": "Sadar Bazaar, Delhi", "phone": "9876543212", "email": "agarwal@example.com"},
    {"name": "Jain Brothers", "prefix": "JB", "address": "Mathura Road, Delhi", "phone": "9876543213"},
    {"name": "Bansal Trading Co", "prefix": "BT", "address": "Agra Highway, Mathura", "phone": "9876543214"},
]

DEMO_CATEGORIES = ["Fabrics", "Threads", "Buttons", "Zippers", "Laces"]

# (name, category index, unit, rate, opening stock, min stock)
DEMO_MATERIALS = [
    ("Cotton White", 0, "Mtr", 120, 500, 50),
    ("Silk Red", 0, "Mtr", 350, 200, 30),
    ("Polyester Blue", 0, "Mtr", 80, 300, 40),
    ("Thread Black", 1, "Pcs", 25, 1000, 100),
    ("Thread White", 1, "Pcs", 25, 800, 100),
    ("Button Gold", 2, "Pcs", 5, 5000, 500),
    ("Zipper Metal 6in", 3, "Pcs", 15, 200, 50),
    ("Lace Border Gold", 4, "Mtr", 45, 150, 20),
]

# party index -> (status, items, deductions)
DEMO_ORDERS = [
    (0, OrderStatus.PENDING, [
        ("Cotton Kurta - White", 10, 800),
        ("Silk Dupatta - Red", 5, 1400),
    ], [
        ("Cotton White", 10, 120),
        ("Thread White", 32, 25),
    ]),
    (1, OrderStatus.COMPLETED, [
        ("Polyester Shirt - Blue", 15, 600),
        ("Cotton Pant - Black", 8, 1000),
        ("Jacket - Navy", 5, 1000),
    ], [
        ("Polyester Blue", 20, 80),
        ("Button Gold", 200, 5),
        ("Zipper Metal 6in", 60, 15),
    ]),
]


def clear_business_data(db: Session) -> None:
    """Delete every order, ledger row, material, category and party (children first)."""
    for model in (RawMaterialDeduction, OrderItem, StockTransaction, Order, Material, MaterialCategory, Party):
        db.query(model).delete(synchronize_session=False)
    db.flush()


def import_demo_data(db: Session, created_by: Optional[str] = None) -> dict:
    clear_business_data(db)
    today = date.today()

    parties = []
    for data in DEMO_PARTIES:
        party = Party(id=generate_code(db, Party, "PTY"), **data)
        db.add(party)
        db.flush()
        parties.append(party)

    categories = []
    for name in DEMO_CATEGORIES:
        category = MaterialCategory(id=generate_code(db, MaterialCategory, "CAT"), name=name)
        db.add(category)
        db.flush()
        categories.append(category)

    materials = []
    for name, category_index, unit, rate, opening, min_stock in DEMO_MATERIALS:
        material = Material(
            id=generate_code(db, Material, "MAT"),
            name=name,
            category_id=categories[category_index].id,
            unit=unit,
            rate=Decimal(rate),
            opening_stock=Decimal(opening),
            current_stock=Decimal(opening),
            min_stock=Decimal(min_stock),
        )
        db.add(material)
        db.flush()
        materials.append(material)

        db.add(StockTransaction(
            material_id=material.id,
            transaction_type=TransactionType.IN.value,
            quantity=material.opening_stock,
            transaction_date=today,
            source_type=StockInSource.OPENING_STOCK.value,
            balance_after=material.opening_stock,
            remarks="Opening stock entry (Demo)",
            created_by=created_by,
        ))

    for party_index, order_status, items, deductions in DEMO_ORDERS:
        party = parties[party_index]
        party.last_order_number = (party.last_order_number or 0) + 1
        order = Order(
            id=generate_code(db, Order, "ORD", width=5),
            order_number=format_order_number(party.prefix, party.last_order_number),
            party_id=party.id,
            order_date=today,
            status=order_status.value,
        )
        for serial_no, (particular, quantity, rate) in enumerate(items, start=1):
            order.items.append(OrderItem(
                serial_no=serial_no,
                particular=particular,
                quantity=Decimal(quantity),
                quantity_unit="Dzn",
                rate_per_dzn=Decimal(rate),
                total=line_amount(quantity, rate),
            ))
        for material_name, quantity, rate in deductions:
            order.deductions.append(RawMaterialDeduction(
                material_name=material_name,
                quantity=Decimal(quantity),
                rate=Decimal(rate),
                amount=line_amount(quantity, rate),
            ))
        order.recalculate_totals()
        db.add(order)
        db.flush()

    post_movement(
        db, materials[0],
        transaction_type=TransactionType.IN.value,
        quantity=100,
        transaction_date=today,
        source_type=StockInSource.MARKET_PURCHASE.value,
        rate=115,
        remarks="Bulk purchase from local market",
        created_by=created_by,
    )
    post_movement(
        db, materials[3],
        transaction_type=TransactionType.OUT.value,
        quantity=50,
        transaction_date=today,
        reason_type=StockOutReason.SAMPLE.value,
        remarks="Sample for new customer",
        created_by=created_by,
    )

    db.commit()
    logger.info("Demo data imported")
    return {
        "parties": len(parties),
        "materials": len(materials),
        "orders": len(DEMO_ORDERS),
    }


def reset_business_data(db: Session) -> None:
    clear_business_data(db)
    db.commit()
    logger.info("All business data reset")
