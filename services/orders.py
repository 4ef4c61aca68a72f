"""
Order numbering and raw material deductions.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy.orm import Session

from models.party import Party
from models.order import Order, RawMaterialDeduction
from models.stock_ledger import StockTransaction, TransactionType, StockInSource, StockOutReason
from services.stock import find_material_by_name, post_movement

logger = logging.getLogger(__name__)


def generate_party_prefix(party_name: str) -> str:
    """First letter of up to three words; short results fall back to the first two letters."""
    prefix = ""
    for word in party_name.upper().split(" "):
        if len(prefix) < 3 and word:
            prefix += word[0]

    if len(prefix) < 2:
        prefix = party_name.strip().upper()[:2]

    return prefix


def format_order_number(prefix: str, number: int) -> str:
    return f"{prefix}/{number:03d}"


def preview_party_order_number(party: Party) -> str:
    prefix = party.prefix or generate_party_prefix(party.name)
    return format_order_number(prefix, (party.last_order_number or 0) + 1)


def next_party_order_number(db: Session, party: Party) -> str:
    """Reserve the party's next order number, assigning a prefix on first use."""
    locked = db.query(Party).filter(Party.id == party.id).with_for_update().one()

    if not locked.prefix:
        locked.prefix = generate_party_prefix(locked.name)

    locked.last_order_number = (locked.last_order_number or 0) + 1
    return format_order_number(locked.prefix, locked.last_order_number)


def line_amount(quantity, rate) -> Decimal:
    return (Decimal(str(quantity)) * Decimal(str(rate or 0))).quantize(Decimal("0.01"))


def post_order_deduction(
    db: Session,
    order: Order,
    deduction: RawMaterialDeduction,
    created_by: Optional[str] = None,
) -> Optional[StockTransaction]:
    """Take a deduction out of stock. Lines naming an unknown material are left unposted."""
    material = find_material_by_name(db, deduction.material_name, for_update=True)
    if material is None:
        logger.warning(
            f"Order {order.order_number}: material '{deduction.material_name}' not found, stock not deducted"
        )
        return None

    return post_movement(
        db,
        material,
        transaction_type=TransactionType.OUT.value,
        quantity=deduction.quantity,
        reason_type=StockOutReason.USED_IN_ORDER.value,
        party_id=order.party_id,
        order_id=order.id,
        order_number=order.order_number,
        rate=deduction.rate,
        remarks=f"Used in order {order.order_number}",
        created_by=created_by,
    )


def restore_order_deduction(
    db: Session,
    order: Order,
    deduction: RawMaterialDeduction,
    created_by: Optional[str] = None,
) -> Optional[StockTransaction]:
    """Put a removed deduction back into stock, if it was ever taken out."""
    material = find_material_by_name(db, deduction.material_name, for_update=True)
    if material is None:
        return None

    posted = (
        db.query(StockTransaction.id)
        .filter(
            StockTransaction.order_id == order.id,
            StockTransaction.material_id == material.id,
            StockTransaction.reason_type == StockOutReason.USED_IN_ORDER.value,
        )
        .first()
    )
    if posted is None:
        logger.info(
            f"Order {order.order_number}: deduction of '{deduction.material_name}' was never posted, nothing restored"
        )
        return None

    return post_movement(
        db,
        material,
        transaction_type=TransactionType.IN.value,
        quantity=deduction.quantity,
        source_type=StockInSource.RETURN.value,
        party_id=order.party_id,
        order_id=order.id,
        order_number=order.order_number,
        rate=deduction.rate,
        remarks=f"Restored from deleted deduction in order {order.order_number}",
        created_by=created_by,
    )
