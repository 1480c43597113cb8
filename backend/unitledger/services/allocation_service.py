"""
Order Allocator

Assigns concrete inventory units (or already-tagged defect records) to the
line items of an order/sale, and reverses those assignments.

Nothing here commits. Every method runs inside the caller's transaction, so an
error on line N rolls back the flips already made for lines 1..N-1 together
with everything else: allocation is all-or-nothing.

Tie-break policy: "first available" is FIFO over the Unit Store order
(admitted_at, then barcode). No priority by cost or location.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError, UnitUnavailableError, ValidationError
from ..models import Order
from ..models.inventory import UNIT_STATUS_AVAILABLE
from ..money import parse_decimal, quantize_money
from .defect_registry import DefectRegistry
from .identifier_service import new_line_id
from .unit_store import UnitStore


def _line_key(line: dict) -> tuple:
    return (line.get("product_id"), bool(line.get("is_defective")), line.get("defect_id"))


class OrderAllocator:
    def __init__(self, units: UnitStore | None = None, defects: DefectRegistry | None = None):
        self.units = units or UnitStore()
        self.defects = defects or DefectRegistry()

    # ------------------------------------------------------------------
    # allocation
    # ------------------------------------------------------------------

    def allocate(self, order: Order, items: list[dict]) -> list[dict]:
        """Allocate every line; returns the lines with `id` and `barcodes` filled in."""
        return [self.allocate_line(order, item) for item in items]

    def allocate_line(self, order: Order, item: dict) -> dict:
        line = dict(item)
        line["id"] = line.get("id") or new_line_id()

        if line.get("is_defective") and line.get("defect_id"):
            line["barcodes"] = self._sell_defect(order, line)
        elif line.get("barcodes"):
            line["barcodes"] = self._take_scanned(order, line)
        else:
            line["barcodes"] = self._take_first_available(order, line["product_id"], line["qty"])
        return line

    def _sell_defect(self, order: Order, line: dict) -> list[str]:
        defect = self.defects.get(line["defect_id"])
        if defect is None:
            raise NotFoundError(
                f"Defective item {line['defect_id']} not found",
                details={"defect_id": line["defect_id"]},
            )
        price = quantize_money(parse_decimal(line.get("price")))
        self.defects.mark_sold(defect, price=price, order_id=order.id)

        if not line.get("product_id"):
            line["product_id"] = defect.product_id
        barcode = line.get("barcode")
        return [barcode] if barcode else []

    def _take_scanned(self, order: Order, line: dict) -> list[str]:
        """Units the cashier scanned; each must exist, match the product and be available."""
        codes = line["barcodes"]
        if len(codes) != line["qty"]:
            raise ValidationError(
                f"{len(codes)} barcode(s) given for a quantity of {line['qty']}",
                details={"product_id": line["product_id"], "barcodes": codes},
            )
        if len(set(codes)) != len(codes):
            raise ValidationError("The same barcode is listed twice", details={"barcodes": codes})

        for code in codes:
            unit = self.units.get(code)
            if unit is None:
                raise NotFoundError(f"Unit {code} not found", details={"barcode": code})
            if unit.product_id != line["product_id"]:
                raise UnitUnavailableError(
                    f"Unit {code} belongs to product {unit.product_id}, not {line['product_id']}",
                    details={"barcode": code, "product_id": unit.product_id},
                )
            if unit.status != UNIT_STATUS_AVAILABLE:
                raise UnitUnavailableError(
                    f"Unit {code} is not available (status: {unit.status})",
                    details={"barcode": code, "status": unit.status},
                )
            self.units.mark_sold(unit, order.id)
        return list(codes)

    def _take_first_available(self, order: Order, product_id: str, qty: int) -> list[str]:
        available = self.units.available_for_product(product_id)
        if len(available) < qty:
            raise InsufficientStockError(product_id, qty, len(available))

        taken = available[:qty]
        for unit in taken:
            self.units.mark_sold(unit, order.id)
        return [unit.barcode for unit in taken]

    # ------------------------------------------------------------------
    # reversal
    # ------------------------------------------------------------------

    def deallocate(self, order_id: int) -> dict:
        """
        Return every unit and defect held by the order.

        Idempotent: the second call finds nothing referencing the id.
        """
        defects = self.defects.for_order(order_id)
        for defect in defects:
            self.defects.mark_pending(defect)

        units = self.units.for_order(order_id)
        for unit in units:
            self.units.release(unit)

        if units or defects:
            current_app.logger.info(
                "Order %s deallocated: %s unit(s), %s defect(s)", order_id, len(units), len(defects)
            )
        return {"units_released": len(units), "defects_reverted": len(defects)}

    def release_line(self, order: Order, line: dict, barcodes: list[str] | None = None) -> None:
        """Release one line (or just `barcodes` of it) back to stock."""
        if line.get("is_defective") and line.get("defect_id"):
            defect = self.defects.get(line["defect_id"])
            if defect is not None and defect.order_id == order.id:
                self.defects.mark_pending(defect)
            return

        if barcodes is None:
            barcodes = line.get("barcodes") or []
        for code in barcodes:
            unit = self.units.get(code)
            if unit is not None and unit.order_id == order.id:
                self.units.release(unit)

    # ------------------------------------------------------------------
    # edit
    # ------------------------------------------------------------------

    def reallocate(self, order: Order, new_items: list[dict]) -> list[dict]:
        """
        Diff the order's current lines against `new_items`.

        Lines match by line id, else by (product_id, defect). Matched lines keep
        their barcodes; only quantity changes touch stock. Unmatched old lines
        are released first, then unmatched new lines are allocated.
        """
        old_lines = [dict(line) for line in (order.items or [])]
        unused = list(range(len(old_lines)))
        matches: dict[int, int] = {}

        for new_index, item in enumerate(new_items):
            line_id = item.get("id")
            if line_id is None:
                continue
            for old_index in unused:
                if old_lines[old_index].get("id") == line_id:
                    matches[new_index] = old_index
                    unused.remove(old_index)
                    break

        for new_index, item in enumerate(new_items):
            if new_index in matches:
                continue
            for old_index in unused:
                if _line_key(old_lines[old_index]) == _line_key(item):
                    matches[new_index] = old_index
                    unused.remove(old_index)
                    break

        # A match by id whose product or defect changed is a replacement. The
        # barcodes it still carries were assigned to the old line, not scanned.
        replaced: dict[int, set] = {}
        for new_index, old_index in list(matches.items()):
            if _line_key(old_lines[old_index]) != _line_key(new_items[new_index]):
                del matches[new_index]
                unused.append(old_index)
                replaced[new_index] = set(old_lines[old_index].get("barcodes") or [])

        for old_index in unused:
            self.release_line(order, old_lines[old_index])

        result = []
        for new_index, item in enumerate(new_items):
            if new_index not in matches:
                if new_index in replaced:
                    item = dict(item)
                    item["barcodes"] = [code for code in item.get("barcodes") or [] if code not in replaced[new_index]]
                result.append(self.allocate_line(order, item))
                continue
            result.append(self._carry_over(order, old_lines[matches[new_index]], item))
        return result

    def _carry_over(self, order: Order, old: dict, item: dict) -> dict:
        line = dict(item)
        line["id"] = old.get("id") or new_line_id()
        held = list(old.get("barcodes") or [])

        if line.get("is_defective") and line.get("defect_id"):
            price = quantize_money(parse_decimal(line.get("price")))
            defect = self.defects.get(line["defect_id"])
            if defect is not None and defect.order_id == order.id:
                self.defects.reprice(defect, price)
            line["barcodes"] = held
            return line

        qty = line["qty"]
        if qty > len(held):
            held += self._take_first_available(order, line["product_id"], qty - len(held))
        elif qty < len(held):
            self.release_line(order, old, barcodes=held[qty:])
            held = held[:qty]
        line["barcodes"] = held
        return line
