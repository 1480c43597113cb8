# Overview: Flask API routes for POS sales; same allocation and ledger semantics as orders.

from flask import Blueprint

from ..models.orders import ORDER_KIND_SALE
from .orders import create_response, delete_response, get_response, list_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales():
    return list_response(ORDER_KIND_SALE)


@sales_bp.post("")
def create_sale():
    """
    Record a POS sale.

    Lines may carry the scanned `barcodes`; otherwise units are taken
    first-available like an order.
    """
    return create_response(ORDER_KIND_SALE)


@sales_bp.get("/<int:sale_id>")
def get_sale(sale_id: int):
    return get_response(sale_id, ORDER_KIND_SALE)


@sales_bp.delete("/<int:sale_id>")
def void_sale(sale_id: int):
    return delete_response(sale_id, ORDER_KIND_SALE)
