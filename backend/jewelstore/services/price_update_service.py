# Overview: Bulk repricing of products from the rate master (preview, commit, recalculate).

"""
Price Update Service

BULK UPDATE (bulk_update_prices): reprice a set of products against ONE rate.
- preview=True computes every change and persists nothing
- preview=False runs the same computation, then writes calculated_price,
  last_price_update and rate_used_id for every changed product plus one audit
  row, all in a single transaction. A failure rolls the whole set back.

RECALCULATE (recalculate_prices): reprice products against EACH product's own
current rate. Products with a price override are never touched.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, RateMaster
from ..money import ZERO, as_float, round_money
from ..time_utils import to_utc_z, utcnow
from . import audit_service
from .concurrency import run_with_retry
from .pricing import calculate_purchase_cost, is_price_outdated, percentage_change, price_for_product
from .rate_service import get_current_rate
from .tenant_service import NotFoundError, get_owned, scoped_query


SKIP_REASON_CUSTOM_PRICE = "Has custom price override"


def _matching_products(shop_id: int, rate: RateMaster, filters: dict) -> list[Product]:
    filters = filters or {}
    query = scoped_query(Product, shop_id).filter(
        Product.is_active.is_(True),
        Product.metal_type == (filters.get("metalType") or rate.metal_type),
        Product.purity == (filters.get("purity") or rate.purity),
    )
    collection = filters.get("collectionName")
    if collection:
        query = query.filter(func.lower(Product.collection_name).contains(collection.lower()))
    product_ids = filters.get("productIds")
    if product_ids:
        query = query.filter(Product.id.in_(product_ids))
    return query.order_by(Product.id.asc()).all()


def _rate_summary(rate: RateMaster) -> dict:
    return {
        "id": rate.id,
        "metalType": rate.metal_type,
        "purity": rate.purity,
        "ratePerGram": as_float(rate.rate_per_gram),
        "effectiveDate": to_utc_z(rate.effective_date),
    }


def _old_rate(product: Product):
    if product.rate_used_id is None:
        return ZERO
    used = db.session.get(RateMaster, product.rate_used_id)
    return used.rate_per_gram if used is not None else ZERO


def _plan(shop_id: int, rate: RateMaster, filters: dict, skip_custom_prices: bool):
    """Compute (products, price_changes, skipped, new_prices) without writing anything."""
    products = _matching_products(shop_id, rate, filters)
    if not products:
        raise NotFoundError("Products matching the criteria")

    changes: list[dict] = []
    skipped: list[dict] = []
    new_prices: dict[int, object] = {}

    for product in products:
        if skip_custom_prices and product.price_override is not None:
            skipped.append({
                "id": product.id,
                "name": product.name,
                "barcode": product.barcode,
                "reason": SKIP_REASON_CUSTOM_PRICE,
            })
            continue

        calc = price_for_product(product, rate)
        old_price = round_money(product.calculated_price) if product.calculated_price is not None else round_money(ZERO)
        new_price = calc.total_price
        difference = new_price - old_price

        new_prices[product.id] = new_price
        changes.append({
            "productId": product.id,
            "productName": product.name,
            "barcode": product.barcode,
            "metalType": product.metal_type,
            "purity": product.purity,
            "netWeight": as_float(product.net_weight),
            "wastagePercent": as_float(product.wastage_percent),
            "effectiveWeight": as_float(calc.effective_weight),
            "oldRate": as_float(_old_rate(product)),
            "newRate": as_float(rate.rate_per_gram),
            "oldPrice": as_float(old_price),
            "newPrice": as_float(new_price),
            "priceDifference": as_float(difference),
            "percentageChange": as_float(percentage_change(old_price, new_price)),
            "makingCharges": as_float(product.making_charges),
            "stoneValue": as_float(product.stone_value or ZERO),
        })

    return products, changes, skipped, new_prices


def bulk_update_prices(
    *,
    shop_id: int,
    rate_id: int,
    product_filters: dict | None = None,
    skip_custom_prices: bool = True,
    preview: bool = False,
    performed_by: str | None = None,
    user_id: int | None = None,
) -> dict:
    """
    Reprice products against one rate.

    product_filters (camelCase keys): metalType and purity default to the
    rate's own; collectionName is a case-insensitive substring match;
    productIds restricts to specific products.

    Raises NotFoundError when the rate is missing or nothing matches.
    """
    rate = get_owned(RateMaster, rate_id, shop_id)

    if preview:
        products, changes, skipped, _ = _plan(shop_id, rate, product_filters, skip_custom_prices)
        return {
            "preview": True,
            "totalProducts": len(products),
            "productsToUpdate": len(changes),
            "productsUpdated": 0,
            "productsSkipped": len(skipped),
            "priceChanges": changes,
            "skippedProducts": skipped,
            "rateMaster": _rate_summary(rate),
        }

    def _op() -> dict:
        fresh_rate = get_owned(RateMaster, rate_id, shop_id)
        products, changes, skipped, new_prices = _plan(shop_id, fresh_rate, product_filters, skip_custom_prices)
        now = utcnow()

        for product in products:
            if product.id not in new_prices:
                continue
            product.calculated_price = new_prices[product.id]
            product.last_price_update = now
            product.rate_used_id = fresh_rate.id

        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="BULK_PRICE_UPDATE",
            module="RATE_MASTER",
            entity_type="RateMaster",
            entity_id=fresh_rate.id,
            after={
                "performedBy": performed_by or "System",
                "metalType": fresh_rate.metal_type,
                "purity": fresh_rate.purity,
                "ratePerGram": str(fresh_rate.rate_per_gram),
                "productsUpdated": len(changes),
                "productsSkipped": len(skipped),
            },
        )
        db.session.commit()

        return {
            "preview": False,
            "totalProducts": len(products),
            "productsToUpdate": len(changes),
            "productsUpdated": len(changes),
            "productsSkipped": len(skipped),
            "priceChanges": changes,
            "skippedProducts": skipped,
            "rateMaster": _rate_summary(fresh_rate),
        }

    result = run_with_retry(_op)
    current_app.logger.info(
        "Bulk price update: shop=%s rate=%s updated=%s skipped=%s by=%s",
        shop_id, rate_id, result["productsUpdated"], result["productsSkipped"], performed_by or "System",
    )
    return result


def recalculate_prices(
    *,
    shop_id: int,
    product_ids: list[int] | None = None,
    metal_type: str | None = None,
    purity: str | None = None,
    collection_name: str | None = None,
    only_outdated: bool = True,
    user_id: int | None = None,
    as_of: datetime | None = None,
) -> dict:
    """
    Reprice products from each product's own current rate.

    Skips products without a current rate and, when only_outdated is set,
    products already priced from their current rate at the current price.
    Products with a price override are excluded from the selection.
    """
    def _op() -> dict:
        query = scoped_query(Product, shop_id).filter(
            Product.is_active.is_(True),
            Product.price_override.is_(None),
        )
        if product_ids:
            query = query.filter(Product.id.in_(product_ids))
        if metal_type:
            query = query.filter(Product.metal_type == metal_type)
        if purity:
            query = query.filter(Product.purity == purity)
        if collection_name:
            query = query.filter(func.lower(Product.collection_name).contains(collection_name.lower()))
        products = query.order_by(Product.id.asc()).all()

        now = utcnow()
        rate_cache: dict[tuple[str, str], RateMaster | None] = {}
        results: list[dict] = []
        updated = 0
        skipped = 0

        for product in products:
            key = (product.metal_type, product.purity)
            if key not in rate_cache:
                rate_cache[key] = get_current_rate(shop_id, product.metal_type, product.purity, as_of=as_of)
            rate = rate_cache[key]

            if rate is None:
                skipped += 1
                results.append({
                    "productId": product.id,
                    "productName": product.name,
                    "status": "skipped",
                    "reason": "No active rate found",
                })
                continue

            if only_outdated and product.rate_used_id == rate.id and not is_price_outdated(product, rate):
                skipped += 1
                results.append({
                    "productId": product.id,
                    "productName": product.name,
                    "status": "skipped",
                    "reason": "Price already up-to-date",
                })
                continue

            old_price = product.calculated_price
            new_price = price_for_product(product, rate).total_price
            product.calculated_price = new_price
            product.last_price_update = now
            product.rate_used_id = rate.id

            audit_service.record(
                shop_id=shop_id,
                user_id=user_id,
                action="UPDATE",
                module="PRODUCTS",
                entity_type="Product",
                entity_id=product.id,
                before={"calculatedPrice": str(old_price) if old_price is not None else None},
                after={"calculatedPrice": str(new_price)},
                note="Price recalculated from current rate",
            )
            updated += 1
            results.append({
                "productId": product.id,
                "productName": product.name,
                "status": "updated",
                "oldPrice": as_float(old_price),
                "newPrice": as_float(new_price),
                "priceDifference": as_float(new_price - old_price) if old_price is not None else None,
                "rateUsed": _rate_summary(rate),
            })

        db.session.commit()
        return {
            "updated": updated,
            "skipped": skipped,
            "total": len(products),
            "products": results,
        }

    result = run_with_retry(_op)
    current_app.logger.info(
        "Recalculated prices: shop=%s updated=%s skipped=%s", shop_id, result["updated"], result["skipped"]
    )
    return result


def get_price_breakdown(shop_id: int, product_id: int, as_of: datetime | None = None) -> dict:
    """
    Explain a product's price: the fresh computation from the current rate,
    the stored price with the rate it came from, and the final selling price.
    """
    product = get_owned(Product, product_id, shop_id)
    rate = get_current_rate(shop_id, product.metal_type, product.purity, as_of=as_of)
    if rate is None:
        raise NotFoundError(f"Current rate for {product.metal_type} {product.purity}")

    current_calc = price_for_product(product, rate)

    stored_calc = None
    rate_used = None
    if product.rate_used_id is not None:
        rate_used = db.session.get(RateMaster, product.rate_used_id)
        if rate_used is not None:
            stored_calc = price_for_product(product, rate_used)

    outdated = is_price_outdated(product, rate) or product.rate_used_id != rate.id

    if product.price_override is not None:
        final_price = product.price_override
    elif product.calculated_price is not None:
        final_price = product.calculated_price
    else:
        final_price = current_calc.total_price

    stored_total = product.calculated_price if product.calculated_price is not None else ZERO
    # metal at the current rate plus making and stones, no wastage
    cost = calculate_purchase_cost(
        product.net_weight, rate.rate_per_gram, product.making_charges or ZERO, product.stone_value or ZERO
    )

    return {
        "product": product.to_dict(),
        "currentRate": rate.to_dict(),
        "currentPriceCalculation": current_calc.to_dict(),
        "storedPrice": {
            "calculatedPrice": as_float(product.calculated_price),
            "rateUsed": _rate_summary(rate_used) if rate_used is not None else None,
            "calculation": stored_calc.to_dict() if stored_calc is not None else None,
            "lastPriceUpdate": to_utc_z(product.last_price_update),
        },
        "finalPrice": as_float(final_price),
        "costAtCurrentRate": as_float(cost),
        "priceStatus": {
            "isOverridden": product.price_override is not None,
            "isOutdated": outdated,
            "priceDifference": as_float(current_calc.total_price - stored_total) if outdated else 0.0,
        },
    }
