"""
Pricing Calculator.

Turns analysed documents and global settings into an itemized total:

    per_doc      = sum(included page prices)          (or page_count * base_price)
    per_doc     *= handwritten_multiplier              if handwritten
    per_doc      = max(per_doc, min_doc_floor)
    subtotal     = sum(per_doc)
    with_urgency = subtotal * urgency_multiplier(tier)
    total        = with_urgency + notary_fee * notarized_documents
    total       *= 1 - upfront_discount_rate           if standard and upfront_discount

Every stage is kept as its own addend of the PriceBreakdown.
"""

import logging
from typing import Iterable, Optional

from models.analysis import AnalysisStatus
from models.pricing import (
    DocumentPriceLine,
    OrderDocument,
    PaymentPlan,
    PriceBreakdown,
    PricingSettings,
    ServiceType,
    UrgencyTier,
)

logger = logging.getLogger(__name__)


def _money(amount: float) -> float:
    return round(amount + 0.0, 2)


def _key(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def calculate_price(
    documents: Iterable[OrderDocument],
    settings: Optional[PricingSettings] = None,
    urgency: str = UrgencyTier.STANDARD,
    payment_plan: str = PaymentPlan.UPFRONT,
    service_type: str = ServiceType.TRANSLATION,
) -> PriceBreakdown:
    """
    Price an order.

    Unselected documents are ignored; documents whose analysis failed are
    listed in ``excluded_documents`` and never priced. Unknown urgency tiers
    price as standard. Amounts are rounded to cents after the full
    computation.

    Args:
        documents: Documents of the order
        settings: Global pricing settings (defaults from config)
        urgency: standard, urgent or flash
        payment_plan: upfront, upfront_discount or split
        service_type: translation, or notarization for notary-only orders

    Returns:
        PriceBreakdown with every stage of the formula
    """
    settings = settings or PricingSettings()
    urgency_key = _key(urgency)
    notarization_only = _key(service_type) == ServiceType.NOTARIZATION.value

    breakdown = PriceBreakdown()
    base_total = 0.0
    subtotal = 0.0
    minimum_total = 0.0
    notary_total = 0.0

    for document in documents or []:
        if not document.selected:
            continue

        if document.status == AnalysisStatus.ERROR:
            breakdown.excluded_documents.append(document.file_name)
            continue

        if document.analysis is not None:
            page_count = document.analysis.total_pages
            pages_price = document.analysis.total_price
        else:
            page_count = max(document.page_count, 0)
            pages_price = page_count * settings.base_price

        notary_fee = settings.notary_fee if (notarization_only or document.notarized) else 0.0

        if notarization_only:
            pages_price = surcharge = adjustment = price = 0.0
        else:
            price = pages_price
            surcharge = 0.0
            if document.handwritten:
                price = pages_price * settings.handwritten_multiplier
                surcharge = price - pages_price

            adjustment = 0.0
            if price < settings.min_doc_floor:
                adjustment = settings.min_doc_floor - price
                price = settings.min_doc_floor
                breakdown.min_order_applied = True

        base_total += pages_price + surcharge
        minimum_total += adjustment
        subtotal += price
        notary_total += notary_fee
        breakdown.total_documents += 1
        breakdown.total_pages += page_count

        breakdown.lines.append(DocumentPriceLine(
            file_name=document.file_name,
            page_count=page_count,
            pages_price=_money(pages_price),
            handwritten_surcharge=_money(surcharge),
            minimum_adjustment=_money(adjustment),
            price=_money(price),
            notary_fee=_money(notary_fee),
        ))

    multiplier = settings.urgency_multiplier(urgency_key)
    with_urgency = subtotal * multiplier
    total = with_urgency + notary_total

    discount = 0.0
    if urgency_key == UrgencyTier.STANDARD.value and _key(payment_plan) == PaymentPlan.UPFRONT_DISCOUNT.value:
        discount = total * settings.upfront_discount_rate
        total -= discount

    breakdown.base_price = _money(base_total)
    breakdown.minimum_adjustment = _money(minimum_total)
    breakdown.subtotal = _money(subtotal)
    breakdown.urgency_multiplier = multiplier
    breakdown.urgency_fee = _money(with_urgency - subtotal)
    breakdown.with_urgency = _money(with_urgency)
    breakdown.notary_fee = _money(notary_total)
    breakdown.discount_applied = _money(discount)
    breakdown.total = _money(total)

    logger.debug(
        f"Priced {breakdown.total_documents} documents: subtotal={breakdown.subtotal}, "
        f"urgency={urgency_key}, total={breakdown.total}"
    )
    return breakdown
