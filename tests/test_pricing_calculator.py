"""Unit tests for the pricing calculator and pricing settings."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.analysis import AnalysisPhase, AnalysisStatus, Density, DocumentAnalysis, FileType
from models.pricing import (
    OrderDocument,
    PaymentPlan,
    PricingSettings,
    ServiceType,
    UrgencyTier,
)
from services.density_classifier import DensityClassifier
from services.pricing_calculator import calculate_price


def analysis_of(*densities, base_price=9.0, name="doc.pdf"):
    pages = [
        DensityClassifier.forced_page(number, density, base_price)
        for number, density in enumerate(densities, start=1)
    ]
    return DocumentAnalysis(
        file_name=name,
        pages=pages,
        is_image=False,
        phase=AnalysisPhase.DEEP,
        file_type=FileType.PDF,
    )


@pytest.fixture
def settings():
    return PricingSettings(
        base_price=9.0,
        urgency_rate=0.30,
        notary_fee=25.0,
        min_doc_floor=10.0,
        handwritten_multiplier=1.25,
        upfront_discount_rate=0.05,
    )


class TestCalculatePrice:
    """Test suite for calculate_price."""

    def test_two_high_pages(self, settings):
        document = OrderDocument("a.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH))
        breakdown = calculate_price([document], settings)
        assert breakdown.subtotal == 18.00
        assert breakdown.total == 18.00
        assert breakdown.total_pages == 2
        assert breakdown.total_documents == 1

    def test_handwritten_surcharge(self, settings):
        document = OrderDocument(
            "a.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH), handwritten=True
        )
        breakdown = calculate_price([document], settings)
        assert breakdown.subtotal == 22.50
        assert breakdown.lines[0].handwritten_surcharge == 4.50

    def test_urgent_multiplier(self, settings):
        document = OrderDocument(
            "a.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH), handwritten=True
        )
        breakdown = calculate_price([document], settings, urgency="urgent")
        assert breakdown.urgency_multiplier == pytest.approx(1.3)
        assert breakdown.with_urgency == 29.25
        assert breakdown.urgency_fee == 6.75

    def test_notary_fee_added_after_urgency(self, settings):
        document = OrderDocument(
            "a.pdf",
            analysis=analysis_of(Density.HIGH, Density.HIGH),
            handwritten=True,
            notarized=True,
        )
        breakdown = calculate_price([document], settings, urgency=UrgencyTier.URGENT)
        assert breakdown.notary_fee == 25.00
        assert breakdown.total == 54.25

    def test_flash_multiplier(self, settings):
        document = OrderDocument("a.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH))
        breakdown = calculate_price([document], settings, urgency="flash")
        assert breakdown.urgency_multiplier == pytest.approx(1.6)
        assert breakdown.total == 28.80

    def test_unknown_tier_is_standard(self, settings):
        document = OrderDocument("a.pdf", analysis=analysis_of(Density.HIGH))
        breakdown = calculate_price([document], settings, urgency="overnight")
        assert breakdown.urgency_multiplier == 1.0
        assert breakdown.total == 10.00

    def test_blank_document_gets_floor(self, settings):
        """Test that a document is never priced below the per-document floor."""
        document = OrderDocument("blank.pdf", analysis=analysis_of(Density.BLANK, Density.BLANK))
        breakdown = calculate_price([document], settings)
        assert breakdown.subtotal == 10.00
        assert breakdown.minimum_adjustment == 10.00
        assert breakdown.min_order_applied is True
        assert breakdown.lines[0].price == 10.00

    def test_floor_per_document(self, settings):
        documents = [
            OrderDocument("low.pdf", analysis=analysis_of(Density.LOW)),
            OrderDocument("high.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH)),
        ]
        breakdown = calculate_price(documents, settings)
        assert [line.price for line in breakdown.lines] == [10.00, 18.00]
        assert breakdown.subtotal == 28.00
        assert breakdown.minimum_adjustment == 7.75

    def test_excluded_pages_not_billed(self, settings):
        analysis = analysis_of(Density.HIGH, Density.HIGH, Density.HIGH)
        analysis.set_page_included(2, False)
        breakdown = calculate_price([OrderDocument("a.pdf", analysis=analysis)], settings)
        assert breakdown.subtotal == 18.00

    def test_upfront_discount_standard_only(self, settings):
        document = OrderDocument("a.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH))

        standard = calculate_price([document], settings, payment_plan=PaymentPlan.UPFRONT_DISCOUNT)
        assert standard.discount_applied == 0.90
        assert standard.total == 17.10

        urgent = calculate_price([document], settings, urgency="urgent", payment_plan="upfront_discount")
        assert urgent.discount_applied == 0.0
        assert urgent.total == 23.40

    def test_error_documents_are_excluded(self, settings):
        """Test that failed analyses never contribute a guessed price."""
        documents = [
            OrderDocument("good.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH)),
            OrderDocument("broken.pdf", status=AnalysisStatus.ERROR),
        ]
        breakdown = calculate_price(documents, settings)
        assert breakdown.total == 18.00
        assert breakdown.total_documents == 1
        assert breakdown.excluded_documents == ["broken.pdf"]

    def test_unselected_documents_are_ignored(self, settings):
        documents = [
            OrderDocument("a.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH)),
            OrderDocument("b.pdf", analysis=analysis_of(Density.HIGH), selected=False),
        ]
        breakdown = calculate_price(documents, settings)
        assert breakdown.total_documents == 1
        assert breakdown.excluded_documents == []

    def test_without_analysis_uses_page_count(self, settings):
        breakdown = calculate_price([OrderDocument("a.pdf", page_count=3)], settings)
        assert breakdown.subtotal == 27.00

    def test_notarization_only_orders(self, settings):
        documents = [
            OrderDocument("a.pdf", analysis=analysis_of(Density.HIGH, Density.HIGH)),
            OrderDocument("b.pdf", analysis=analysis_of(Density.LOW)),
        ]
        breakdown = calculate_price(documents, settings, service_type=ServiceType.NOTARIZATION)
        assert breakdown.subtotal == 0.0
        assert breakdown.min_order_applied is False
        assert breakdown.notary_fee == 50.00
        assert breakdown.total == 50.00

    def test_empty_order(self, settings):
        breakdown = calculate_price([], settings)
        assert breakdown.total == 0.0
        assert breakdown.lines == []

    def test_to_dict(self, settings):
        document = OrderDocument("a.pdf", analysis=analysis_of(Density.MEDIUM, Density.HIGH, Density.HIGH))
        data = calculate_price([document], settings).to_dict()
        assert data["total"] == 22.50
        assert data["lines"][0]["file_name"] == "a.pdf"


class TestPricingSettings:
    """Test suite for PricingSettings."""

    def test_from_mapping_aliases(self):
        settings = PricingSettings.from_mapping({"basePrice": "12", "urgencyRate": 0.5, "notaryFee": 30})
        assert settings.base_price == 12.0
        assert settings.urgency_rate == 0.5
        assert settings.notary_fee == 30.0
        assert settings.urgency_multiplier("urgent") == pytest.approx(1.5)
        assert settings.urgency_multiplier("flash") == pytest.approx(2.0)

    def test_from_mapping_ignores_bad_values(self):
        settings = PricingSettings.from_mapping({"basePrice": "abc", "colour": "blue", "_KEY_ALIASES": 1})
        assert settings.base_price == PricingSettings().base_price
        assert not hasattr(settings, "colour")

    def test_urgency_multiplier_accepts_enum(self):
        settings = PricingSettings(urgency_rate=0.3)
        assert settings.urgency_multiplier(UrgencyTier.STANDARD) == 1.0
        assert settings.urgency_multiplier(UrgencyTier.URGENT) == pytest.approx(1.3)
