# Overview: Pytest coverage for current-rate lookup and rate master rules.

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from jewelstore.models import Product, RateMaster
from jewelstore.services import rate_service
from jewelstore.services.rate_service import RateError
from jewelstore.services.tenant_service import NotFoundError, TenantAccessError
from jewelstore.time_utils import utcnow


def add_rate(db_session, shop, rate, effective, *, purity="22K", metal="GOLD", active=True, valid_until=None):
    row = RateMaster(
        shop_id=shop.id,
        metal_type=metal,
        purity=purity,
        rate_per_gram=Decimal(rate),
        effective_date=effective,
        valid_until=valid_until,
        is_active=active,
        rate_source="MARKET",
    )
    db_session.add(row)
    db_session.commit()
    return row


class TestCurrentRate:

    def test_latest_effective_rate_wins(self, db_session, shop_a):
        add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        add_rate(db_session, shop_a, "5200", datetime(2024, 2, 1))

        rate = rate_service.get_current_rate(shop_a.id, "GOLD", "22K", as_of=datetime(2024, 2, 15))
        assert rate.rate_per_gram == Decimal("5200.00")

        earlier = rate_service.get_current_rate(shop_a.id, "GOLD", "22K", as_of=datetime(2024, 1, 15))
        assert earlier.rate_per_gram == Decimal("5000.00")

    def test_future_rate_is_not_current(self, db_session, shop_a):
        add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        add_rate(db_session, shop_a, "5300", datetime(2024, 3, 1))

        rate = rate_service.get_current_rate(shop_a.id, "GOLD", "22K", as_of=datetime(2024, 2, 15))
        assert rate.rate_per_gram == Decimal("5000.00")

    def test_inactive_and_expired_rates_are_ignored(self, db_session, shop_a):
        add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        add_rate(db_session, shop_a, "5100", datetime(2024, 1, 20), active=False)
        add_rate(db_session, shop_a, "5150", datetime(2024, 2, 1), valid_until=datetime(2024, 2, 10))

        rate = rate_service.get_current_rate(shop_a.id, "GOLD", "22K", as_of=datetime(2024, 2, 15))
        assert rate.rate_per_gram == Decimal("5000.00")

    def test_tie_on_effective_date_picks_highest_id(self, db_session, shop_a):
        add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        second = add_rate(db_session, shop_a, "5050", datetime(2024, 1, 1))

        rate = rate_service.get_current_rate(shop_a.id, "GOLD", "22K", as_of=datetime(2024, 1, 2))
        assert rate.id == second.id

    def test_other_shop_rates_are_invisible(self, db_session, shop_a, shop_b):
        add_rate(db_session, shop_b, "9999", datetime(2024, 1, 1))
        assert rate_service.get_current_rate(shop_a.id, "GOLD", "22K", as_of=datetime(2024, 2, 1)) is None

    def test_all_current_rates_one_per_pair(self, db_session, shop_a):
        add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        add_rate(db_session, shop_a, "5200", datetime(2024, 2, 1))
        add_rate(db_session, shop_a, "4500", datetime(2024, 1, 1), purity="18K")
        add_rate(db_session, shop_a, "80", datetime(2024, 1, 1), metal="SILVER", purity="925")

        rates = rate_service.get_all_current_rates(shop_a.id, as_of=datetime(2024, 2, 15))
        pairs = {(r.metal_type, r.purity): r.rate_per_gram for r in rates}
        assert pairs == {
            ("GOLD", "18K"): Decimal("4500.00"),
            ("GOLD", "22K"): Decimal("5200.00"),
            ("SILVER", "925"): Decimal("80.00"),
        }


class TestRateMaintenance:

    def test_create_deactivates_older_siblings(self, db_session, shop_a):
        old = add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        new = rate_service.create_rate(
            shop_a.id, {"metal_type": "GOLD", "purity": "22K", "rate_per_gram": Decimal("5100.456")},
            created_by="tester",
        )
        db_session.refresh(old)
        assert old.is_active is False
        assert new.is_active is True
        assert new.rate_per_gram == Decimal("5100.46")

    def test_create_keeps_later_scheduled_rate(self, db_session, shop_a):
        scheduled = add_rate(db_session, shop_a, "5500", utcnow() + timedelta(days=7))
        rate_service.create_rate(shop_a.id, {"metal_type": "GOLD", "purity": "22K", "rate_per_gram": Decimal("5100")})
        db_session.refresh(scheduled)
        assert scheduled.is_active is True

    def test_create_without_deactivation(self, db_session, shop_a):
        old = add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        rate_service.create_rate(
            shop_a.id, {"metal_type": "GOLD", "purity": "22K", "rate_per_gram": Decimal("5100")},
            deactivate_previous=False,
        )
        db_session.refresh(old)
        assert old.is_active is True

    @pytest.mark.parametrize("valid_until", [datetime(2024, 2, 1), datetime(2024, 3, 1)])
    def test_valid_until_must_follow_effective_date(self, db_session, shop_a, valid_until):
        with pytest.raises(RateError, match="after effectiveDate"):
            rate_service.create_rate(shop_a.id, {
                "metal_type": "GOLD",
                "purity": "22K",
                "rate_per_gram": Decimal("5100"),
                "effective_date": datetime(2024, 3, 1),
                "valid_until": valid_until,
            })
        assert rate_service.get_current_rate(shop_a.id, "GOLD", "22K") is None

    def test_delete_rate_in_use_only_deactivates(self, db_session, shop_a, product_a, gold_rate_a):
        assert product_a.rate_used_id == gold_rate_a.id
        rate_service.delete_rate(shop_a.id, gold_rate_a.id)
        row = db_session.get(RateMaster, gold_rate_a.id)
        assert row is not None
        assert row.is_active is False

    def test_delete_unused_rate(self, db_session, shop_a):
        rate = add_rate(db_session, shop_a, "80", datetime(2024, 1, 1), metal="SILVER", purity="925")
        rate_id = rate.id
        rate_service.delete_rate(shop_a.id, rate_id)
        assert db_session.get(RateMaster, rate_id) is None

    def test_get_rate_of_other_shop_denied(self, db_session, shop_a, shop_b):
        rate = add_rate(db_session, shop_b, "5000", datetime(2024, 1, 1))
        with pytest.raises(TenantAccessError):
            rate_service.get_rate(shop_a.id, rate.id)
        with pytest.raises(NotFoundError):
            rate_service.get_rate(shop_a.id, 99999)

    def test_is_rate_valid(self, db_session, shop_a):
        rate = add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1), valid_until=datetime(2024, 1, 31))
        assert rate_service.is_rate_valid(rate, as_of=datetime(2024, 1, 15))
        assert not rate_service.is_rate_valid(rate, as_of=datetime(2024, 2, 15))
        assert not rate_service.is_rate_valid(None)

    def test_rates_expiring_soon(self, db_session, shop_a):
        now = datetime(2024, 5, 1)
        soon = add_rate(db_session, shop_a, "5000", datetime(2024, 4, 1), valid_until=datetime(2024, 5, 4))
        add_rate(db_session, shop_a, "4400", datetime(2024, 4, 1), purity="18K", valid_until=datetime(2024, 6, 1))
        expiring = rate_service.rates_expiring_soon(shop_a.id, days=7, as_of=now)
        assert [r.id for r in expiring] == [soon.id]

    def test_statistics(self, db_session, shop_a):
        add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        add_rate(db_session, shop_a, "5500", datetime(2024, 1, 10))
        stats = rate_service.rate_statistics(
            shop_a.id, "GOLD", "22K", start=datetime(2023, 12, 1), end=datetime(2024, 1, 31)
        )
        assert stats["count"] == 2
        assert stats["minRate"] == 5000.0
        assert stats["maxRate"] == 5500.0
        assert stats["avgRate"] == 5250.0
        assert stats["change"] == 500.0
        assert stats["changePercent"] == 10.0

    def test_statistics_empty_range(self, db_session, shop_a):
        assert rate_service.rate_statistics(shop_a.id, "GOLD", "22K") is None

    def test_distinct_purities(self, db_session, shop_a):
        add_rate(db_session, shop_a, "5000", datetime(2024, 1, 1))
        add_rate(db_session, shop_a, "4400", datetime(2024, 1, 1), purity="18K")
        assert rate_service.distinct_purities(shop_a.id, "GOLD") == ["18K", "22K"]


def test_product_priced_from_current_rate_on_create(db_session, product_a, gold_rate_a):
    row = db_session.get(Product, product_a.id)
    assert row.calculated_price == Decimal("67300.00")
    assert row.rate_used_id == gold_rate_a.id
