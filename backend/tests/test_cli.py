# Overview: Tests for the flask CLI command groups.

from decimal import Decimal

from jewelstore.models import Product, RateMaster, Shop, User


def test_system_init_creates_platform(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "init", "--shop", "Ganesh Jewellers", "--shop-code", "GANESH"])
    assert result.exit_code == 0, result.output
    assert "DONE jewelstore initialized" in result.output

    shop = db_session.query(Shop).filter_by(code="GANESH").one()
    roles = {u.username: (u.role, u.shop_id) for u in db_session.query(User).all()}
    assert roles["superadmin"] == ("SUPER_ADMIN", None)
    assert roles["owner"] == ("OWNER", shop.id)
    assert roles["sales"] == ("SALES", shop.id)
    assert roles["accounts"] == ("ACCOUNTS", shop.id)


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "init"])
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "already exists, skipping" in result.output
    assert db_session.query(User).count() == 4


def test_shops_create_and_list(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["shops", "create", "--name", "Sona Gold", "--code", "SONA"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(args=["shops", "list"])
    assert "SONA" in result.output
    assert "Sona Gold" in result.output


def test_shops_list_empty(app, db_session):
    result = app.test_cli_runner().invoke(args=["shops", "list"])
    assert "No shops found." in result.output


def test_rates_set_creates_current_rate(app, db_session, shop_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "rates", "set", "--shop-id", str(shop_a.id), "--metal", "GOLD", "--purity", "22K", "--rate", "6150",
    ])
    assert result.exit_code == 0, result.output

    rate = db_session.query(RateMaster).filter_by(shop_id=shop_a.id).one()
    assert rate.rate_per_gram == Decimal("6150.00")
    assert rate.created_by == "cli"
    assert rate.is_active is True


def test_rates_set_rejects_unknown_shop(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "rates", "set", "--shop-id", "999", "--metal", "GOLD", "--purity", "22K", "--rate", "6150",
    ])
    assert result.exit_code != 0
    assert "Shop 999 not found" in result.output


def test_prices_recalculate(app, db_session, shop_a, product_a):
    newer = RateMaster(
        shop_id=shop_a.id,
        metal_type="GOLD",
        purity="22K",
        rate_per_gram=Decimal("6500.00"),
        effective_date=product_a.rate_used.effective_date.replace(year=2025),
        rate_source="MANUAL",
        is_active=True,
    )
    db_session.add(newer)
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["prices", "recalculate", "--shop-id", str(shop_a.id)])
    assert result.exit_code == 0, result.output
    assert "Updated 1 of 1 products" in result.output

    product = db_session.get(Product, product_a.id)
    assert product.calculated_price == Decimal("72700.00")
