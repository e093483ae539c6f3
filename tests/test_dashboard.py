from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from itmanager.dashboard import compute_kpis


def _asset(status="stock", price=None, bought=None, renewal=False):
    return SimpleNamespace(status=status, purchase_price=price, purchase_date=bought, needs_renewal=renewal)


def test_kpis_counts_and_spend():
    assets = [
        _asset("stock", Decimal("1000.50"), date(2024, 3, 1)),
        _asset("asignado", Decimal("200"), date(2024, 12, 31), renewal=True),
        _asset("asignado", Decimal("999"), date(2023, 12, 31)),
        _asset("baja", None, date(2024, 5, 5), renewal=True),
    ]
    kpis = compute_kpis(assets, pending_requests=3, today=date(2024, 6, 1))
    assert kpis.annual_spend == Decimal("1200.50")
    assert (kpis.in_stock, kpis.assigned, kpis.retired) == (1, 2, 1)
    assert kpis.needs_renewal == 2
    assert kpis.pending_requests == 3
    assert len(kpis.renewal_assets) == 2


def test_kpis_empty_inventory():
    kpis = compute_kpis([], today=date(2024, 1, 1))
    assert kpis.annual_spend == Decimal("0")
    assert kpis.in_stock == kpis.assigned == kpis.retired == 0


def test_renewal_list_capped_at_five():
    assets = [_asset(renewal=True) for _ in range(8)]
    kpis = compute_kpis(assets, today=date(2024, 1, 1))
    assert kpis.needs_renewal == 8
    assert len(kpis.renewal_assets) == 5


def test_dashboard_view(admin_client, make_asset):
    make_asset(purchase_price=Decimal("1234.56"), purchase_date=date.today())
    resp = admin_client.get("/dashboard")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "Gasto Anual" in body
    assert "€1.234,56" in body
