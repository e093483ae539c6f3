from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass
class DashboardKPIs:
    annual_spend: Decimal = Decimal("0")
    in_stock: int = 0
    assigned: int = 0
    retired: int = 0
    needs_renewal: int = 0
    pending_requests: int = 0
    renewal_assets: list = field(default_factory=list)


def compute_kpis(assets, pending_requests=0, today=None):
    """Reducción sobre la lista completa de equipos (sin paginar).

    El gasto anual suma ``purchase_price`` de los equipos comprados en el año natural de ``today``.
    """
    today = today or date.today()
    year_start, year_end = date(today.year, 1, 1), date(today.year, 12, 31)
    by_status = Counter(a.status for a in assets)
    spend = sum((Decimal(str(a.purchase_price or 0)) for a in assets
                 if a.purchase_date and year_start <= a.purchase_date <= year_end), Decimal("0"))
    renewal = [a for a in assets if a.needs_renewal]
    return DashboardKPIs(
        annual_spend=spend,
        in_stock=by_status["stock"],
        assigned=by_status["asignado"],
        retired=by_status["baja"],
        needs_renewal=len(renewal),
        pending_requests=pending_requests,
        renewal_assets=renewal[:5],
    )
