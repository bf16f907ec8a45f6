from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

from rfm_segmentation.foundation.transactions import SalesTransaction

PRODUCT_LINES: Tuple[str, ...] = (
    "Classic Cars",
    "Motorcycles",
    "Planes",
    "Ships",
    "Trains",
    "Trucks and Buses",
    "Vintage Cars",
)

LOCATIONS: Tuple[Tuple[str, str], ...] = (
    ("USA", "San Rafael"),
    ("USA", "NYC"),
    ("France", "Paris"),
    ("Spain", "Madrid"),
    ("Australia", "Melbourne"),
    ("UK", "London"),
    ("Germany", "Frankfurt"),
    ("Japan", "Tokyo"),
)

# Order line value thresholds for deal size buckets
SMALL_DEAL_LIMIT = Decimal("3000")
MEDIUM_DEAL_LIMIT = Decimal("7000")


@dataclass(frozen=True)
class SalesScenario:
    """Configuration for the synthetic sales generator.

    Attributes
    ----------
    orders_per_month: Average orders per active customer per month.
    churn_hazard: Monthly probability an active customer stops ordering.
    mean_unit_price: Average unit price of an order line.
    price_variability: Coefficient in (0, 1] controlling price variance.
    quantity_mean: Average quantity per order line.
    max_lines_per_order: Upper bound on lines sampled per order.
    seed: Optional RNG seed for reproducibility.
    """

    orders_per_month: float = 0.4
    churn_hazard: float = 0.05
    mean_unit_price: float = 90.0
    price_variability: float = 0.4
    quantity_mean: float = 35.0
    max_lines_per_order: int = 4
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.orders_per_month < 0:
            raise ValueError("orders_per_month must be >= 0")
        if not 0 <= self.churn_hazard <= 1:
            raise ValueError("churn_hazard must be within [0, 1]")
        if self.mean_unit_price <= 0:
            raise ValueError("mean_unit_price must be > 0")
        if self.max_lines_per_order < 1:
            raise ValueError("max_lines_per_order must be >= 1")


def _month_starts(start: date, end: date) -> List[date]:
    cur = date(start.year, start.month, 1)
    last = date(end.year, end.month, 1)
    out: List[date] = []
    while cur <= last:
        out.append(cur)
        if cur.month == 12:
            cur = date(cur.year + 1, 1, 1)
        else:
            cur = date(cur.year, cur.month + 1, 1)
    return out


def _poisson(rng: random.Random, lam: float) -> int:
    # Knuth's algorithm; fine for the small lambdas used here
    if lam <= 0:
        return 0
    L = math.exp(-lam)
    k = 0
    p = 1.0
    while p > L:
        k += 1
        p *= rng.random()
    return max(0, k - 1)


def _sample_price(rng: random.Random, mean: float, variability: float) -> float:
    variability = min(max(variability, 0.01), 1.0)
    sigma = variability
    mu = math.log(max(mean, 0.01)) - 0.5 * sigma * sigma
    return max(math.exp(rng.normalvariate(mu, sigma)), 0.01)


def _sample_quantity(rng: random.Random, mean_q: float) -> int:
    q = max(1.0, rng.lognormvariate(mu=math.log(max(mean_q, 0.1)), sigma=0.3))
    return max(1, int(round(q)))


def deal_size_for(amount: Decimal) -> str:
    """Bucket an order line amount into Small/Medium/Large."""
    if amount < SMALL_DEAL_LIMIT:
        return "Small"
    if amount < MEDIUM_DEAL_LIMIT:
        return "Medium"
    return "Large"


def generate_sales_transactions(
    n_customers: int,
    start: date,
    end: date,
    *,
    scenario: Optional[SalesScenario] = None,
    product_lines: Optional[Sequence[str]] = None,
) -> List[SalesTransaction]:
    """Generate multi-line sales orders for ``n_customers`` between start/end.

    Each customer is acquired on a random day in the window, places orders
    at a Poisson rate while active and may churn at the start of any month.
    Every customer places at least one order so all of them appear in RFM
    output. Output is deterministic for a given ``scenario.seed``.
    """

    if n_customers <= 0:
        return []
    if start > end:
        raise ValueError("start date must be <= end date")
    scenario = scenario or SalesScenario()
    rng = random.Random(scenario.seed)
    catalog = list(product_lines) if product_lines else list(PRODUCT_LINES)

    total_days = (end - start).days + 1
    customers: Dict[str, Tuple[date, Tuple[str, str]]] = {}
    for i in range(n_customers):
        acquired = start + timedelta(days=rng.randrange(total_days))
        customers[f"Customer {i + 1:03d}"] = (acquired, rng.choice(LOCATIONS))

    order_dates: Dict[str, List[date]] = {cid: [] for cid in customers}
    active = set(customers)
    for month_start in _month_starts(start, end):
        for cid in sorted(active):
            acquired, _location = customers[cid]
            if acquired.replace(day=1) > month_start:
                continue
            if order_dates[cid] and rng.random() < scenario.churn_hazard:
                active.discard(cid)
                continue
            for _ in range(_poisson(rng, scenario.orders_per_month)):
                day = month_start + timedelta(days=rng.randrange(28))
                if acquired <= day <= end:
                    order_dates[cid].append(day)

    transactions: List[SalesTransaction] = []
    order_seq = 10100
    for cid in sorted(customers):
        acquired, (country, city) = customers[cid]
        # First purchase on the acquisition date
        for order_date in [acquired] + sorted(order_dates[cid]):
            order_seq += 1
            for _line in range(1 + rng.randrange(scenario.max_lines_per_order)):
                quantity = _sample_quantity(rng, scenario.quantity_mean)
                price = Decimal(
                    str(
                        _sample_price(
                            rng, scenario.mean_unit_price, scenario.price_variability
                        )
                    )
                )
                amount = (price * quantity).quantize(
                    Decimal("0.01"), rounding=ROUND_HALF_UP
                )
                transactions.append(
                    SalesTransaction(
                        order_id=str(order_seq),
                        customer_id=cid,
                        amount=amount,
                        order_date=order_date,
                        product_line=rng.choice(catalog),
                        country=country,
                        city=city,
                        deal_size=deal_size_for(amount),
                    )
                )

    transactions.sort(key=lambda t: (t.customer_id, t.order_date, t.order_id))
    return transactions


def transactions_to_records(
    transactions: Sequence[SalesTransaction], date_format: str = "%d/%m/%Y"
) -> List[Dict[str, object]]:
    """Flatten transactions into CSV-ready dicts with formatted dates."""

    return [
        {
            "order_id": txn.order_id,
            "customer_id": txn.customer_id,
            "amount": float(txn.amount),
            "order_date": txn.order_date.strftime(date_format),
            "product_line": txn.product_line,
            "country": txn.country,
            "city": txn.city,
            "deal_size": txn.deal_size,
        }
        for txn in transactions
    ]
