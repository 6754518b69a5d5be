# checkout/services/compliance_service.py
"""
Silnik zgodnosci: wiek klienta i dzienny limit dawki substancji czynnej,
wg reguly jurysdykcji sklepu realizujacego zamowienie.

Wszystkie naruszenia sa zbierane razem. Nieoczekiwany blad podczas oceny
konczy sie naruszeniem COMPLIANCE_CHECK_ERROR, nigdy cichym przepuszczeniem.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Protocol, Sequence

from sqlalchemy.orm import Session

from checkout.data.models.order import OrderStatus
from checkout.data.models.product import ProductModel
from checkout.data.models.store import ComplianceRuleModel
from checkout.data.models.user import UserModel
from checkout.domain.errors import CheckoutError, LocationUnknownError
from checkout.repos.catalog_repo import CatalogRepo
from checkout.repos.order_repo import OrderRepo
from checkout.repos.store_repo import StoreRepo
from checkout.repos.user_repo import UserRepo
from checkout.utils.settings import ALLOW_UNRULED_JURISDICTIONS, DOSE_COUNTS_UNCONFIRMED_ORDERS
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

MG_PER_GRAM = Decimal("1000")

COMMITTED_STATUSES = (
    OrderStatus.CONFIRMED.value,
    OrderStatus.READY.value,
    OrderStatus.COMPLETED.value,
)
UNCONFIRMED_STATUSES = (
    OrderStatus.CREATED.value,
    OrderStatus.PENDING.value,
)


class DoseLine(Protocol):
    product_id: int
    quantity: int


@dataclass
class Violation:
    code: str
    message: str
    field: str | None = None
    remaining_mg: Decimal | None = None

    def to_dict(self) -> dict:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if self.remaining_mg is not None:
            data["remaining_mg"] = str(self.remaining_mg)
        return data


@dataclass
class ComplianceResult:
    violations: list[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    def codes(self) -> list[str]:
        return [v.code for v in self.violations]


def calculate_age(date_of_birth: date, today: date | None = None) -> int:
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def mg_per_unit(product: ProductModel) -> Decimal:
    if product.dose_mg_per_unit:
        return Decimal(product.dose_mg_per_unit)
    #fallback z procentu wagowego, 1 jednostka = 1 g
    if product.potency_percent:
        return Decimal(product.potency_percent) / Decimal("100") * MG_PER_GRAM
    return Decimal("0")


def total_dose_mg(lines: Iterable[DoseLine], products: dict[int, ProductModel]) -> Decimal:
    total = Decimal("0")
    for line in lines:
        product = products.get(line.product_id)
        if product is not None:
            total += mg_per_unit(product) * line.quantity
    return total


def local_day_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Biezacy dzien kalendarzowy w strefie serwera, zwrocony w UTC."""
    local_now = (now or datetime.now()).astimezone()
    #granice z lokalnej polnocy, offset liczony osobno dla kazdej (zmiana czasu)
    day = local_now.date()
    start = datetime.combine(day, time.min).astimezone()
    end = datetime.combine(day + timedelta(days=1), time.min).astimezone()
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def check_age(user: UserModel, rule: ComplianceRuleModel, today: date | None = None) -> Violation | None:
    if not rule.must_verify_age:
        return None

    if not user.age_verified:
        return Violation(
            "AGE_NOT_VERIFIED",
            "Age verification is required to complete this purchase.",
            "age_verified",
        )

    if not user.date_of_birth:
        return Violation(
            "DATE_OF_BIRTH_MISSING",
            "Date of birth is required for age verification.",
            "date_of_birth",
        )

    if calculate_age(user.date_of_birth, today) < rule.min_age:
        return Violation(
            "UNDERAGE",
            f"You must be at least {rule.min_age} years old to make a purchase.",
            "age",
        )

    return None


class ComplianceService:
    def __init__(
        self,
        db: Session,
        count_unconfirmed_orders: bool = DOSE_COUNTS_UNCONFIRMED_ORDERS,
        allow_unruled_jurisdictions: bool = ALLOW_UNRULED_JURISDICTIONS,
    ):
        self.db = db
        self.users = UserRepo(db)
        self.stores = StoreRepo(db)
        self.catalog = CatalogRepo(db)
        self.orders = OrderRepo(db)
        self.count_unconfirmed_orders = count_unconfirmed_orders
        self.allow_unruled_jurisdictions = allow_unruled_jurisdictions

    def check_compliance(self, user_id: int, store_id: int, lines: Sequence[DoseLine]) -> ComplianceResult:
        try:
            return self._evaluate(user_id, store_id, lines)
        except CheckoutError:
            raise
        except Exception:
            logger.exception(f"Compliance check failed for user {user_id} at store {store_id}")
            self.db.rollback()
            return ComplianceResult([
                Violation("COMPLIANCE_CHECK_ERROR", "Unable to verify compliance. Please try again.")
            ])

    def _evaluate(self, user_id: int, store_id: int, lines: Sequence[DoseLine]) -> ComplianceResult:
        user = self.users.get_user(user_id)
        if not user:
            return ComplianceResult([Violation("USER_NOT_FOUND", "User not found.")])

        store = self.stores.get_store(store_id)
        if not store or not store.jurisdiction_code:
            raise LocationUnknownError(
                "Store location is required for compliance checking.",
                {"store_id": store_id},
            )

        rule = self.stores.get_compliance_rule(store.jurisdiction_code)
        if not rule:
            if self.allow_unruled_jurisdictions:
                logger.warning(f"No compliance rule for jurisdiction {store.jurisdiction_code}, allowing order")
                return ComplianceResult()
            return ComplianceResult([
                Violation(
                    "NO_COMPLIANCE_RULE",
                    f"Orders cannot be placed in {store.jurisdiction_code} at this time.",
                )
            ])

        result = ComplianceResult()

        age_violation = check_age(user, rule)
        if age_violation:
            result.violations.append(age_violation)

        dose_violation = self._check_daily_dose(user_id, lines, rule)
        if dose_violation:
            result.violations.append(dose_violation)

        logger.info(
            f"Compliance for user {user_id} in {rule.jurisdiction_code}: "
            f"{'ok' if result.ok else ', '.join(result.codes())}"
        )
        return result

    def _check_daily_dose(self, user_id: int, lines: Sequence[DoseLine], rule: ComplianceRuleModel) -> Violation | None:
        statuses = COMMITTED_STATUSES
        if self.count_unconfirmed_orders:
            statuses = COMMITTED_STATUSES + UNCONFIRMED_STATUSES

        start, end = local_day_window()
        todays_orders = self.orders.list_orders_between(user_id, start, end, statuses)
        existing_items = [item for order in todays_orders for item in order.items]

        #jedno zapytanie o produkty dla nowych i dzisiejszych linii
        products = self.catalog.get_products(
            {line.product_id for line in lines} | {item.product_id for item in existing_items}
        )

        proposed_mg = total_dose_mg(lines, products)
        existing_mg = total_dose_mg(existing_items, products)
        limit = Decimal(rule.max_daily_dose_mg)

        if existing_mg + proposed_mg > limit:
            remaining = max(Decimal("0"), limit - existing_mg)
            return Violation(
                "DAILY_THC_LIMIT_EXCEEDED",
                f"This order would exceed the daily limit of {limit}mg. "
                f"You have {remaining}mg remaining today.",
                "dose_limit",
                remaining_mg=remaining,
            )
        return None
