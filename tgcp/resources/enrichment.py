"""
Derived display fields.

Enrichers add ``*_short``, ``*_display`` and ``*_count`` fields to a
record so columns can show readable values without per-render work.
They run once per fetched page. A field that cannot be derived is left
out of the record; the table shows the placeholder for it at render time.
"""

from collections.abc import Iterable
from typing import Any, Callable, Optional

from tgcp.errors import RegistryError

Record = dict[str, Any]
Enricher = Callable[[Record], None]

_ENRICHERS: dict[str, Enricher] = {}

# Enrichers applied by the "common" bundle, in order
COMMON_ENRICHERS = ("short_names", "counts", "display_flags", "timestamps", "sizes")

SHORT_NAME_FIELDS = ("zone", "region", "machineType", "type", "network")
COUNT_FIELDS = ("users", "subnetworks")

BILLING_ACCOUNT_PREFIX = "billingAccounts/"
BUSINESS_ENTITY_PREFIX = "businessEntities/"


def enricher(name: str) -> Callable[[Enricher], Enricher]:
    """Register a function under ``name`` for use in resource definitions."""

    def decorator(func: Enricher) -> Enricher:
        _ENRICHERS[name] = func
        return func

    return decorator


def available_enrichers() -> list[str]:
    return sorted([*_ENRICHERS, "common"])


def resolve_enrichers(names: Iterable[str]) -> list[Enricher]:
    """Turn enricher names into callables, expanding the "common" bundle.

    Raises:
        RegistryError: If a name is not registered
    """
    resolved: list[Enricher] = []
    for name in names:
        expanded = COMMON_ENRICHERS if name == "common" else (name,)
        for each in expanded:
            func = _ENRICHERS.get(each)
            if func is None:
                raise RegistryError(
                    message=f"Unknown enricher: {each}",
                    error_code="REGISTRY-UnknownEnricher",
                    details={"enricher": each},
                )
            resolved.append(func)
    return resolved


def enrich_items(items: list[Any], names: Iterable[str]) -> list[Any]:
    """Apply the named enrichers to copies of every dict record."""
    funcs = resolve_enrichers(names)
    enriched = []
    for item in items:
        if isinstance(item, dict):
            item = dict(item)
            for func in funcs:
                func(item)
        enriched.append(item)
    return enriched


# --- formatting helpers ---


def short_name(url: str) -> str:
    """Last path segment of a resource URL."""
    return url.rsplit("/", 1)[-1]


def strip_prefix(value: str, prefix: str) -> str:
    return value[len(prefix) :] if value.startswith(prefix) else value


def format_timestamp_short(timestamp: str) -> str:
    """RFC 3339 timestamp to its date part."""
    return timestamp[:10]


def format_bytes(size: int) -> str:
    kb = 1024
    mb = kb * 1024
    gb = mb * 1024
    tb = gb * 1024
    if size >= tb:
        return f"{size / tb:.1f} TB"
    if size >= gb:
        return f"{size / gb:.1f} GB"
    if size >= mb:
        return f"{size / mb:.1f} MB"
    if size >= kb:
        return f"{size / kb:.1f} KB"
    return f"{size} B"


def parse_money(money: Any) -> float:
    """Money message (string units plus integer nanos) as a float."""
    if not isinstance(money, dict):
        return 0.0
    try:
        units = float(money.get("units") or 0)
    except (TypeError, ValueError):
        units = 0.0
    nanos = money.get("nanos")
    if not isinstance(nanos, int) or isinstance(nanos, bool):
        nanos = 0
    return units + nanos / 1_000_000_000


def format_currency(amount: Optional[float]) -> str:
    """Budget amount; None means the budget tracks last period's spend."""
    if amount is None:
        return "Last Period"
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"${amount / 1_000:.1f}K"
    return f"${amount:.2f}"


def format_unit_price(amount: float) -> str:
    if amount == 0:
        return "Free"
    if amount < 0.0001:
        return f"${amount:.6f}"
    return f"${amount:.4f}"


# --- common enrichers ---


@enricher("short_names")
def add_short_names(item: Record) -> None:
    for field in SHORT_NAME_FIELDS:
        value = item.get(field)
        if isinstance(value, str):
            item[f"{field}_short"] = short_name(value)


@enricher("counts")
def add_counts(item: Record) -> None:
    for field in COUNT_FIELDS:
        value = item.get(field)
        if isinstance(value, list):
            item[f"{field}_count"] = str(len(value))


@enricher("display_flags")
def add_display_flags(item: Record) -> None:
    auto_create = item.get("autoCreateSubnetworks")
    if isinstance(auto_create, bool):
        item["autoCreateSubnetworks_display"] = "Auto" if auto_create else "Custom"

    if "allowed" in item:
        item["action_display"] = "ALLOW"
    elif "denied" in item:
        item["action_display"] = "DENY"

    autoscaling = item.get("autoscaling")
    if isinstance(autoscaling, dict) and isinstance(autoscaling.get("enabled"), bool):
        item["autoscaling_display"] = "Yes" if autoscaling["enabled"] else "No"


@enricher("timestamps")
def add_short_timestamps(item: Record) -> None:
    for field in ("timeCreated", "updated"):
        value = item.get(field)
        if isinstance(value, str):
            item[f"{field}_short"] = format_timestamp_short(value)


@enricher("sizes")
def add_size_display(item: Record) -> None:
    # Cloud Storage sends object sizes as decimal strings
    size = item.get("size")
    if isinstance(size, str):
        try:
            item["size_display"] = format_bytes(int(size))
        except ValueError:
            pass


# --- service specific enrichers ---


@enricher("gke")
def add_gke_fields(item: Record) -> None:
    autopilot = item.get("autopilot")
    enabled = isinstance(autopilot, dict) and autopilot.get("enabled") is True
    item["autopilot_display"] = "Autopilot" if enabled else "Standard"


@enricher("billing_accounts")
def add_billing_account_fields(item: Record) -> None:
    name = item.get("name")
    if isinstance(name, str):
        item["name_short"] = strip_prefix(name, BILLING_ACCOUNT_PREFIX)
    is_open = item.get("open")
    if isinstance(is_open, bool):
        item["open_display"] = "OPEN" if is_open else "CLOSED"
    master = item.get("masterBillingAccount")
    if isinstance(master, str):
        item["masterBillingAccount_short"] = strip_prefix(master, BILLING_ACCOUNT_PREFIX)


def _budget_amount(amount: Any) -> Optional[float]:
    if not isinstance(amount, dict):
        return 0.0
    if "specifiedAmount" in amount:
        return parse_money(amount["specifiedAmount"])
    if "lastPeriodAmount" in amount:
        return None
    return 0.0


@enricher("budgets")
def add_budget_fields(item: Record) -> None:
    item["amount_display"] = format_currency(_budget_amount(item.get("amount")))
    rules = item.get("thresholdRules")
    item["thresholdRules_count"] = str(len(rules)) if isinstance(rules, list) else "0"


@enricher("project_billing")
def add_project_billing_fields(item: Record) -> None:
    account = item.get("billingAccountName")
    if isinstance(account, str) and account:
        item["billingAccountName_short"] = strip_prefix(account, BILLING_ACCOUNT_PREFIX)


@enricher("services")
def add_service_fields(item: Record) -> None:
    entity = item.get("businessEntityName")
    if isinstance(entity, str):
        item["businessEntityName_short"] = strip_prefix(entity, BUSINESS_ENTITY_PREFIX)


@enricher("skus")
def add_sku_fields(item: Record) -> None:
    pricing_info = item.get("pricingInfo")
    if not isinstance(pricing_info, list) or not pricing_info:
        return
    first = pricing_info[0]
    expression = first.get("pricingExpression") if isinstance(first, dict) else None
    if not isinstance(expression, dict):
        return
    unit = expression.get("usageUnit")
    if isinstance(unit, str):
        item["usage_unit"] = unit
    rates = expression.get("tieredRates")
    if isinstance(rates, list) and rates and isinstance(rates[0], dict):
        unit_price = rates[0].get("unitPrice")
        if unit_price is not None:
            item["price_display"] = format_unit_price(parse_money(unit_price))
