# accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Semantic keys (INVENTORY, ACCOUNTS_PAYABLE, ...) map to account codes in the
active chart. Defaults live in DEFAULT_CODES; deployments override individual
keys through settings.ACCOUNTING_ACCOUNT_CODES.

Design goals:
- deterministic
- chart-safe
- hard-fail on missing setup (so we never post to the wrong account)
"""

from __future__ import annotations

import logging
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import MultipleObjectsReturned, ObjectDoesNotExist

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)

DEFAULT_CODES = {
    "CASH": "1000",
    "BANK": "1010",
    "INVENTORY": "1300",
    "INPUT_TAX": "1400",
    "ACCOUNTS_PAYABLE": "2000",
    "INVENTORY_ADJUSTMENT": "5100",
    "OPERATING_EXPENSES": "6000",
}


def _configured_codes() -> dict:
    codes = dict(DEFAULT_CODES)
    overrides = getattr(settings, "ACCOUNTING_ACCOUNT_CODES", None) or {}
    for key, code in overrides.items():
        key = str(key or "").strip().upper()
        code = str(code or "").strip()
        if key and code:
            codes[key] = code
    return codes


# ------------------------------------------------------------
# ACTIVE CHART
# ------------------------------------------------------------


@lru_cache(maxsize=1)
def get_active_chart() -> ChartOfAccounts:
    """
    Cached resolver for the *single* active chart.

    NOTE:
    ChartOfAccounts.save() clears this cache whenever the active chart may
    have changed. Call clear_active_chart_cache() after bulk updates.
    """
    try:
        return ChartOfAccounts.objects.get(is_active=True)
    except ObjectDoesNotExist as exc:
        raise AccountResolutionError(
            "No active Chart of Accounts. Run `python manage.py seed_chart` first."
        ) from exc
    except MultipleObjectsReturned as exc:
        raise AccountResolutionError(
            "Multiple active Charts of Accounts found. Only one active chart is allowed."
        ) from exc


def clear_active_chart_cache() -> None:
    get_active_chart.cache_clear()


# ------------------------------------------------------------
# RESOLUTION
# ------------------------------------------------------------


def resolve_code(semantic_key: str) -> str:
    semantic_key = (semantic_key or "").strip().upper()
    if not semantic_key:
        raise AccountResolutionError("semantic_key is required")

    code = _configured_codes().get(semantic_key, "")
    if not code:
        raise AccountResolutionError(
            f"Missing mapping for semantic key '{semantic_key}'. "
            "Add it to ACCOUNTING_ACCOUNT_CODES."
        )
    return code


def get_account_by_code(code: str, *, chart: ChartOfAccounts | None = None) -> Account:
    code = (code or "").strip()
    if not code:
        raise AccountResolutionError("Account code is required")

    chart = chart or get_active_chart()

    try:
        return Account.objects.get(chart=chart, code=code, is_active=True)
    except ObjectDoesNotExist as exc:
        logger.error(
            "Account resolution failed: account not found",
            extra={"account_code": code, "chart": chart.name},
        )
        raise AccountResolutionError(
            f"Account with code={code} not found (or inactive) in active chart '{chart.name}'. "
            "Run the chart seed command (or add the account manually) and ensure is_active=True."
        ) from exc


def resolve_account(semantic_key: str) -> Account:
    return get_account_by_code(resolve_code(semantic_key))


# ------------------------------------------------------------
# PUBLIC RESOLVERS
# ------------------------------------------------------------


def get_cash_account() -> Account:
    return resolve_account("CASH")


def get_bank_account() -> Account:
    return resolve_account("BANK")


def get_inventory_account() -> Account:
    return resolve_account("INVENTORY")


def get_input_tax_account() -> Account:
    return resolve_account("INPUT_TAX")


def get_accounts_payable_account() -> Account:
    return resolve_account("ACCOUNTS_PAYABLE")


def get_inventory_adjustment_account() -> Account:
    return resolve_account("INVENTORY_ADJUSTMENT")


def get_operating_expense_account() -> Account:
    return resolve_account("OPERATING_EXPENSES")
