"""
Formatage localisé (nl-NL) des prix et des dates, basé sur Babel.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Union

from babel.dates import format_date as _babel_format_date
from babel.numbers import format_currency

DEFAULT_LOCALE = "nl_NL"

def _normalize_locale(locale: str) -> str:
    return (locale or DEFAULT_LOCALE).replace("-", "_")

def format_price(price: Union[int, float, Decimal, str, None], currency: str = "EUR", locale: str = DEFAULT_LOCALE) -> str:
    """
    Prix en unités majeures -> chaîne monétaire localisée.
    Ex: format_price(1299) -> "€ 1.299,00"
    """
    amount = Decimal(str(price)) if price is not None else Decimal("0")
    return format_currency(amount, (currency or "EUR").upper(), locale=_normalize_locale(locale))

def _to_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    # fromisoformat n'accepte pas le suffixe Z avant Python 3.11
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        return date.fromisoformat(raw[:10])

def format_date(value: Union[date, datetime, str], locale: str = DEFAULT_LOCALE) -> str:
    """Date longue localisée. Ex: "17 oktober 2026"."""
    return _babel_format_date(_to_date(value), format="long", locale=_normalize_locale(locale))
