"""Culture-aware conversion of raw cell values into typed values.

Raw values come from CSV files (always strings) or Excel sheets (already
typed numbers, booleans and datetimes). Every converter accepts both and
raises ConversionError when a value cannot be interpreted.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple


class ConversionError(ValueError):
    """Raised when a raw cell value cannot be converted to the requested type."""


class FieldKind(Enum):
    """Semantic type of a product field or data column."""
    STRING = "string"
    INT = "int"
    DECIMAL = "decimal"
    BOOL = "bool"
    DATETIME = "datetime"
    INT_LIST = "int_list"


@dataclass(frozen=True)
class Culture:
    """Number and date formatting rules used to parse raw values."""
    name: str
    decimal_separator: str
    group_separator: str
    date_formats: Tuple[str, ...]


CULTURES: Dict[str, Culture] = {
    "invariant": Culture(
        name="invariant",
        decimal_separator=".",
        group_separator=",",
        date_formats=("%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%m/%d/%Y", "%m/%d/%Y %H:%M:%S"),
    ),
    "en-US": Culture(
        name="en-US",
        decimal_separator=".",
        group_separator=",",
        date_formats=("%m/%d/%Y", "%m/%d/%Y %H:%M:%S", "%m/%d/%Y %I:%M:%S %p", "%Y-%m-%d"),
    ),
    "en-GB": Culture(
        name="en-GB",
        decimal_separator=".",
        group_separator=",",
        date_formats=("%d/%m/%Y", "%d/%m/%Y %H:%M:%S", "%Y-%m-%d"),
    ),
    "de-DE": Culture(
        name="de-DE",
        decimal_separator=",",
        group_separator=".",
        date_formats=("%d.%m.%Y", "%d.%m.%Y %H:%M:%S", "%d.%m.%Y %H:%M", "%Y-%m-%d"),
    ),
    "fr-FR": Culture(
        name="fr-FR",
        decimal_separator=",",
        group_separator=" ",
        date_formats=("%d/%m/%Y", "%d/%m/%Y %H:%M:%S", "%Y-%m-%d"),
    ),
}

INVARIANT_CULTURE = CULTURES["invariant"]

TRUE_STRINGS = {"true", "yes", "y", "on", "1", "x", "wahr", "ja", "oui", "vrai"}
FALSE_STRINGS = {"false", "no", "n", "off", "0", "falsch", "nein", "non", "faux"}

# Separators accepted between the ids of a multi-value cell ("5,6" or "5;6")
_LIST_SEPARATORS = re.compile(r"[,;|]")


def get_culture(name: Optional[str]) -> Culture:
    """Look up a registered culture by name (case-insensitive)."""
    if not name:
        return INVARIANT_CULTURE
    for key, culture in CULTURES.items():
        if key.lower() == name.strip().lower():
            return culture
    raise KeyError(f"Unknown culture: {name}. Known cultures: {sorted(CULTURES)}")


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings and the literal NULL."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped.upper() == "NULL"
    return False


def to_str(value: Any, culture: Culture = INVARIANT_CULTURE) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # Excel hands back 123.0 for integer-looking cells such as SKUs
        return str(int(value))
    return str(value).strip()


def to_decimal(value: Any, culture: Culture = INVARIANT_CULTURE) -> Decimal:
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = str(value).strip().replace(" ", "").replace("\u00a0", "")
    if culture.group_separator:
        text = text.replace(culture.group_separator, "")
    if culture.decimal_separator != ".":
        text = text.replace(culture.decimal_separator, ".")
    try:
        result = Decimal(text)
    except InvalidOperation:
        raise ConversionError(f"'{value}' is not a valid decimal number ({culture.name}).")
    if not result.is_finite():
        raise ConversionError(f"'{value}' is not a finite number.")
    return result


def to_int(value: Any, culture: Culture = INVARIANT_CULTURE) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        number = to_decimal(value, culture)
    except ConversionError:
        raise ConversionError(f"'{value}' is not a valid integer ({culture.name}).")
    if number != number.to_integral_value():
        raise ConversionError(f"'{value}' is not a whole number.")
    return int(number)


def to_bool(value: Any, culture: Culture = INVARIANT_CULTURE) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ConversionError(f"'{value}' is not a valid boolean.")


def to_datetime(value: Any, culture: Culture = INVARIANT_CULTURE) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in culture.date_formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ConversionError(f"'{value}' is not a valid date ({culture.name}).")


def to_int_list(value: Any, culture: Culture = INVARIANT_CULTURE) -> List[int]:
    if isinstance(value, (list, tuple, set)):
        parts = list(value)
    elif isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        parts = [value]
    else:
        parts = [p for p in _LIST_SEPARATORS.split(str(value)) if p.strip()]
    return [to_int(p, culture) for p in parts]


def zero_to_none(value: Any, culture: Culture = INVARIANT_CULTURE) -> Optional[int]:
    """Interpret zero, negative and unparsable values as 'no reference'."""
    if is_blank(value):
        return None
    try:
        number = to_int(value, culture)
    except ConversionError:
        return None
    return number if number > 0 else None


_CONVERTERS: Dict[FieldKind, Callable[[Any, Culture], Any]] = {
    FieldKind.STRING: to_str,
    FieldKind.INT: to_int,
    FieldKind.DECIMAL: to_decimal,
    FieldKind.BOOL: to_bool,
    FieldKind.DATETIME: to_datetime,
    FieldKind.INT_LIST: to_int_list,
}

# Value a field receives when its cell is blank and no default is declared
EMPTY_VALUES: Dict[FieldKind, Any] = {
    FieldKind.STRING: None,
    FieldKind.INT: 0,
    FieldKind.DECIMAL: Decimal("0"),
    FieldKind.BOOL: False,
    FieldKind.DATETIME: None,
    FieldKind.INT_LIST: [],
}


def convert(value: Any, kind: FieldKind, culture: Culture = INVARIANT_CULTURE) -> Any:
    """Convert a non-blank raw value to the given kind."""
    return _CONVERTERS[kind](value, culture)


def empty_value(kind: FieldKind) -> Any:
    value = EMPTY_VALUES[kind]
    return list(value) if isinstance(value, list) else value
