"""
Field table primitives.

Every importable product property is described once by a FieldSpec: the
column it is read from, how to read and write it on the entity, its
semantic type, an optional default and an optional custom transform. The
writer walks the table instead of addressing properties dynamically.
"""

from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Iterable, Optional

from .converters import Culture, FieldKind


def _attribute_setter(attribute: str) -> Callable[[Any, Any], None]:
    def setter(target: Any, value: Any) -> None:
        setattr(target, attribute, value)
    return setter


@dataclass(frozen=True)
class FieldSpec:
    """
    Describes how one column maps onto one entity property.

    Modes:
    - plain copy: no default, no transform
    - copy with default: ``default`` (or ``default_factory``) is used when the
      cell is blank, and for new entities when the column is missing
    - custom transform: ``transform(raw_value, culture)`` replaces conversion
    """
    column: str
    attribute: str
    kind: FieldKind
    getter: Callable[[Any], Any]
    setter: Callable[[Any, Any], None]
    default: Any = None
    default_factory: Optional[Callable[[], Any]] = None
    transform: Optional[Callable[[Any, Culture], Any]] = None

    @property
    def has_default(self) -> bool:
        return self.default is not None or self.default_factory is not None

    def default_value(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


def field_spec(
    column: str,
    attribute: str,
    kind: FieldKind = FieldKind.STRING,
    default: Any = None,
    default_factory: Optional[Callable[[], Any]] = None,
    transform: Optional[Callable[[Any, Culture], Any]] = None
) -> FieldSpec:
    """Build a FieldSpec whose getter/setter address ``attribute``."""
    return FieldSpec(
        column=column,
        attribute=attribute,
        kind=kind,
        getter=attrgetter(attribute),
        setter=_attribute_setter(attribute),
        default=default,
        default_factory=default_factory,
        transform=transform,
    )


def apply_fields(row, target: Any, specs: Iterable[FieldSpec], result) -> int:
    """
    Apply every spec to ``target`` through the row's field setter.

    Conversion failures are recorded on the row and in the result; they never
    abort the row.

    Returns:
        Number of properties that changed
    """
    applied = 0
    for spec in specs:
        if row.set_property(result, target, spec):
            applied += 1
    return applied
