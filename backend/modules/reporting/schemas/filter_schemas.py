# backend/modules/reporting/schemas/filter_schemas.py

"""
Filter declarations and the typed values produced by filter parsing.

Filter values form a tagged union: every value class carries a `kind`
discriminator matching the `FilterType` that produced it, so pipeline
builders can rely on the concrete type instead of inspecting raw strings.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union


class FilterType(str, Enum):
    """Supported filter input types"""

    DATE_RANGE = "date_range"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    NUMBER = "number"
    SEARCH = "search"


class FilterErrorCode(str, Enum):
    """Structured validation error codes"""

    MISSING_FILTER = "MissingFilter"
    INVALID_DATE_RANGE = "InvalidDateRange"
    INVALID_NUMBER = "InvalidNumber"
    INVALID_OPTION = "InvalidOption"


@dataclass(frozen=True)
class FilterOption:
    value: str
    label: str


@dataclass(frozen=True)
class DynamicSource:
    """Where a filter's options are loaded from at runtime"""

    type: str
    collection: str


@dataclass(frozen=True)
class FilterSpec:
    """Declares how a raw query parameter is parsed and validated"""

    key: str
    type: FilterType
    label: str = ""
    required: bool = False
    options: Tuple[FilterOption, ...] = ()
    default: Optional[object] = None
    placeholder: Optional[str] = None
    dynamic_source: Optional[DynamicSource] = None

    @property
    def display_name(self) -> str:
        return self.label or self.key


@dataclass(frozen=True)
class DateRangeValue:
    start: datetime
    end: datetime
    kind: FilterType = field(default=FilterType.DATE_RANGE, init=False)


@dataclass(frozen=True)
class SelectValue:
    value: str
    kind: FilterType = field(default=FilterType.SELECT, init=False)


@dataclass(frozen=True)
class MultiSelectValue:
    values: FrozenSet[str]
    kind: FilterType = field(default=FilterType.MULTI_SELECT, init=False)

    def sorted_values(self):
        """Values in a stable order for pipeline construction"""
        return sorted(self.values)


@dataclass(frozen=True)
class NumberValue:
    value: float
    kind: FilterType = field(default=FilterType.NUMBER, init=False)


@dataclass(frozen=True)
class SearchValue:
    text: str
    kind: FilterType = field(default=FilterType.SEARCH, init=False)


FilterValue = Union[DateRangeValue, SelectValue, MultiSelectValue, NumberValue, SearchValue]


@dataclass(frozen=True)
class FilterError:
    """A single structured validation failure"""

    code: FilterErrorCode
    key: str
    message: str

    def to_dict(self):
        return {"code": self.code.value, "key": self.key, "message": self.message}
