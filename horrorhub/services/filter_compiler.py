"""
Content filter/sort compiler

Turns the flat query-string filters of the browse endpoints into an abstract
predicate list plus one deterministic ordering. Nothing here touches the
database; services/content_repository.py translates the result into SQLAlchemy.

Malformed values never raise, they simply produce no predicate.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union


logger = logging.getLogger(__name__)

SORT_PATTERN = re.compile(r"^(average_rating|critics_rating|users_rating|release_date):(asc|desc)$")
DECADE_PATTERN = re.compile(r"^(\d{4})s$")
DEFAULT_SORT = "average_rating:desc"

RATING_FIELDS = ("average_rating", "critics_rating", "users_rating")
CONTENT_TYPES = ("movie", "series")
PLATFORM_MODES = ("any", "all")


# --- Predicates ---

@dataclass(frozen=True)
class Visibility:
    exclude_hidden: bool = True
    require_active: bool = True


@dataclass(frozen=True)
class PlatformIds:
    ids: tuple
    mode: str = "any"  # any = OR of EXISTS, all = AND of EXISTS


@dataclass(frozen=True)
class PlatformNames:
    names: tuple  # matched case-sensitively against platform_key or platform_name


@dataclass(frozen=True)
class YearEquals:
    year: int


@dataclass(frozen=True)
class YearBetween:
    min: int
    max_exclusive: int


@dataclass(frozen=True)
class MinRating:
    field: str
    value: float


@dataclass(frozen=True)
class TextSearch:
    term: str


@dataclass(frozen=True)
class SubgenreMatch:
    token: str


@dataclass(frozen=True)
class TypeEquals:
    type: str


Predicate = Union[Visibility, PlatformIds, PlatformNames, YearEquals, YearBetween,
                  MinRating, TextSearch, SubgenreMatch, TypeEquals]


@dataclass(frozen=True)
class OrderSpec:
    field: str
    direction: str

    @property
    def column(self) -> str:
        """release_date sorts on the year column"""
        return "year" if self.field == "release_date" else self.field

    @property
    def token(self) -> str:
        return f"{self.field}:{self.direction}"

    @property
    def tiebreak(self) -> tuple:
        return (("title", "asc"),)


@dataclass(frozen=True)
class YearRange:
    min: int
    max_exclusive: int


@dataclass
class FilterSpec:
    predicates: List[Predicate] = field(default_factory=list)
    order_by: OrderSpec = field(default_factory=lambda: parse_sort(None))

    def find(self, kind) -> List[Predicate]:
        return [p for p in self.predicates if isinstance(p, kind)]


@dataclass
class ContentFilters:
    """Raw browse filters as they arrive from the query string"""
    platform: Optional[Union[str, Sequence[str]]] = None
    platform_ids: Optional[Union[str, Sequence[Any]]] = None
    platform_mode: Optional[str] = None
    year: Optional[Union[int, str]] = None
    min_rating: Optional[Any] = None
    min_critics_rating: Optional[Any] = None
    min_users_rating: Optional[Any] = None
    search: Optional[str] = None
    type: Optional[str] = None
    subgenre: Optional[str] = None
    sort_by: Optional[str] = None
    include_hidden: bool = False
    include_inactive: bool = False


# --- Pure helpers ---

def decade_to_range(label: Any) -> Optional[YearRange]:
    """
    "1990s" -> YearRange(1990, 2000). The start year must be a multiple of ten;
    anything else yields None.
    """
    if not isinstance(label, str):
        return None
    match = DECADE_PATTERN.match(label.strip())
    if not match:
        return None
    start = int(match.group(1))
    if start % 10 != 0:
        return None
    return YearRange(min=start, max_exclusive=start + 10)


def parse_sort(token: Any) -> OrderSpec:
    if isinstance(token, str):
        match = SORT_PATTERN.match(token.strip())
        if match:
            return OrderSpec(field=match.group(1), direction=match.group(2))
    field_name, direction = DEFAULT_SORT.split(":")
    return OrderSpec(field=field_name, direction=direction)


def _parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _split_values(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return [str(item).strip() for item in items if str(item).strip()]


def _parse_year(value: Any) -> Optional[Predicate]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return YearEquals(value)
    if isinstance(value, str):
        value = value.strip()
        if value.isdigit():
            return YearEquals(int(value))
        year_range = decade_to_range(value)
        if year_range:
            return YearBetween(year_range.min, year_range.max_exclusive)
    logger.debug(f"Ignoring unrecognized year filter: {value!r}")
    return None


def _parse_platform_ids(value: Any, mode: Any) -> Optional[PlatformIds]:
    ids = []
    for raw in _split_values(value):
        if not raw.isdigit():
            # one bad id drops the whole filter
            logger.debug(f"Ignoring platform id filter with invalid id: {raw!r}")
            return None
        ids.append(int(raw))
    if not ids:
        return None

    if mode is None or mode == "":
        mode = "any"
    mode = mode.strip().lower() if isinstance(mode, str) else None
    if mode not in PLATFORM_MODES:
        logger.debug(f"Ignoring platform id filter with unknown mode: {mode!r}")
        return None
    return PlatformIds(ids=tuple(dict.fromkeys(ids)), mode=mode)


def build_filter_spec(params: Optional[ContentFilters] = None) -> FilterSpec:
    """Compile raw filters into predicates and a single ordering"""
    params = params or ContentFilters()
    predicates: List[Predicate] = []

    if not (params.include_hidden and params.include_inactive):
        predicates.append(Visibility(
            exclude_hidden=not params.include_hidden,
            require_active=not params.include_inactive,
        ))

    platform_ids = _parse_platform_ids(params.platform_ids, params.platform_mode)
    if platform_ids:
        predicates.append(platform_ids)

    names = [n for n in _split_values(params.platform) if n.lower() != "all"]
    if names:
        predicates.append(PlatformNames(names=tuple(dict.fromkeys(names))))

    year = _parse_year(params.year)
    if year:
        predicates.append(year)

    for field_name, raw in (
        ("average_rating", params.min_rating),
        ("critics_rating", params.min_critics_rating),
        ("users_rating", params.min_users_rating),
    ):
        value = _parse_number(raw)
        if value is not None:
            predicates.append(MinRating(field=field_name, value=value))

    if isinstance(params.search, str) and params.search.strip():
        predicates.append(TextSearch(term=params.search.strip()))

    if isinstance(params.subgenre, str):
        token = params.subgenre.strip()
        if token and token.lower() != "all":
            predicates.append(SubgenreMatch(token=token))

    if isinstance(params.type, str):
        content_type = params.type.strip().lower()
        if content_type in CONTENT_TYPES:
            predicates.append(TypeEquals(type=content_type))

    return FilterSpec(predicates=predicates, order_by=parse_sort(params.sort_by))
