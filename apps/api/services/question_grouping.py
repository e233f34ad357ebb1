"""
Question record grouping.

Turns a flat list of question records (ORM rows, wire dicts, or
QuestionRecord models) into per-air-date game groups split by round and
category. Used by the games listing, the admin console and tests.

Guarantees:
- total over its input: malformed records land in "unknown"/"Unknown"
  buckets instead of raising
- each group's question_count equals the sum of its categories' sizes
- every question in a category resolves to that category's round
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel

from models import Round
from schemas import GameGroup, GroupedCategory

UNKNOWN_DATE = "unknown"
UNKNOWN_CATEGORY = "Unknown"

ROUND_ATTRS = {
    Round.SINGLE: "single_jeopardy",
    Round.DOUBLE: "double_jeopardy",
    Round.FINAL: "final_jeopardy",
}


def _get(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _as_mapping(record: Any) -> Dict[str, Any]:
    if isinstance(record, Mapping):
        return dict(record)
    if isinstance(record, BaseModel):
        return record.model_dump(by_alias=True, exclude_none=True)
    # ORM row
    from services.question_store import serialize_question
    return serialize_question(record)


def resolve_round(record: Any) -> str:
    """Explicit round wins; legacy flags only apply when it is absent."""
    data = record if isinstance(record, Mapping) else _as_mapping(record)
    explicit = _get(data, "round")
    if isinstance(explicit, str) and explicit.upper() in Round.ALL:
        return explicit.upper()
    if _get(data, "isFinalJeopardy", "is_final_jeopardy"):
        return Round.FINAL
    if _get(data, "isDoubleJeopardy", "is_double_jeopardy"):
        return Round.DOUBLE
    return Round.SINGLE


def resolve_date_key(record: Any) -> str:
    """
    Calendar date of the record as ``YYYY-MM-DD``.

    String dates are cut, never parsed, so a stored date cannot shift by
    a day under a non-UTC local timezone.
    """
    data = record if isinstance(record, Mapping) else _as_mapping(record)
    value = _get(data, "airDate", "air_date")
    if value is None:
        return UNKNOWN_DATE
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return UNKNOWN_DATE
    return text.split("T", 1)[0][:10]


def resolve_category_name(record: Any) -> str:
    data = record if isinstance(record, Mapping) else _as_mapping(record)
    category = _get(data, "category")
    if isinstance(category, str) and category.strip():
        return category
    if isinstance(category, Mapping):
        name = category.get("name")
        if isinstance(name, str) and name.strip():
            return name
    name = getattr(category, "name", None)
    if isinstance(name, str) and name.strip():
        return name
    return UNKNOWN_CATEGORY


def _find_category(categories: List[GroupedCategory], name: str) -> Optional[GroupedCategory]:
    for category in categories:
        if category.name == name:
            return category
    return None


def group_by_date(records: Iterable[Any]) -> Dict[str, GameGroup]:
    """Group records by air date, then round, then category name."""
    groups: Dict[str, GameGroup] = {}

    for record in records:
        data = _as_mapping(record)
        date_key = resolve_date_key(data)
        round_ = resolve_round(data)
        category_name = resolve_category_name(data)

        group = groups.get(date_key)
        if group is None:
            group = GameGroup(air_date=date_key)
            groups[date_key] = group

        bucket: List[GroupedCategory] = getattr(group, ROUND_ATTRS[round_])
        category = _find_category(bucket, category_name)
        if category is None:
            category = GroupedCategory(name=category_name, round=round_)
            bucket.append(category)

        category.questions.append(data)
        group.question_count += 1

    return groups


def sorted_groups(groups: Mapping[str, GameGroup]) -> List[GameGroup]:
    """Newest air date first; the "unknown" bucket goes last."""
    dated = sorted(
        (g for key, g in groups.items() if key != UNKNOWN_DATE),
        key=lambda g: g.air_date,
        reverse=True,
    )
    if UNKNOWN_DATE in groups:
        dated.append(groups[UNKNOWN_DATE])
    return dated


def group_question_total(group: GameGroup) -> int:
    return sum(
        len(category.questions)
        for attr in ROUND_ATTRS.values()
        for category in getattr(group, attr)
    )
