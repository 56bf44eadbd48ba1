"""
prepdesk/services/plan_validator.py
Validation and normalisation of weekly plan items.

Every item that reaches the database passes through here, whether it
came from a student's form, the rule-based generator or the language
model. The canonical item is:

    {day_of_week: 0-6, subject_id, topic_id | None, duration | None, notes | None}

VALIDATION RULES:
- day_of_week is an integer in [0, 6]
- duration, when present, is an integer in [15, 240] minutes
- subject must exist in the catalog
- topic, when present, must exist and belong to the item's subject

Externally generated items reference subjects and topics by NAME. Names
are resolved against the catalog (exact, then a unique partial match for
subjects); anything unresolvable is rejected, never invented.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from prepdesk.orm.subject import Subject
from prepdesk.orm.topic import Topic
from prepdesk.errors import BadRequestError, ErrorCode

logger = logging.getLogger(__name__)

MIN_DAY = 0
MAX_DAY = 6
MIN_ITEM_DURATION = 15
MAX_ITEM_DURATION = 240

# Sessions the generators themselves produce stay inside these bounds
MIN_SESSION_MINUTES = 30
MAX_SESSION_MINUTES = 90
DEFAULT_SESSION_MINUTES = 60


@dataclass
class CatalogTopic:
    id: int
    name: str
    subject_id: int


@dataclass
class CatalogSubject:
    id: int
    name: str
    exam_type_name: str


@dataclass
class PlanCatalog:
    """In-memory view of subjects and topics used to resolve references."""
    subjects: Dict[int, CatalogSubject] = field(default_factory=dict)
    topics: Dict[int, CatalogTopic] = field(default_factory=dict)

    def resolve_subject(self, name: Optional[str]) -> Optional[CatalogSubject]:
        """
        Match a subject by name.

        Accepts "Subject" or "ExamType - Subject". Exact (case-insensitive)
        match first, then a partial match only when it is unambiguous.
        """
        if not name or not name.strip():
            return None
        wanted = name.strip().lower()

        for subject in self.subjects.values():
            full = f"{subject.exam_type_name} - {subject.name}".lower()
            if wanted in (subject.name.lower(), full):
                return subject

        partial = [
            s for s in self.subjects.values()
            if s.name.lower() in wanted or wanted in s.name.lower()
        ]
        if len(partial) == 1:
            return partial[0]
        return None

    def resolve_topic(self, subject_id: int, name: Optional[str]) -> Optional[CatalogTopic]:
        if not name or not name.strip():
            return None
        wanted = name.strip().lower()
        for topic in self.topics.values():
            if topic.subject_id == subject_id and topic.name.lower() == wanted:
                return topic
        return None


@dataclass
class Violation:
    index: int
    field: str
    constraint: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "field": self.field,
            "constraint": self.constraint,
            "value": self.value,
        }


@dataclass
class ValidationResult:
    items: List[Dict[str, Any]]
    violations: List[Violation]

    @property
    def is_valid(self) -> bool:
        return not self.violations


async def load_plan_catalog(db: AsyncSession) -> PlanCatalog:
    catalog = PlanCatalog()

    subjects = (await db.execute(select(Subject))).scalars().all()
    for subject in subjects:
        catalog.subjects[subject.id] = CatalogSubject(
            id=subject.id,
            name=subject.name,
            exam_type_name=subject.exam_type.name,
        )

    topics = (await db.execute(select(Topic))).scalars().all()
    for topic in topics:
        catalog.topics[topic.id] = CatalogTopic(
            id=topic.id,
            name=topic.name,
            subject_id=topic.subject_id,
        )

    return catalog


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def check_item(index: int, item: Dict[str, Any], catalog: PlanCatalog) -> List[Violation]:
    """Return every rule the canonical `item` breaks."""
    violations = []

    day = item.get("day_of_week")
    if _as_int(day) is None:
        violations.append(Violation(index, "dayOfWeek", "required integer", day))
    elif not MIN_DAY <= _as_int(day) <= MAX_DAY:
        violations.append(Violation(index, "dayOfWeek", f"must be between {MIN_DAY} and {MAX_DAY}", day))

    duration = item.get("duration")
    if duration is not None:
        if _as_int(duration) is None:
            violations.append(Violation(index, "duration", "must be an integer", duration))
        elif not MIN_ITEM_DURATION <= _as_int(duration) <= MAX_ITEM_DURATION:
            violations.append(Violation(
                index, "duration",
                f"must be between {MIN_ITEM_DURATION} and {MAX_ITEM_DURATION}",
                duration
            ))

    subject_id = item.get("subject_id")
    if subject_id is None:
        violations.append(Violation(index, "subjectId", "required"))
    elif subject_id not in catalog.subjects:
        violations.append(Violation(index, "subjectId", "unknown subject", subject_id))

    topic_id = item.get("topic_id")
    if topic_id is not None:
        topic = catalog.topics.get(topic_id)
        if topic is None:
            violations.append(Violation(index, "topicId", "unknown topic", topic_id))
        elif subject_id is not None and topic.subject_id != subject_id:
            violations.append(Violation(index, "topicId", "topic does not belong to subject", topic_id))

    return violations


def validate_items(items: List[Dict[str, Any]], catalog: PlanCatalog) -> ValidationResult:
    """Validate canonical items. Valid ones come back normalised, in order."""
    valid = []
    violations = []

    for index, item in enumerate(items):
        problems = check_item(index, item, catalog)
        if problems:
            violations.extend(problems)
            continue
        valid.append({
            "day_of_week": _as_int(item["day_of_week"]),
            "subject_id": item["subject_id"],
            "topic_id": item.get("topic_id"),
            "duration": _as_int(item["duration"]) if item.get("duration") is not None else None,
            "question_count": item.get("question_count"),
            "notes": item.get("notes"),
        })

    return ValidationResult(items=valid, violations=violations)


def require_valid_items(items: List[Dict[str, Any]], catalog: PlanCatalog) -> List[Dict[str, Any]]:
    """Validate and raise 400 with every violation before anything is persisted."""
    result = validate_items(items, catalog)
    if not result.is_valid:
        raise BadRequestError(
            "Plan items failed validation",
            code=ErrorCode.VALIDATION_ERROR,
            details={"violations": [v.to_dict() for v in result.violations]}
        )
    return result.items


def normalize_external_items(raw_items: List[Any], catalog: PlanCatalog) -> ValidationResult:
    """
    Turn name-based items from an external generator into canonical items.

    Durations are clamped into the session bounds; missing durations get
    the default session length. Items whose names do not resolve, or
    whose day is out of range, are dropped and reported.
    """
    canonical = []
    violations = []

    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            violations.append(Violation(index, "item", "must be an object", raw))
            continue

        subject = catalog.resolve_subject(raw.get("subjectName"))
        if subject is None:
            violations.append(Violation(index, "subjectName", "unknown subject", raw.get("subjectName")))
            continue

        topic_id = None
        topic_name = raw.get("topicName")
        if topic_name:
            topic = catalog.resolve_topic(subject.id, topic_name)
            if topic is None:
                violations.append(Violation(index, "topicName", "unknown topic", topic_name))
                continue
            topic_id = topic.id

        duration = _as_int(raw.get("duration"))
        if duration is None or duration <= 0:
            duration = DEFAULT_SESSION_MINUTES
        duration = max(MIN_SESSION_MINUTES, min(MAX_SESSION_MINUTES, duration))

        candidate = {
            "day_of_week": raw.get("dayOfWeek"),
            "subject_id": subject.id,
            "topic_id": topic_id,
            "duration": duration,
            "notes": raw.get("notes") or None,
        }
        problems = check_item(index, candidate, catalog)
        if problems:
            violations.extend(problems)
            continue

        candidate["day_of_week"] = _as_int(candidate["day_of_week"])
        canonical.append(candidate)

    for violation in violations:
        logger.warning(f"Dropped external plan item {violation.index}: {violation.field} {violation.constraint} ({violation.value!r})")

    return ValidationResult(items=canonical, violations=violations)
