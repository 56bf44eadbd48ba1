"""
prepdesk/services/weekly_plan_generator.py
Rule-based weekly plan assembly.

Builds a 7-day schedule of (day, subject, topic, minutes) sessions from
the student's preferences, knowledge levels, objective completion and
topic priorities. Pure computation: the caller loads inputs and persists
the result.

PLANNING RULES:
===============
1. AVAILABILITY
   - Only declared available days get sessions (all days when undeclared)
   - Daily budget = daily_study_hours × 60 (default 3 h)
   - Budget a day cannot use carries over to the next available day

2. SESSIONS
   - Session length from break preference: frequent 40, balanced 60, long 90
   - Every session is 30-90 minutes
   - 2-4 distinct subjects per day

3. TOPIC SELECTION
   - Per subject, topics follow curriculum_order; a topic whose objective
     completion ratio is above 0.70 is complete
   - A subject resumes at its first incomplete topic and only moves on
     once that topic's estimated hours are scheduled in this plan
   - Subjects compete by topic priority score (highest first)
   - At most one unfamiliar topic (level 0-1) is introduced per day
   - One mastered topic (level 4-5) per day as reinforcement, when any

4. PREREQUISITES
   - A topic with a hard prerequisite is schedulable when the
     prerequisite is at level >= 2, or on a day at least 2 days after
     the prerequisite's first session in this plan
   - Soft prerequisites never block

5. FILLING THE DAY
   - Slots a subject cannot use for progress (new-topic limit, blocked
     prerequisite) become practice: the subject's latest topic started in
     this plan, or subject-level question practice before any has started

6. DAY SHAPE
   - Sessions within a day run easy -> hard -> easy by difficulty

NO AI CALLS - ALL LOGIC IS DETERMINISTIC
"""

import math
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Tuple

from prepdesk.services.plan_validator import (
    MIN_SESSION_MINUTES,
    MAX_SESSION_MINUTES,
    DEFAULT_SESSION_MINUTES,
)

logger = logging.getLogger(__name__)

BREAK_PREFERENCE_MINUTES = {
    "frequent": 40,
    "balanced": 60,
    "long": 90,
}

ALL_DAYS = list(range(7))
DEFAULT_DAILY_HOURS = 3.0

MIN_SUBJECTS_PER_DAY = 2
MAX_SUBJECTS_PER_DAY = 4
MAX_DAILY_MINUTES = MAX_SUBJECTS_PER_DAY * MAX_SESSION_MINUTES

COMPLETION_THRESHOLD = 0.70
UNFAMILIAR_MAX_LEVEL = 1
MASTERED_MIN_LEVEL = 4
PREREQUISITE_READY_LEVEL = 2
PREREQUISITE_GAP_DAYS = 2


@dataclass
class TopicCandidate:
    """Everything the generator knows about one topic for one student."""
    topic_id: int
    topic_name: str
    subject_id: int
    subject_name: str
    curriculum_order: int = 0
    difficulty: int = 3
    estimated_hours: Optional[float] = None
    knowledge_level: int = 0
    completion_ratio: float = 0.0
    priority_score: float = 0.0
    hard_prerequisites: List[int] = field(default_factory=list)

    @property
    def is_unfamiliar(self) -> bool:
        return self.knowledge_level <= UNFAMILIAR_MAX_LEVEL

    @property
    def is_mastered(self) -> bool:
        return self.knowledge_level >= MASTERED_MIN_LEVEL

    @property
    def is_completed(self) -> bool:
        return self.completion_ratio > COMPLETION_THRESHOLD


@dataclass
class PlannerPreferences:
    daily_study_hours: Optional[float] = None
    available_days: Optional[List[int]] = None
    break_preference: Optional[str] = None
    study_regularity: Optional[str] = None

    @property
    def session_minutes(self) -> int:
        return BREAK_PREFERENCE_MINUTES.get(
            (self.break_preference or "").lower(), DEFAULT_SESSION_MINUTES
        )

    @property
    def days(self) -> List[int]:
        days = sorted({d for d in (self.available_days or []) if d in ALL_DAYS})
        return days or list(ALL_DAYS)

    @property
    def daily_minutes(self) -> int:
        hours = self.daily_study_hours if self.daily_study_hours else DEFAULT_DAILY_HOURS
        return _round_half_up(max(hours, 0) * 60)


@dataclass
class PlannedSession:
    day_of_week: int
    subject_id: int
    topic_id: Optional[int]
    duration: int
    difficulty: int
    kind: str
    notes: Optional[str] = None

    def to_item(self) -> Dict[str, Any]:
        return {
            "day_of_week": self.day_of_week,
            "subject_id": self.subject_id,
            "topic_id": self.topic_id,
            "duration": self.duration,
            "notes": self.notes,
        }


@dataclass
class GeneratedPlan:
    sessions: List[PlannedSession]
    explanation: str
    source: str = "rule_based"

    def to_items(self) -> List[Dict[str, Any]]:
        return [s.to_item() for s in self.sessions]


def arrange_easy_hard_easy(sessions: List[PlannedSession]) -> List[PlannedSession]:
    """
    Put the hardest sessions in the middle of the day.

    Ascending difficulty is dealt alternately to the front and the back,
    so [1, 2, 3, 4] becomes [1, 3, 4, 2].
    """
    ordered = sorted(sessions, key=lambda s: (s.difficulty, s.topic_id or 0))
    front = ordered[0::2]
    back = ordered[1::2]
    return front + list(reversed(back))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _round_to_five(minutes: float) -> int:
    return 5 * _round_half_up(minutes / 5)


def _session_plan(budget: int, session_minutes: int) -> Tuple[int, int]:
    """How many sessions today and how long each one is."""
    count = _round_half_up(budget / session_minutes) if session_minutes else MIN_SUBJECTS_PER_DAY
    count = max(MIN_SUBJECTS_PER_DAY, min(MAX_SUBJECTS_PER_DAY, count))
    length = _round_to_five(budget / count)
    length = max(MIN_SESSION_MINUTES, min(MAX_SESSION_MINUTES, length))
    return count, length


class _SubjectTrack:
    """Curriculum cursor for one subject."""

    def __init__(self, topics: List[TopicCandidate], session_minutes: int):
        self.topics = sorted(topics, key=lambda t: (t.curriculum_order, t.topic_id))
        self.subject_id = self.topics[0].subject_id
        self.subject_name = self.topics[0].subject_name
        self.session_minutes = session_minutes
        self.index = 0
        self.remaining = 0
        self._skip_completed()

    def _skip_completed(self):
        while self.index < len(self.topics) and self.topics[self.index].is_completed:
            self.index += 1
        if self.index < len(self.topics):
            self.remaining = self._minutes_needed(self.topics[self.index])

    def _minutes_needed(self, topic: TopicCandidate) -> int:
        if topic.estimated_hours:
            return max(_round_half_up(topic.estimated_hours * 60), MIN_SESSION_MINUTES)
        return self.session_minutes

    @property
    def frontier(self) -> Optional[TopicCandidate]:
        if self.index < len(self.topics):
            return self.topics[self.index]
        return None

    def consume(self, minutes: int):
        self.remaining -= minutes
        if self.remaining <= 0:
            self.index += 1
            self._skip_completed()


def _track_order(track: _SubjectTrack) -> Tuple[float, int]:
    frontier = track.frontier
    return (-(frontier.priority_score if frontier else 0.0), track.subject_id)


def _practice_session(
    track: _SubjectTrack,
    day: int,
    length: int,
    first_day: Dict[int, int]
) -> Optional[PlannedSession]:
    """
    Fill a slot for a subject whose next topic cannot start today.

    Practises the latest topic of the subject already started in this
    plan, or the subject as a whole when none has been.
    """
    started = [t for t in track.topics if t.topic_id in first_day]
    if started:
        topic = started[-1]
        return PlannedSession(
            day_of_week=day,
            subject_id=track.subject_id,
            topic_id=topic.topic_id,
            duration=length,
            difficulty=topic.difficulty,
            kind="practice",
            notes=f"Practice: {topic.topic_name}",
        )
    if track.frontier is None:
        return None
    return PlannedSession(
        day_of_week=day,
        subject_id=track.subject_id,
        topic_id=None,
        duration=length,
        difficulty=track.frontier.difficulty,
        kind="practice",
        notes=f"Question practice: {track.subject_name}",
    )


def _prerequisites_ready(
    topic: TopicCandidate,
    day: int,
    levels: Dict[int, int],
    first_day: Dict[int, int]
) -> bool:
    for prerequisite_id in topic.hard_prerequisites:
        if levels.get(prerequisite_id, 0) >= PREREQUISITE_READY_LEVEL:
            continue
        started = first_day.get(prerequisite_id)
        if started is None or day < started + PREREQUISITE_GAP_DAYS:
            return False
    return True


def generate_weekly_plan(
    candidates: List[TopicCandidate],
    preferences: Optional[PlannerPreferences] = None,
    knowledge_levels: Optional[Dict[int, int]] = None
) -> GeneratedPlan:
    """
    Assemble a weekly plan.

    Args:
        candidates: Topics of the student's catalog with their signals
        preferences: Study preferences (defaults when None)
        knowledge_levels: Levels of every topic, including prerequisites
            outside `candidates`. Defaults to the candidates' own levels.

    Returns:
        GeneratedPlan with sessions ordered by day, then easy-hard-easy
    """
    preferences = preferences or PlannerPreferences()
    levels = dict(knowledge_levels or {})
    for candidate in candidates:
        levels.setdefault(candidate.topic_id, candidate.knowledge_level)

    session_minutes = preferences.session_minutes
    days = preferences.days

    logger.info(
        f"Generating weekly plan: {len(candidates)} topics, days={days}, "
        f"daily={preferences.daily_minutes}min, session={session_minutes}min"
    )

    by_subject: Dict[int, List[TopicCandidate]] = defaultdict(list)
    for candidate in candidates:
        by_subject[candidate.subject_id].append(candidate)
    tracks = {
        subject_id: _SubjectTrack(topics, session_minutes)
        for subject_id, topics in by_subject.items()
    }

    mastered = [c for c in candidates if c.is_mastered]
    review_counts: Dict[int, int] = defaultdict(int)
    first_day: Dict[int, int] = {}
    blocked: set = set()

    sessions: List[PlannedSession] = []
    carry = 0

    for day in days:
        budget = min(preferences.daily_minutes + carry, MAX_DAILY_MINUTES)
        slots, length = _session_plan(budget, session_minutes)

        picks: List[PlannedSession] = []
        used_subjects = set()
        introduced_unfamiliar = False

        def add_review() -> bool:
            options = sorted(
                (c for c in mastered if c.subject_id not in used_subjects),
                key=lambda c: (review_counts[c.topic_id], -c.priority_score, c.topic_id)
            )
            if not options:
                return False
            topic = options[0]
            review_counts[topic.topic_id] += 1
            used_subjects.add(topic.subject_id)
            picks.append(PlannedSession(
                day_of_week=day,
                subject_id=topic.subject_id,
                topic_id=topic.topic_id,
                duration=length,
                difficulty=topic.difficulty,
                kind="review",
                notes=f"Reinforcement: {topic.topic_name}",
            ))
            return True

        add_review()

        frontier = [
            track.frontier for track in tracks.values()
            if track.frontier is not None
        ]
        frontier.sort(key=lambda t: (-t.priority_score, t.topic_id))

        for topic in frontier:
            if len(picks) >= slots:
                break
            if topic.subject_id in used_subjects:
                continue
            if not _prerequisites_ready(topic, day, levels, first_day):
                blocked.add(topic.topic_id)
                continue
            is_new = topic.topic_id not in first_day
            if is_new and topic.is_unfamiliar:
                if introduced_unfamiliar:
                    continue
                introduced_unfamiliar = True

            track = tracks[topic.subject_id]
            duration = max(MIN_SESSION_MINUTES, min(length, track.remaining))
            if is_new:
                first_day[topic.topic_id] = day
                note = f"New topic: {topic.topic_name}" if topic.is_unfamiliar else f"Study: {topic.topic_name}"
            else:
                note = f"Continue: {topic.topic_name}"

            used_subjects.add(topic.subject_id)
            picks.append(PlannedSession(
                day_of_week=day,
                subject_id=topic.subject_id,
                topic_id=topic.topic_id,
                duration=duration,
                difficulty=topic.difficulty,
                kind="progress",
                notes=note,
            ))
            track.consume(duration)

        while len(picks) < slots and add_review():
            pass

        for track in sorted(tracks.values(), key=_track_order):
            if len(picks) >= slots:
                break
            if track.subject_id in used_subjects:
                continue
            practice = _practice_session(track, day, length, first_day)
            if practice is None:
                continue
            used_subjects.add(track.subject_id)
            picks.append(practice)

        scheduled = sum(p.duration for p in picks)
        carry = max(budget - scheduled, 0)
        sessions.extend(arrange_easy_hard_easy(picks))

    explanation = _explain(sessions, days, preferences, blocked - set(first_day))
    logger.info(f"Generated {len(sessions)} sessions over {len(days)} days")
    return GeneratedPlan(sessions=sessions, explanation=explanation)


def _explain(
    sessions: List[PlannedSession],
    days: List[int],
    preferences: PlannerPreferences,
    blocked: set
) -> str:
    if not sessions:
        return "No topics could be scheduled this week."

    progress = [s for s in sessions if s.kind == "progress"]
    reviews = [s for s in sessions if s.kind == "review"]
    total_minutes = sum(s.duration for s in sessions)
    subjects = {s.subject_id for s in sessions}

    parts = [
        f"{len(sessions)} sessions ({total_minutes} min) across {len(days)} study days "
        f"and {len(subjects)} subjects.",
        f"{len(progress)} sessions advance the curriculum and {len(reviews)} reinforce mastered topics.",
        f"Sessions are about {preferences.session_minutes} minutes.",
    ]
    practice = [s for s in sessions if s.kind == "practice"]
    if practice:
        parts.append(f"{len(practice)} practice sessions fill days where no new topic could start.")
    if blocked:
        parts.append(f"{len(blocked)} topics wait for their prerequisites.")
    return " ".join(parts)
