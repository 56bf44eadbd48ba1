"""
prepdesk/tests/test_spaced_repetition.py
Review scheduling math and the wrong-question review queue
"""
from datetime import datetime, timedelta

import pytest

from prepdesk.orm.spaced_repetition import ReviewStatus
from prepdesk.services.spaced_repetition import (
    ReviewQuality,
    schedule_review,
    INITIAL_EASE,
    MAX_EASE,
    MIN_EASE,
)


class TestScheduleReview:

    def test_easy_multiplies_interval_and_raises_ease(self):
        outcome = schedule_review(1, INITIAL_EASE, "pending", ReviewQuality.EASY)
        assert outcome.interval == 3  # 2.5 rounds half up
        assert outcome.ease_factor == 2.65
        assert outcome.status == "pending"

    def test_easy_ease_is_capped(self):
        outcome = schedule_review(4, 2.95, "pending", ReviewQuality.EASY)
        assert outcome.ease_factor == MAX_EASE

    def test_hard_grows_interval_by_half(self):
        outcome = schedule_review(3, 2.5, "pending", ReviewQuality.HARD)
        assert outcome.interval == 5
        assert outcome.ease_factor == 2.4

    def test_hard_interval_at_least_one(self):
        assert schedule_review(0, 2.5, "pending", ReviewQuality.HARD).interval == 1

    def test_wrong_resets_interval(self):
        outcome = schedule_review(30, 2.0, "pending", ReviewQuality.WRONG)
        assert outcome.interval == 1
        assert outcome.ease_factor == 1.8

    def test_ease_never_below_minimum(self):
        assert schedule_review(1, 1.35, "pending", ReviewQuality.WRONG).ease_factor == MIN_EASE
        assert schedule_review(1, 1.3, "pending", ReviewQuality.HARD).ease_factor == MIN_EASE

    def test_mastered_after_sixty_days(self):
        assert schedule_review(24, 2.5, "pending", ReviewQuality.EASY).status == "pending"
        outcome = schedule_review(25, 2.5, "pending", ReviewQuality.EASY)
        assert outcome.interval == 63
        assert outcome.status == ReviewStatus.MASTERED.value


class TestReviewQueueApi:

    async def _exam_with_wrong_question(self, client, headers, catalog):
        exam = await client.post("/api/exams", headers=headers, json={
            "title": "Mock 3", "examTypeId": catalog["exam_type_id"],
        })
        assert exam.status_code == 201
        exam_id = exam.json()["id"]

        wrong = await client.post(f"/api/exams/{exam_id}/wrong-questions", headers=headers, json={
            "subjectId": catalog["subjects"]["math"],
            "topicId": catalog["topics"]["functions"],
            "questionNumber": 12,
            "errorReason": "careless",
        })
        assert wrong.status_code == 201
        return exam_id

    async def test_wrong_question_is_queued_for_tomorrow(self, client, headers, catalog):
        await self._exam_with_wrong_question(client, headers, catalog)

        response = await client.get("/api/spaced-repetition", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["dueItems"] == []
        assert data["stats"] == {"dueToday": 0, "totalPending": 1, "totalMastered": 0}

    async def test_enqueue_exam_skips_already_queued(self, client, headers, catalog):
        exam_id = await self._exam_with_wrong_question(client, headers, catalog)

        response = await client.put("/api/spaced-repetition", headers=headers, json={"examId": exam_id})
        assert response.status_code == 200
        data = response.json()
        assert data["added"] == 0
        assert data["alreadyExists"] == 1

    async def test_submit_review_reschedules(self, client, headers, catalog, db_session):
        from prepdesk.orm.spaced_repetition import SpacedRepetitionItem

        await self._exam_with_wrong_question(client, headers, catalog)
        item = (await db_session.execute(
            SpacedRepetitionItem.__table__.select()
        )).first()

        response = await client.post("/api/spaced-repetition", headers=headers, json={
            "itemId": item.id, "quality": "hard",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["interval"] == 2
        assert data["easeFactor"] == pytest.approx(2.4)
        assert data["reviewCount"] == 1

        next_review = datetime.fromisoformat(data["nextReviewDate"])
        assert next_review - datetime.utcnow() > timedelta(days=1)

    async def test_invalid_quality_is_rejected(self, client, headers, catalog):
        response = await client.post("/api/spaced-repetition", headers=headers, json={
            "itemId": 1, "quality": "meh",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    async def test_other_users_item_is_not_found(self, client, headers, other_headers, catalog, db_session):
        from prepdesk.orm.spaced_repetition import SpacedRepetitionItem

        await self._exam_with_wrong_question(client, headers, catalog)
        item = (await db_session.execute(SpacedRepetitionItem.__table__.select())).first()

        response = await client.post("/api/spaced-repetition", headers=other_headers, json={
            "itemId": item.id, "quality": "easy",
        })
        assert response.status_code == 404
