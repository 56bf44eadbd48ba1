"""
prepdesk/tests/test_weekly_plans_api.py
Weekly plan CRUD contracts: validation, ownership, item operations
"""
from datetime import date, timedelta

from sqlalchemy import select, func

from prepdesk.orm.weekly_plan import WeeklyPlanItem

WEEK_START = "2026-03-16"
WEEK_END = "2026-03-22"


def _plan_body(catalog, **overrides):
    subjects = catalog["subjects"]
    topics = catalog["topics"]
    body = {
        "title": "Week 12",
        "startDate": WEEK_START,
        "endDate": WEEK_END,
        "items": [
            {"dayOfWeek": 0, "subjectId": subjects["math"], "topicId": topics["numbers"], "duration": 60},
            {"dayOfWeek": 0, "subjectId": subjects["physics"], "topicId": topics["motion"], "duration": 45},
            {"dayOfWeek": 2, "subjectId": subjects["chemistry"], "duration": 90, "notes": "past papers"},
        ],
    }
    body.update(overrides)
    return body


async def _create(client, headers, catalog, **overrides):
    response = await client.post("/api/weekly-plans", headers=headers, json=_plan_body(catalog, **overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthentication:

    async def test_missing_token(self, client):
        response = await client.get("/api/weekly-plans")
        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "AUTH_REQUIRED"

    async def test_garbage_token(self, client):
        response = await client.get("/api/weekly-plans", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_INVALID"


class TestCreatePlan:

    async def test_create_returns_plan_with_items(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)

        assert plan["title"] == "Week 12"
        assert plan["startDate"] == WEEK_START
        assert len(plan["items"]) == 3
        first = plan["items"][0]
        assert first["dayOfWeek"] == 0
        assert first["completed"] is False
        assert first["subject"]["name"] == "Mathematics"
        assert first["topic"]["name"] == "Numbers"

    async def test_day_out_of_range_is_rejected(self, client, headers, catalog, db_session):
        body = _plan_body(catalog)
        body["items"][1]["dayOfWeek"] = 7

        response = await client.post("/api/weekly-plans", headers=headers, json=body)
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        violation = data["details"]["violations"][0]
        assert violation["index"] == 1
        assert violation["field"] == "dayOfWeek"

        count = (await db_session.execute(select(func.count(WeeklyPlanItem.id)))).scalar()
        assert count == 0

    async def test_unknown_topic_is_rejected(self, client, headers, catalog):
        body = _plan_body(catalog)
        body["items"][0]["topicId"] = 9999

        response = await client.post("/api/weekly-plans", headers=headers, json=body)
        assert response.status_code == 400
        assert response.json()["details"]["violations"][0]["constraint"] == "unknown topic"

    async def test_end_before_start_is_rejected(self, client, headers, catalog):
        response = await client.post(
            "/api/weekly-plans", headers=headers,
            json=_plan_body(catalog, endDate="2026-03-10")
        )
        assert response.status_code == 400

    async def test_missing_title_is_a_validation_error(self, client, headers, catalog):
        body = _plan_body(catalog)
        del body["title"]
        response = await client.post("/api/weekly-plans", headers=headers, json=body)
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestListPlans:

    async def test_list_is_newest_first(self, client, headers, catalog):
        await _create(client, headers, catalog, startDate="2026-03-02", endDate="2026-03-08")
        await _create(client, headers, catalog)

        response = await client.get("/api/weekly-plans", headers=headers)
        assert response.status_code == 200
        assert [p["startDate"] for p in response.json()] == [WEEK_START, "2026-03-02"]

    async def test_filter_by_start_date(self, client, headers, catalog):
        await _create(client, headers, catalog, startDate="2026-03-02", endDate="2026-03-08")
        await _create(client, headers, catalog)

        response = await client.get("/api/weekly-plans", headers=headers, params={"startDate": "2026-03-02"})
        assert [p["startDate"] for p in response.json()] == ["2026-03-02"]

    async def test_current_plan(self, client, headers, catalog):
        response = await client.get("/api/weekly-plans", headers=headers, params={"current": "true"})
        assert response.status_code == 200
        assert response.json() is None

        today = date.today()
        monday = today - timedelta(days=today.weekday())
        await _create(
            client, headers, catalog,
            startDate=monday.isoformat(), endDate=(monday + timedelta(days=6)).isoformat()
        )

        response = await client.get("/api/weekly-plans", headers=headers, params={"current": "true"})
        assert response.json()["startDate"] == monday.isoformat()

    async def test_only_own_plans_are_listed(self, client, headers, other_headers, catalog):
        await _create(client, headers, catalog)
        response = await client.get("/api/weekly-plans", headers=other_headers)
        assert response.json() == []


class TestOwnership:

    async def test_other_users_plan_looks_missing(self, client, headers, other_headers, catalog):
        plan = await _create(client, headers, catalog)

        get = await client.get(f"/api/weekly-plans/{plan['id']}", headers=other_headers)
        missing = await client.get("/api/weekly-plans/99999", headers=other_headers)

        assert get.status_code == missing.status_code == 404
        assert get.json()["code"] == missing.json()["code"] == "PLAN_NOT_FOUND"

    async def test_other_user_cannot_modify(self, client, headers, other_headers, catalog):
        plan = await _create(client, headers, catalog)
        item_id = plan["items"][0]["id"]

        responses = [
            await client.put(f"/api/weekly-plans/{plan['id']}", headers=other_headers, json={"items": []}),
            await client.delete(f"/api/weekly-plans/{plan['id']}", headers=other_headers),
            await client.patch(
                f"/api/weekly-plans/{plan['id']}/items/{item_id}/toggle",
                headers=other_headers, json={"completed": True}
            ),
            await client.patch(
                f"/api/weekly-plans/{plan['id']}/reorder",
                headers=other_headers, json={"itemId": item_id, "dayOfWeek": 3, "sortOrder": 0}
            ),
        ]
        assert [r.status_code for r in responses] == [404, 404, 404, 404]

        unchanged = await client.get(f"/api/weekly-plans/{plan['id']}", headers=headers)
        assert len(unchanged.json()["items"]) == 3


class TestReplacePlan:

    async def test_replace_leaves_no_orphans(self, client, headers, catalog, db_session):
        plan = await _create(client, headers, catalog)

        new_items = [
            {"dayOfWeek": 4, "subjectId": catalog["subjects"]["physics"], "topicId": catalog["topics"]["forces"], "duration": 30},
        ]
        response = await client.put(
            f"/api/weekly-plans/{plan['id']}", headers=headers,
            json={"title": "Week 12 v2", "items": new_items}
        )
        assert response.status_code == 200
        replaced = response.json()
        assert replaced["title"] == "Week 12 v2"
        assert [i["dayOfWeek"] for i in replaced["items"]] == [4]

        rows = (await db_session.execute(
            select(WeeklyPlanItem.id).where(WeeklyPlanItem.weekly_plan_id == plan["id"])
        )).scalars().all()
        assert len(rows) == 1

        total = (await db_session.execute(select(func.count(WeeklyPlanItem.id)))).scalar()
        assert total == 1

    async def test_invalid_replace_keeps_previous_items(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)

        response = await client.put(
            f"/api/weekly-plans/{plan['id']}", headers=headers,
            json={"items": [{"dayOfWeek": 1, "subjectId": 424242}]}
        )
        assert response.status_code == 400

        current = await client.get(f"/api/weekly-plans/{plan['id']}", headers=headers)
        assert len(current.json()["items"]) == 3

    async def test_delete_plan(self, client, headers, catalog, db_session):
        plan = await _create(client, headers, catalog)

        response = await client.delete(f"/api/weekly-plans/{plan['id']}", headers=headers)
        assert response.status_code == 204

        assert (await client.get(f"/api/weekly-plans/{plan['id']}", headers=headers)).status_code == 404
        total = (await db_session.execute(select(func.count(WeeklyPlanItem.id)))).scalar()
        assert total == 0


class TestItemOperations:

    async def test_patch_only_touches_given_fields(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        item = plan["items"][2]

        response = await client.patch(
            f"/api/weekly-plans/{plan['id']}/items/{item['id']}", headers=headers,
            json={"duration": 120}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["duration"] == 120
        assert data["notes"] == "past papers"
        assert data["dayOfWeek"] == 2

    async def test_patch_is_validated(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        item = plan["items"][0]

        response = await client.patch(
            f"/api/weekly-plans/{plan['id']}/items/{item['id']}", headers=headers,
            json={"topicId": catalog["topics"]["atoms"]}
        )
        assert response.status_code == 400
        assert response.json()["details"]["violations"][0]["constraint"] == "topic does not belong to subject"

    async def test_delete_item(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        item_id = plan["items"][1]["id"]

        response = await client.delete(f"/api/weekly-plans/{plan['id']}/items/{item_id}", headers=headers)
        assert response.status_code == 204

        current = (await client.get(f"/api/weekly-plans/{plan['id']}", headers=headers)).json()
        assert item_id not in {i["id"] for i in current["items"]}
        assert len(current["items"]) == 2

    async def test_unknown_item(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        response = await client.delete(f"/api/weekly-plans/{plan['id']}/items/99999", headers=headers)
        assert response.status_code == 404
        assert response.json()["code"] == "ITEM_NOT_FOUND"

    async def test_toggle_completion(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        item_id = plan["items"][0]["id"]
        url = f"/api/weekly-plans/{plan['id']}/items/{item_id}/toggle"

        on = await client.patch(url, headers=headers, json={"completed": True})
        assert on.status_code == 200
        assert on.json()["completed"] is True

        off = await client.patch(url, headers=headers, json={"completed": False})
        assert off.json()["completed"] is False


class TestReorder:

    async def test_moves_item_to_new_day_and_position(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        item_id = plan["items"][2]["id"]

        response = await client.patch(
            f"/api/weekly-plans/{plan['id']}/reorder", headers=headers,
            json={"itemId": item_id, "dayOfWeek": 0, "sortOrder": 0}
        )
        assert response.status_code == 200
        items = response.json()["items"]
        moved = next(i for i in items if i["id"] == item_id)
        assert moved["dayOfWeek"] == 0
        assert moved["sortOrder"] == 0
        assert {i["dayOfWeek"] for i in items} == {0}

    async def test_reorder_does_not_revalidate_day_load(self, client, headers, catalog):
        """A manual move may stack the same subject twice on one day."""
        subjects = catalog["subjects"]
        plan = await _create(client, headers, catalog, items=[
            {"dayOfWeek": 0, "subjectId": subjects["math"], "topicId": catalog["topics"]["derivatives"], "duration": 240},
            {"dayOfWeek": 1, "subjectId": subjects["math"], "topicId": catalog["topics"]["numbers"], "duration": 240},
        ])
        dependent = plan["items"][0]["id"]

        # same subject twice on day 0, 480 minutes in total
        response = await client.patch(
            f"/api/weekly-plans/{plan['id']}/reorder", headers=headers,
            json={"itemId": plan["items"][1]["id"], "dayOfWeek": 0, "sortOrder": 5}
        )
        assert response.status_code == 200
        day0 = [i for i in response.json()["items"] if i["dayOfWeek"] == 0]
        assert len(day0) == 2
        assert day0[0]["id"] == dependent

    async def test_day_out_of_range(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        response = await client.patch(
            f"/api/weekly-plans/{plan['id']}/reorder", headers=headers,
            json={"itemId": plan["items"][0]["id"], "dayOfWeek": 7, "sortOrder": 0}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "OUT_OF_RANGE"

    async def test_negative_sort_order(self, client, headers, catalog):
        plan = await _create(client, headers, catalog)
        response = await client.patch(
            f"/api/weekly-plans/{plan['id']}/reorder", headers=headers,
            json={"itemId": plan["items"][0]["id"], "dayOfWeek": 1, "sortOrder": -1}
        )
        assert response.status_code == 400
