"""
Unit tests for the Questions API endpoints.

Tests create/replace, listing and deletion of questions, including the
required-field check and the structured error responses.
"""

import pytest


def question_payload(**overrides) -> dict:
    payload = {
        "id": "q9",
        "noteId": "note-1",
        "userId": "user-1",
        "question": "What is ATP?",
        "answer": "The energy currency of the cell",
        "timeStamp": 1_700_000_000_000,
        "history": [],
    }
    payload.update(overrides)
    return payload


class TestSaveQuestion:
    def test_creates_question_with_defaults(self, client, repository):
        response = client.post("/api/questions", json=question_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["question"]["id"] == "q9"
        assert body["question"]["easeFactor"] == 2.5
        assert body["question"]["repetition"] == 0
        assert body["question"]["nextReview"] is None
        assert repository.questions["q9"].note_id == "note-1"

    def test_replacing_bumps_version(self, client, repository):
        client.post("/api/questions", json=question_payload())

        response = client.post("/api/questions", json=question_payload(answer="ATP"))

        assert response.json()["question"]["version"] == 1
        assert repository.questions["q9"].answer == "ATP"

    def test_accepts_schedule_and_history(self, client):
        response = client.post(
            "/api/questions",
            json=question_payload(
                repetition=2,
                interval=6,
                easeFactor=2.36,
                nextReview="2024-03-16T09:00:00Z",
                history=[{"date": "2024-03-10T09:00:00Z", "quality": 2}],
            ),
        )

        question = response.json()["question"]
        assert question["interval"] == 6
        assert question["history"][0]["quality"] == 2

    def test_missing_fields_listed_in_message(self, client):
        payload = question_payload(question="")
        del payload["userId"]

        response = client.post("/api/questions", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "missing_fields"
        assert body["message"] == "Required fields missing: userId, question"
        assert body["details"] == {"missing": ["userId", "question"]}
        assert "error_id" in body

    def test_null_counts_as_missing(self, client):
        response = client.post("/api/questions", json=question_payload(history=None))

        assert response.status_code == 400
        assert response.json()["details"]["missing"] == ["history"]

    @pytest.mark.parametrize(
        "field,value",
        [("repetition", -1), ("timeStamp", "yesterday"), ("history", [{"quality": 9}])],
    )
    def test_invalid_values_rejected(self, client, field, value):
        response = client.post("/api/questions", json=question_payload(**{field: value}))

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"


class TestListQuestions:
    def test_lists_note_questions_in_order(self, client):
        response = client.get("/api/questions", params={"noteId": "note-1"})

        assert response.status_code == 200
        assert [q["id"] for q in response.json()["questions"]] == ["q1", "q2", "q3"]

    def test_requires_note_id(self, client):
        response = client.get("/api/questions")

        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"


class TestGetQuestion:
    def test_returns_question(self, client):
        response = client.get("/api/questions/q1")

        assert response.status_code == 200
        body = response.json()
        assert body["question"]["id"] == "q1"
        assert body["question"]["noteId"] == "note-1"

    def test_unknown_question(self, client):
        response = client.get("/api/questions/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

class TestDeleteQuestion:
    def test_deletes(self, client, repository):
        response = client.delete("/api/questions", params={"id": "q1"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert "q1" not in repository.questions

    def test_unknown_question(self, client):
        response = client.delete("/api/questions", params={"id": "nope"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_requires_id(self, client):
        assert client.delete("/api/questions").status_code == 400
