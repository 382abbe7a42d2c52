"""
Unit tests for the AI Review API endpoints.

Generation and evaluation run as background tasks, which TestClient
completes before returning; follow-up GETs therefore see the next status.
"""


def request_review(client, **overrides):
    payload = {"userId": "user-1", "sourceId": "note-1", "questionCount": 2}
    payload.update(overrides)
    return client.post("/api/ai-review/sessions", json=payload)


def ready_review(client, **overrides) -> dict:
    session_id = request_review(client, **overrides).json()["id"]
    return client.get(f"/api/ai-review/sessions/{session_id}").json()


class TestRequestReview:
    def test_accepted_as_pending(self, client, repository):
        response = request_review(client)

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "pending"
        assert body["questionCount"] == 2
        assert repository.commits >= 1

    def test_generation_runs_in_background(self, client):
        session = ready_review(client)

        assert session["status"] == "ready_for_review"
        assert len(session["generatedQuestions"]) == 2
        assert session["questionsGeneratedAt"] is not None

    def test_unknown_fields_rejected(self, client):
        assert request_review(client, colour="blue").status_code == 422

    def test_too_many_questions(self, client):
        response = request_review(client, questionCount=50)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"


class TestAnswering:
    def test_full_review(self, client):
        session = ready_review(client)
        session_id = session["id"]

        started = client.post(f"/api/ai-review/sessions/{session_id}/start")
        assert started.json()["status"] == "in_progress"

        first, second = (q["id"] for q in session["generatedQuestions"])
        submitted = client.post(
            f"/api/ai-review/sessions/{session_id}/answers",
            json={
                "answers": [
                    {"questionId": first, "answer": "the right idea", "timeSpent": 12},
                    {"questionId": second, "answer": ""},
                ]
            },
        )
        assert submitted.status_code == 202
        assert submitted.json()["status"] == "evaluating_answers"

        completed = client.get(f"/api/ai-review/sessions/{session_id}").json()
        assert completed["status"] == "completed"
        assert completed["result"] == {
            "totalQuestions": 2,
            "correctAnswers": 1,
            "skippedAnswers": 1,
        }

    def test_start_twice_resumes(self, client):
        session_id = ready_review(client)["id"]
        client.post(f"/api/ai-review/sessions/{session_id}/start")

        response = client.post(f"/api/ai-review/sessions/{session_id}/start")

        assert response.status_code == 200
        assert response.json()["status"] == "in_progress"

    def test_submit_before_start_is_conflict(self, client):
        session_id = ready_review(client)["id"]

        response = client.post(
            f"/api/ai-review/sessions/{session_id}/answers", json={"answers": []}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_unknown_session(self, client):
        assert client.get("/api/ai-review/sessions/missing").status_code == 404


class TestListing:
    def test_sessions_for_source(self, client):
        request_review(client)
        request_review(client, sourceId="note-2")

        response = client.get("/api/ai-review/sessions", params={"sourceId": "note-1"})

        assert response.status_code == 200
        assert [s["sourceId"] for s in response.json()["sessions"]] == ["note-1"]

    def test_source_id_required(self, client):
        assert client.get("/api/ai-review/sessions").status_code == 400

    def test_unfinished_excludes_completed(self, client):
        finished = ready_review(client)["id"]
        client.post(f"/api/ai-review/sessions/{finished}/start")
        client.post(f"/api/ai-review/sessions/{finished}/answers", json={"answers": []})
        open_id = ready_review(client)["id"]

        response = client.get("/api/ai-review/unfinished", params={"userId": "user-1"})

        assert [s["id"] for s in response.json()["sessions"]] == [open_id]

    def test_user_id_required(self, client):
        assert client.get("/api/ai-review/unfinished").status_code == 400
