import pytest
from fastapi.testclient import TestClient

from app import main
from app.main import app


@pytest.fixture
def client():
    main.session_manager.store.clear_all()
    return TestClient(app)


def start_session(client, **payload):
    response = client.post("/sessions", json=payload)
    assert response.status_code == 201
    return response.json()["session_id"]


def test_root(client):
    assert client.get("/").json()["name"] == "Hinglish Meal Assistant"


def test_health(client):
    start_session(client, user_id="user_1")

    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["active_sessions"] == 1
    assert set(body["api_keys_configured"]) == {"usda_api_key", "opik_api_key"}


def test_extract_reports_ambiguity(client):
    body = client.post("/meals/extract", json={"text": "dal khaya"}).json()

    assert [item["name"] for item in body["extraction"]["items"]] == ["lentils"]
    assert [a["term"] for a in body["extraction"]["ambiguities"]] == ["dal"]
    assert body["clarification_questions"][0].startswith("Aap dal se kya matlab hai?")


def test_log_breakfast(client):
    response = client.post("/meals/log", json={
        "utterance": "Maine breakfast mein 2 roti aur ek glass milk liya",
        "timestamp": "2026-10-18T08:00:00",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "meal_logged"
    assert body["meal"]["meal_type"] == "breakfast"
    assert [food["name"] for food in body["meal"]["foods"]] == ["roti", "milk"]
    assert body["confirmation"].startswith("Aapka breakfast log ho gaya: roti, milk.")


def test_log_needs_clarification(client):
    body = client.post("/meals/log", json={"utterance": "dal khaya"}).json()
    assert body["kind"] == "clarification_needed"
    assert body["ambiguities"][0]["term"] == "dal"


def test_log_nothing_understood(client):
    body = client.post("/meals/log", json={"utterance": "kuch khaya"}).json()
    assert body["kind"] == "meal_not_understood"


def test_log_with_unknown_session(client):
    response = client.post("/meals/log", json={"utterance": "2 roti", "session_id": "missing"})
    assert response.status_code == 404
    assert response.json()["session_id"] == "missing"


def test_log_into_session_records_turn_and_meal(client):
    session_id = start_session(client, user_id="user_1")

    client.post("/meals/log", json={
        "utterance": "Maine lunch mein 2 roti khayi",
        "session_id": session_id,
        "timestamp": "2026-10-18T13:00:00",
    })

    context = client.get(f"/sessions/{session_id}").json()["context"]
    assert context["current_meal_context"]["meal_type"] == "lunch"
    assert context["current_meal_context"]["food_names"] == ["roti"]
    assert len(context["recent_meals"]) == 1
    assert context["current_meal_context"]["meal_id"] == context["recent_meals"][0]["meal_id"]


def test_log_into_ended_session_conflicts(client):
    session_id = start_session(client, user_id="user_1")
    client.delete(f"/sessions/{session_id}")

    response = client.post("/meals/log", json={"utterance": "2 roti", "session_id": session_id})
    assert response.status_code == 409
    assert response.json()["session_id"] == session_id

    context = client.get(f"/sessions/{session_id}").json()["context"]
    assert context["recent_meals"] == []
    assert context["current_meal_context"] is None


def test_session_lifecycle(client):
    session_id = start_session(client, user_id="user_1", user_preferences={"vegetarian": True})

    session = client.get(f"/sessions/{session_id}").json()
    assert session["context"]["conversation_state"] == "active"
    assert session["context"]["user_preferences"] == {"vegetarian": True}

    interrupted = client.post(f"/sessions/{session_id}/interrupt", json={"reason": "phone call"}).json()
    assert interrupted["context"]["conversation_state"] == "interrupted"
    assert interrupted["context"]["interruption_reason"] == "phone call"

    resumed = client.post(f"/sessions/{session_id}/resume").json()
    assert resumed["message"].startswith("Haan")
    assert resumed["session"]["context"]["conversation_state"] == "active"

    ended = client.delete(f"/sessions/{session_id}")
    assert ended.status_code == 200
    assert ended.json()["context"]["conversation_state"] == "ended"

    again = client.delete(f"/sessions/{session_id}")
    assert again.status_code == 409


def test_resume_active_session_conflicts(client):
    session_id = start_session(client)
    response = client.post(f"/sessions/{session_id}/resume")
    assert response.status_code == 409
    assert "active" in response.json()["detail"]


def test_unknown_session_routes(client):
    assert client.get("/sessions/missing").status_code == 404
    assert client.post("/sessions/missing/interrupt", json={}).status_code == 404
    assert client.delete("/sessions/missing").status_code == 404


def test_turns_and_contextual_response(client):
    session_id = start_session(client)

    turn = client.post(f"/sessions/{session_id}/turns", json={
        "user_input": "protein kitna chahiye",
        "system_response": "Roz 50g protein chahiye.",
        "type": "nutrition_query",
    })
    assert turn.status_code == 200
    assert turn.json()["type"] == "nutrition_query"

    body = client.post(f"/sessions/{session_id}/respond", json={
        "user_input": "aur batao",
        "base_response": "Theek hai.",
    }).json()
    assert body["response"].startswith("Theek hai. Protein ke liye")

    session = client.get(f"/sessions/{session_id}").json()
    assert session["context"]["active_topics"] == ["protein"]


def test_invalid_turn_type_rejected(client):
    session_id = start_session(client)
    response = client.post(f"/sessions/{session_id}/turns", json={"user_input": "hi", "type": "smalltalk"})
    assert response.status_code == 422


def test_portion_endpoint(client):
    body = client.post("/cultural/portion", json={"food_name": "rice", "description": "2 katori"}).json()
    assert body["quantity"] == 300.0
    assert body["unit"] == "grams"


def test_cooking_style_endpoint(client):
    body = client.post("/cultural/cooking-style", json={"description": "tadka dal"}).json()
    assert body["name"] == "tadka"


def test_region_endpoint(client):
    body = client.get("/cultural/region", params={"location": "Chennai", "dish": "sambar"}).json()
    assert body["region"] == "South India"
    assert client.get("/cultural/region", params={"location": "Chennai"}).status_code == 400
