import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import mealmatch.main as m
from mealmatch.auth.security import create_access_token
from mealmatch.services import lifecycle
from mealmatch.services.availability import local_today


def _auth(user_id: str, email: str | None = None) -> dict[str, str]:
    token = create_access_token(user_id, email or f"{user_id}@stanford.edu")
    return {"Authorization": f"Bearer {token}"}


def _survey(contact: str) -> dict:
    return {
        "display_name": "Test User",
        "meal_talk_preferences": ["Jokes and light banter"],
        "conversation_pace": "Chill and meandering",
        "favorite_locations": ["Coho Cafe"],
        "contact_detail": contact,
    }


@pytest.fixture
def client(session_factory, monkeypatch):
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "init_schema", lambda *args, **kwargs: None)
    return TestClient(m.app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_auth_is_required_and_domain_gated(client):
    assert client.get("/matches").status_code == 401
    assert client.get("/matches", headers={"Authorization": "Bearer not-a-token"}).status_code == 401
    res = client.get("/matches", headers=_auth("eve", "eve@gmail.com"))
    assert res.status_code == 403


def test_survey_availability_accept_flow(client):
    day = local_today().isoformat()
    alice, bob = _auth("alice"), _auth("bob")

    res = client.put("/users/me/survey", json=_survey("6505550101"), headers=alice)
    assert res.status_code == 200, res.text
    assert res.json()["survey_completed"] is True
    assert client.put("/users/me/survey", json=_survey("6505550102"), headers=bob).status_code == 200

    res = client.put("/availability", json={"slots_by_day": {day: ["12:30", "12:00"]}}, headers=alice)
    assert res.status_code == 200, res.text
    assert res.json()["slots_by_day"] == {day: ["12:00", "12:30"]}
    # Saving bob's week triggers a background refresh that proposes bob -> alice.
    assert client.put("/availability", json={"slots_by_day": {day: ["12:30"]}}, headers=bob).status_code == 200

    got = client.get("/availability", headers=bob).json()["availability"]
    assert got["slots_by_day"] == {day: ["12:30"]}

    [proposal] = client.get("/matches", headers=alice).json()
    assert proposal["initiator_id"] == "bob"
    assert proposal["match_user"]["uid"] == "bob"
    assert (proposal["proposed_day"], proposal["proposed_slot"]) == (day, "12:30")
    assert proposal["proposed_location"] == "Coho Cafe"

    res = client.post(f"/matches/{proposal['id']}/accept", headers=alice)
    assert res.json() == {"status": "accepted", "revealed_contact": None}
    res = client.post(f"/matches/{proposal['id']}/accept", headers=bob)
    assert res.json() == {"status": "matched", "revealed_contact": "6505550101"}
    res = client.post(f"/matches/{proposal['id']}/accept", headers=bob)
    assert res.json()["status"] == "already_matched"

    res = client.post(f"/matches/{proposal['id']}/decline", headers=alice)
    assert res.status_code == 409

    types = sorted(n["type"] for n in client.get("/notifications", headers=alice).json())
    assert types == ["match_complete", "new_match"]

    score = client.get("/scores/bob", headers=alice).json()
    assert score["other_user_id"] == "bob"
    assert 0 <= score["score"] <= 10


def test_outsider_and_unknown_proposal_errors(client):
    day = local_today().isoformat()
    for uid, contact in (("alice", "1"), ("bob", "2")):
        client.put("/users/me/survey", json=_survey(contact), headers=_auth(uid))
        client.put("/availability", json={"slots_by_day": {day: ["18:00"]}}, headers=_auth(uid))

    [proposal] = client.get("/matches", headers=_auth("alice")).json()
    assert client.post(f"/matches/{proposal['id']}/accept", headers=_auth("carol")).status_code == 403
    assert client.post("/matches/nope/decline", headers=_auth("alice")).status_code == 404

    assert client.post(f"/matches/{proposal['id']}/decline", headers=_auth("alice")).json() == {"status": "declined"}
    res = client.post(f"/matches/{proposal['id']}/accept", headers=_auth("bob"))
    assert res.status_code == 409
    assert res.json()["detail"] == "This proposal was declined and cannot be accepted"


def test_refresh_returns_pending_proposals(client):
    day = local_today().isoformat()
    for uid, contact in (("alice", "1"), ("bob", "2")):
        client.put("/users/me/survey", json=_survey(contact), headers=_auth(uid))
    client.put("/availability", json={"slots_by_day": {day: ["12:00"]}}, headers=_auth("bob"))
    client.put("/availability", json={"slots_by_day": {day: ["12:00"]}}, headers=_auth("alice"))

    res = client.post("/matches/refresh", headers=_auth("alice"))
    assert res.status_code == 200
    [proposal] = res.json()
    assert proposal["candidate_id"] == "bob"
    assert proposal["status"] == "pending"


def test_refresh_without_profile_is_404(client):
    assert client.post("/matches/refresh", headers=_auth("nobody")).status_code == 404


def test_invalid_availability_is_rejected(client):
    day = local_today().isoformat()
    res = client.put("/availability", json={"slots_by_day": {day: ["12:15"]}}, headers=_auth("alice"))
    assert res.status_code == 422


def test_survey_requires_digit_contact(client):
    body = _survey("650-555-0101")
    assert client.put("/users/me/survey", json=body, headers=_auth("alice")).status_code == 422


def test_notification_read_endpoint(client):
    day = local_today().isoformat()
    for uid, contact in (("alice", "1"), ("bob", "2")):
        client.put("/users/me/survey", json=_survey(contact), headers=_auth(uid))
        client.put("/availability", json={"slots_by_day": {day: ["18:00"]}}, headers=_auth(uid))

    [note] = client.get("/notifications", headers=_auth("alice")).json()
    res = client.post(f"/notifications/{note['id']}/read", headers=_auth("alice"))
    assert res.json()["read"] is True
    assert client.get("/notifications?unread_only=true", headers=_auth("alice")).json() == []
    assert client.post(f"/notifications/{note['id']}/read", headers=_auth("bob")).status_code == 403


def test_availability_save_survives_failed_background_refresh(client, monkeypatch):
    def broken_rank(user_id, **kwargs):
        raise RuntimeError("ranking exploded")

    monkeypatch.setattr(lifecycle, "rank_and_propose", broken_rank)
    day = local_today().isoformat()
    res = client.put("/availability", json={"slots_by_day": {day: ["12:00"]}}, headers=_auth("alice"))
    assert res.status_code == 200
    assert client.get("/availability", headers=_auth("alice")).json()["availability"]["slots_by_day"] == {day: ["12:00"]}


def test_meal_event_endpoints(client):
    body = {
        "name": "Taco Tuesday",
        "location": "Coho Cafe",
        "starts_at": "2023-08-01T12:00:00-07:00",
        "ends_at": "2023-08-01T13:00:00-07:00",
        "capacity": 1,
    }
    res = client.post("/events", json=body, headers=_auth("alice"))
    assert res.status_code == 200, res.text
    event = res.json()
    assert event["spots_left"] == 1

    assert client.post(f"/events/{event['id']}/join", headers=_auth("bob")).json()["participants"] == ["bob"]
    res = client.post(f"/events/{event['id']}/join", headers=_auth("carol"))
    assert res.status_code == 409
    assert res.json()["detail"] == "This event is full"

    assert client.post(f"/events/{event['id']}/leave", headers=_auth("bob")).json()["spots_left"] == 1
    listed = client.get("/events?start=2023-08-01T00:00:00Z&end=2023-08-02T00:00:00Z", headers=_auth("carol")).json()
    assert [e["id"] for e in listed] == [event["id"]]
    assert client.get("/events/missing", headers=_auth("carol")).status_code == 404

    bad = dict(body, ends_at="2023-08-01T11:00:00-07:00")
    assert client.post("/events", json=bad, headers=_auth("alice")).status_code == 422


def test_friend_endpoints(client):
    for uid, contact in (("alice", "1"), ("bob", "2")):
        client.put("/users/me/survey", json=_survey(contact), headers=_auth(uid))

    assert [u["uid"] for u in client.get("/users", headers=_auth("alice")).json()] == ["bob"]
    assert client.post("/friends/bob", headers=_auth("alice")).json() == {"friends": ["bob"]}
    assert client.post("/friends/alice", headers=_auth("alice")).status_code == 409
    assert client.post("/friends/ghost", headers=_auth("alice")).status_code == 404
    assert client.get("/friends", headers=_auth("alice")).json() == {"friends": ["bob"]}
    assert client.delete("/friends/bob", headers=_auth("alice")).json() == {"friends": []}
