"""Vote casting, tallies, voter roll and profile URL endpoint tests."""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
from postgrest import APIError


def _set_profile(client: TestClient, url: str = "https://www.linkedin.com/in/valid-voter"):
    return client.post("/api/update-linkedin", json={"url": url})


def test_candidates_are_public_and_hide_stored_counter(client: TestClient, db) -> None:
    db.add_candidate("Candidate A", vote_count=42)
    response = client.get("/api/candidates")
    assert response.status_code == 200
    [candidate] = response.json()
    assert candidate["votes"] == 0
    assert "vote_count" not in candidate


def test_tallies_are_recomputed_from_user_ballots(client: TestClient, db) -> None:
    """Drift in the stored counter never reaches the API."""
    a = db.add_candidate("Candidate A", vote_count=99)
    b = db.add_candidate("Candidate B", vote_count=0)
    for _ in range(3):
        db.add_user(has_voted=True, voted_for=a["id"], voted_at="2026-01-01T00:00:00+00:00")
    db.add_user(has_voted=True, voted_for=b["id"], voted_at="2026-01-02T00:00:00+00:00")
    db.add_user()

    tallies = {c["name"]: c["votes"] for c in client.get("/api/candidates").json()}
    assert tallies == {"Candidate A": 3, "Candidate B": 1}


def test_vote_requires_login(client: TestClient, db) -> None:
    candidate = db.add_candidate("Candidate A")
    response = client.post(f"/api/vote/{candidate['id']}")
    assert response.status_code == 401


def test_vote_without_profile_url_is_blocked_without_side_effects(
    client: TestClient, db, signed_in
) -> None:
    candidate = db.add_candidate("Candidate A", vote_count=5)
    user = signed_in()

    response = client.post(f"/api/vote/{candidate['id']}")
    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "PROFILE_URL_REQUIRED"
    assert body["requires_profile_url"] is True

    assert db.user(user["id"])["has_voted"] is False
    assert db.rows("candidates")[0]["vote_count"] == 5
    assert client.get("/api/candidates").json()[0]["votes"] == 0


def test_vote_end_to_end_example(client: TestClient, db, signed_in) -> None:
    """403 without a profile URL, 200 once set, 400 on a second vote."""
    a = db.add_candidate("Candidate A")
    b = db.add_candidate("Candidate B")
    user = signed_in()

    assert client.post(f"/api/vote/{a['id']}").status_code == 403
    assert _set_profile(client).status_code == 200

    accepted = client.post(f"/api/vote/{a['id']}")
    assert accepted.status_code == 200
    body = accepted.json()
    assert body["success"] is True
    tallies = {c["name"]: c["votes"] for c in body["candidates"]}
    assert tallies == {"Candidate A": 1, "Candidate B": 0}
    assert [v["id"] for v in body["voters"]] == [user["id"]]

    stored = db.user(user["id"])
    assert stored["has_voted"] is True
    assert stored["voted_for"] == a["id"]
    assert stored["voted_at"]

    rejected = client.post(f"/api/vote/{b['id']}")
    assert rejected.status_code == 400
    assert rejected.json()["code"] == "ALREADY_VOTED"
    tallies = {c["name"]: c["votes"] for c in client.get("/api/candidates").json()}
    assert tallies == {"Candidate A": 1, "Candidate B": 0}
    assert db.user(user["id"])["voted_for"] == a["id"]


def test_vote_for_unknown_candidate_is_404(client: TestClient, db, signed_in) -> None:
    user = signed_in()
    _set_profile(client)
    response = client.post(f"/api/vote/{uuid.uuid4()}")
    assert response.status_code == 404
    assert db.user(user["id"])["has_voted"] is False


def test_session_status_reflects_vote(client: TestClient, db, signed_in) -> None:
    candidate = db.add_candidate("Candidate A")
    signed_in()
    _set_profile(client)
    client.post(f"/api/vote/{candidate['id']}")

    user = client.get("/auth/login/success").json()["user"]
    assert user["has_voted"] is True
    assert user["voted_for"] == candidate["id"]


def test_voters_are_newest_first_and_public_safe(client: TestClient, db) -> None:
    db.add_user(
        name="Early",
        email="early@example.com",
        password_hash="hash",
        reset_token_hash="secret",
        has_voted=True,
        voted_for="c1",
        voted_at="2026-01-01T09:00:00+00:00",
    )
    db.add_user(
        name="Late",
        has_voted=True,
        voted_for="c1",
        voted_at="2026-01-01T10:00:00+00:00",
        profile_url="https://linkedin.com/in/late",
    )
    db.add_user(name="Abstainer")

    voters = client.get("/api/voters").json()
    assert [v["name"] for v in voters] == ["Late", "Early"]
    assert set(voters[0]) == {"id", "name", "avatar_url", "voted_at", "profile_url"}
    assert voters[0]["profile_url"] == "https://linkedin.com/in/late"
    assert voters[1]["profile_url"] == ""


def test_update_profile_url_validation(client: TestClient, db, signed_in) -> None:
    user = signed_in()

    assert _set_profile(client, "").status_code == 400
    assert _set_profile(client, "https://twitter.com/someone").status_code == 400
    assert db.user(user["id"])["profile_url"] == ""

    ok = _set_profile(client, "  linkedin.com/in/valid-voter  ")
    assert ok.status_code == 200
    assert ok.json()["profile_url"] == "linkedin.com/in/valid-voter"
    assert db.user(user["id"])["profile_url"] == "linkedin.com/in/valid-voter"


def test_update_profile_url_requires_login(client: TestClient) -> None:
    assert _set_profile(client).status_code == 401


def test_profile_redirect_hides_referrer(client: TestClient, db) -> None:
    user = db.add_user(profile_url="linkedin.com/in/someone")
    response = client.get(f"/api/linkedin/{user['id']}", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "https://linkedin.com/in/someone"
    assert response.headers["referrer-policy"] == "no-referrer"


def test_profile_redirect_missing_profile_is_404(client: TestClient, db) -> None:
    user = db.add_user()
    assert client.get(f"/api/linkedin/{user['id']}", follow_redirects=False).status_code == 404
    assert client.get(f"/api/linkedin/{uuid.uuid4()}", follow_redirects=False).status_code == 404


def test_malformed_ids_are_rejected_before_the_database(client: TestClient, db, signed_in) -> None:
    signed_in()
    _set_profile(client)
    queried: list[str] = []
    db.hooks.append(lambda query: queried.append(query.table))

    vote = client.post("/api/vote/not-a-uuid")
    assert vote.status_code == 400
    assert vote.json()["code"] == "INVALID_INPUT"
    redirect = client.get("/api/linkedin/not-a-uuid", follow_redirects=False)
    assert redirect.status_code == 400
    assert "candidates" not in queried


def _fail_candidate_lookup(code: str, message: str):
    def hook(query) -> None:
        if query.table == "candidates" and query.op == "select":
            raise APIError({"message": message, "code": code, "hint": None, "details": None})

    return hook


def test_database_errors_do_not_leak_diagnostics(client: TestClient, db, signed_in) -> None:
    signed_in()
    _set_profile(client)
    db.hooks.append(_fail_candidate_lookup("XX000", 'relation "candidates" is corrupted'))

    response = client.post(f"/api/vote/{uuid.uuid4()}")
    assert response.status_code == 400
    assert response.json() == {"error": "Database request failed", "code": "INVALID_INPUT"}


def test_invalid_id_literal_from_database_is_not_found(client: TestClient, db, signed_in) -> None:
    signed_in()
    _set_profile(client)
    db.hooks.append(
        _fail_candidate_lookup("22P02", 'invalid input syntax for type uuid: "x"')
    )

    response = client.post(f"/api/vote/{uuid.uuid4()}")
    assert response.status_code == 404
    assert "syntax" not in response.text
