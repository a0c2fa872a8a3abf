"""
Route tests for the interview lifecycle: start, append, fetch, history, end.
"""
import json
import logging

from echoprep.db.models.interview import Interview
from echoprep.services.interview_service import AI_UNAVAILABLE_SUMMARY, FALLBACK_REPLY

from conftest import API, register


def start(client, headers, job_role="Backend Engineer", **extra):
    return client.post(f"{API}/interview/start", json={"jobRole": job_role, **extra}, headers=headers)


# ---------------- start ----------------

def test_start_interview_seeds_conversation(client, alice, provider):
    response = start(client, alice[1], techStack=["Python", "SQL"])

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["jobRole"] == "Backend Engineer"
    assert data["techStack"] == ["Python", "SQL"]
    assert data["difficulty"] == "Medium"
    assert data["status"] == "in_progress"
    assert [t["role"] for t in data["conversation"]] == ["system", "assistant"]
    assert "Backend Engineer" in data["conversation"][1]["content"]
    assert data["feedback"]["overallScore"] == 0
    # no model call on start
    assert provider.calls == []


def test_start_interview_requires_job_role(client, alice):
    response = client.post(f"{API}/interview/start", json={"techStack": ["Go"]}, headers=alice[1])

    assert response.status_code == 400
    assert response.json()["message"] == "Job Role is required"


def test_start_interview_requires_auth(client):
    response = client.post(f"{API}/interview/start", json={"jobRole": "Backend Engineer"})

    assert response.status_code == 401


# ---------------- append ----------------

def test_user_message_gets_ai_reply(client, alice, provider):
    interview_id = start(client, alice[1]).json()["data"]["id"]

    response = client.post(
        f"{API}/interview/{interview_id}/message",
        json={"role": "user", "content": "I know SQL"},
        headers=alice[1],
    )

    assert response.status_code == 200
    conversation = response.json()["data"]["conversation"]
    assert len(conversation) == 4
    assert conversation[2] == {"role": "user", "content": "I know SQL"}
    assert conversation[3] == {"role": "assistant", "content": provider.reply}

    sent = provider.calls[0]["messages"]
    assert sent[-1] == {"role": "user", "content": "I know SQL"}
    assert all(m["role"] != "system" for m in sent[1:])


def test_ai_failure_appends_fallback_reply(client, alice, provider, db_session):
    interview_id = start(client, alice[1]).json()["data"]["id"]
    provider.fail = True

    response = client.post(
        f"{API}/interview/{interview_id}/message",
        json={"role": "user", "content": "I know SQL"},
        headers=alice[1],
    )

    assert response.status_code == 200
    conversation = response.json()["data"]["conversation"]
    assert len(conversation) == 4
    assert conversation[-1] == {"role": "assistant", "content": FALLBACK_REPLY}

    stored = db_session.get(Interview, interview_id)
    assert len(stored.conversation) == 4


def test_assistant_message_does_not_trigger_reply(client, alice, provider):
    interview_id = start(client, alice[1]).json()["data"]["id"]

    response = client.post(
        f"{API}/interview/{interview_id}/message",
        json={"role": "assistant", "content": "Next question."},
        headers=alice[1],
    )

    assert response.status_code == 200
    assert len(response.json()["data"]["conversation"]) == 3
    assert provider.calls == []


def test_turns_kept_in_received_order(client, alice):
    interview_id = start(client, alice[1]).json()["data"]["id"]
    for text in ("first", "second", "third"):
        client.post(
            f"{API}/interview/{interview_id}/message",
            json={"role": "assistant", "content": text},
            headers=alice[1],
        )

    data = client.get(f"{API}/interview/{interview_id}", headers=alice[1]).json()["data"]
    assert [t["content"] for t in data["conversation"][2:]] == ["first", "second", "third"]


def test_append_to_missing_interview(client, alice):
    response = client.post(
        f"{API}/interview/9999/message",
        json={"role": "user", "content": "hello"},
        headers=alice[1],
    )

    assert response.status_code == 404


def test_append_rejects_unknown_role(client, alice):
    interview_id = start(client, alice[1]).json()["data"]["id"]

    response = client.post(
        f"{API}/interview/{interview_id}/message",
        json={"role": "moderator", "content": "hello"},
        headers=alice[1],
    )

    assert response.status_code == 422


# ---------------- ownership ----------------

def test_other_user_cannot_append(client, alice, bob, db_session):
    interview_id = start(client, alice[1]).json()["data"]["id"]

    response = client.post(
        f"{API}/interview/{interview_id}/message",
        json={"role": "user", "content": "sneaky"},
        headers=bob[1],
    )

    assert response.status_code == 403
    assert "data" not in response.json()
    assert len(db_session.get(Interview, interview_id).conversation) == 2


def test_other_user_cannot_read(client, alice, bob):
    interview_id = start(client, alice[1]).json()["data"]["id"]

    response = client.get(f"{API}/interview/{interview_id}", headers=bob[1])

    assert response.status_code == 403
    assert "data" not in response.json()


# ---------------- history ----------------

def test_history_lists_own_interviews_newest_first(client, alice, bob):
    first = start(client, alice[1], "First Role").json()["data"]["id"]
    second = start(client, alice[1], "Second Role").json()["data"]["id"]
    start(client, bob[1], "Bob Role")

    response = client.get(f"{API}/interview/history", headers=alice[1])

    assert response.status_code == 200
    ids = [i["id"] for i in response.json()["data"]]
    assert ids == [second, first]


# ---------------- end ----------------

def test_end_interview_grades_and_saves(client, alice, db_session):
    transcript = [
        {"role": "assistant", "content": "Tell me about joins."},
        {"role": "user", "content": "I know SQL"},
    ]

    response = client.post(
        f"{API}/interview/end",
        json={"transcript": transcript, "resumeText": "Jane Doe", "jobRole": "Backend Engineer"},
        headers=alice[1],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Feedback generated and saved"
    data = body["data"]
    assert data["saved"] is True
    assert data["feedback"]["overallScore"] == 78

    stored = db_session.get(Interview, data["interviewId"])
    assert stored.status == "ended"
    assert stored.job_role == "Backend Engineer"
    assert stored.overall_score == 78
    assert stored.rating == 8
    assert stored.comments == "Good SQL fundamentals."
    assert stored.conversation == transcript


def test_end_interview_with_empty_transcript_persists_placeholder(client, alice, db_session):
    response = client.post(f"{API}/interview/end", json={"transcript": []}, headers=alice[1])

    interview_id = response.json()["data"]["interviewId"]
    stored = db_session.get(Interview, interview_id)
    assert stored.conversation == [{"role": "user", "content": "Session started"}]
    assert stored.job_role == "Technical Interview"


def test_end_interview_coerces_string_scores(client, alice, provider, db_session):
    provider.judgement = json.dumps({
        "overallScore": "85",
        "technicalScore": None,
        "communicationScore": "n/a",
        "summary": "ok",
        "strengths": [],
        "improvements": [],
        "actions": [],
    })

    response = client.post(f"{API}/interview/end", json={"transcript": []}, headers=alice[1])

    stored = db_session.get(Interview, response.json()["data"]["interviewId"])
    assert stored.overall_score == 85
    assert stored.rating == 9
    assert stored.technical_score == 0
    assert stored.communication_score == 0


def test_end_interview_ai_failure_still_succeeds(client, alice, provider, db_session):
    provider.fail = True

    response = client.post(
        f"{API}/interview/end",
        json={"transcript": [{"role": "user", "content": "hi"}]},
        headers=alice[1],
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert AI_UNAVAILABLE_SUMMARY in data["feedback"]["summary"]
    assert data["feedback"]["overallScore"] == 0
    stored = db_session.get(Interview, data["interviewId"])
    assert stored.overall_score == 0
    assert stored.rating == 0


def test_end_interview_malformed_ai_output_falls_back(client, alice, provider):
    provider.judgement = "Sure! Here is your feedback: great job."

    response = client.post(f"{API}/interview/end", json={"transcript": []}, headers=alice[1])

    assert response.status_code == 200
    assert response.json()["data"]["feedback"]["summary"] == AI_UNAVAILABLE_SUMMARY


def test_ended_interview_rejects_new_turns(client, alice):
    interview_id = client.post(
        f"{API}/interview/end", json={"transcript": []}, headers=alice[1]
    ).json()["data"]["interviewId"]

    response = client.post(
        f"{API}/interview/{interview_id}/message",
        json={"role": "user", "content": "one more thing"},
        headers=alice[1],
    )

    assert response.status_code == 409


def test_end_interview_store_down_returns_unsaved_feedback(client, alice, provider, store_outage, db_session, caplog):
    def go_down():
        store_outage.down = True
    # the store fails after grading, while the auth gate's user is still in the session
    provider.on_chat = go_down

    with caplog.at_level(logging.ERROR):
        response = client.post(
            f"{API}/interview/end",
            json={"transcript": [{"role": "user", "content": "I know SQL"}]},
            headers=alice[1],
        )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Feedback generated (Save Failed)"
    assert body["data"]["saved"] is False
    assert "interviewId" not in body["data"]
    assert body["data"]["feedback"]["overallScore"] == 78
    assert f"interview_persist_failed: user_id={alice[0]['user']['id']}" in caplog.text

    store_outage.down = False
    assert db_session.query(Interview).count() == 0


def test_append_conflicts_when_row_changes_during_reply(client, alice, provider, db_session):
    interview_id = start(client, alice[1]).json()["data"]["id"]

    def write_from_another_tab():
        other = db_session.get(Interview, interview_id)
        other.conversation = list(other.conversation) + [{"role": "user", "content": "from another tab"}]
        db_session.commit()
    provider.on_chat = write_from_another_tab

    response = client.post(
        f"{API}/interview/{interview_id}/message",
        json={"role": "user", "content": "I know SQL"},
        headers=alice[1],
    )

    assert response.status_code == 409
    db_session.expire_all()
    contents = [t["content"] for t in db_session.get(Interview, interview_id).conversation]
    assert contents[-1] == "from another tab"
    assert "I know SQL" not in contents


# ---------------- end to end ----------------

def test_full_interview_flow(client, provider):
    register(client, "alice")
    login = client.post(f"{API}/users/login", json={"email": "alice@example.com", "password": "testpass123"})
    assert login.status_code == 200
    client.cookies.clear()
    headers = {"Authorization": f"Bearer {login.json()['data']['accessToken']}"}

    interview = start(client, headers).json()["data"]

    appended = client.post(
        f"{API}/interview/{interview['id']}/message",
        json={"role": "user", "content": "I know SQL"},
        headers=headers,
    ).json()["data"]
    assert appended["conversation"][-1]["role"] == "assistant"

    transcript = [
        {"role": "user", "content": "I know SQL"},
        appended["conversation"][-1],
    ]
    ended = client.post(
        f"{API}/interview/end",
        json={"transcript": transcript, "jobRole": "Backend Engineer"},
        headers=headers,
    )

    assert ended.status_code == 200
    data = ended.json()["data"]
    assert data["interviewId"]
    score = data["feedback"]["overallScore"]
    assert isinstance(score, int)
    assert 0 <= score <= 100
