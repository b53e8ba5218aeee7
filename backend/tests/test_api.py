import pytest
from starlette.websockets import WebSocketDisconnect

from lingoecho.exceptions import GenerationError


def _register(client, email="budi@example.com", password="rahasia123", name="Budi"):
	response = client.post("/auth/register", json={"email": email, "password": password, "name": name})
	assert response.status_code == 201, response.text
	return response.json()["access_token"]


def _auth(token):
	return {"Authorization": f"Bearer {token}"}


def test_register_login_and_me(client):
	_register(client)

	response = client.post("/auth/token", data={"username": "budi@example.com", "password": "rahasia123"})
	assert response.status_code == 200
	token = response.json()["access_token"]

	me = client.get("/auth/me", headers=_auth(token))
	assert me.status_code == 200
	assert me.json()["display_name"] == "Budi"


def test_bad_credentials_and_duplicates(client):
	_register(client)

	wrong = client.post("/auth/token", data={"username": "budi@example.com", "password": "keliru123"})
	assert wrong.status_code == 401
	assert wrong.json()["detail"]["form"]["email"] == "budi@example.com"

	duplicate = client.post("/auth/register", json={"email": "budi@example.com", "password": "rahasia123", "name": "B"})
	assert duplicate.status_code == 409


def test_logout_revokes_the_token(client):
	token = _register(client)

	assert client.post("/auth/logout", headers=_auth(token)).status_code == 204
	assert client.get("/auth/me", headers=_auth(token)).status_code == 401


def test_requests_without_a_token_are_rejected(client):
	assert client.get("/shell").status_code == 401


def test_translate_flow(client):
	token = _register(client)

	response = client.post("/translate", json={"text": "Selamat pagi", "mode": "formal"}, headers=_auth(token))
	assert response.status_code == 200, response.text
	state = response.json()
	assert state["input"] == ""
	assert state["messages"][0]["translated_text"] == "EN Selamat pagi"
	session_id = state["session_id"]

	sessions = client.get("/translate/sessions", headers=_auth(token)).json()
	assert [s["id"] for s in sessions] == [session_id]
	assert sessions[0]["title"] == "Selamat pagi"

	fresh = client.post("/translate/new", headers=_auth(token)).json()
	assert fresh["session_id"] is None
	assert fresh["messages"] == []

	selected = client.post(f"/translate/sessions/{session_id}/select", headers=_auth(token)).json()
	assert len(selected["messages"]) == 1

	assert client.post("/translate/sessions/nope/select", headers=_auth(token)).status_code == 404


def test_translate_failure_returns_the_input(client, generator):
	token = _register(client)
	generator.translations.append(GenerationError("model overloaded"))

	response = client.post("/translate", json={"text": "Apa kabar?"}, headers=_auth(token))

	assert response.status_code == 502
	assert response.json()["detail"]["input"] == "Apa kabar?"
	assert client.get("/translate/sessions", headers=_auth(token)).json() == []


def test_quiz_and_progress_flow(client):
	token = _register(client)

	state = client.post("/quiz/start", json={"theme": "Makanan"}, headers=_auth(token)).json()
	assert state["phase"] == "answering"

	early = client.post("/quiz/finish", headers=_auth(token))
	assert early.status_code == 409

	for index, question in enumerate(state["questions"]):
		option = question["correct_answer"] if index else question["options"][1]
		client.post("/quiz/answer", json={"index": index, "option": option}, headers=_auth(token))

	finished = client.post("/quiz/finish", headers=_auth(token)).json()
	assert finished["phase"] == "finished"
	assert finished["score"] == 2
	assert finished["total"] == 3

	progress = client.get("/progress", headers=_auth(token)).json()
	assert progress["empty"] is False
	assert progress["stats"]["count"] == 1
	assert progress["stats"]["total_points"] == 2
	assert progress["stats"]["average_percentage"] == 66.7

	shell = client.get("/shell", headers=_auth(token)).json()
	assert shell["active_tab"] == "progress"


def test_matching_flow(client):
	token = _register(client)

	state = client.post("/matching/start", json={"theme": "Rumah"}, headers=_auth(token)).json()
	assert state["phase"] == "playing"
	left = {item["term"]: item["id"] for item in state["left"]}
	right = {item["term"]: item["id"] for item in state["right"]}

	wrong = client.post("/matching/pick", json={"side": "left", "item_id": left["kata0"]}, headers=_auth(token))
	wrong = client.post("/matching/pick", json={"side": "right", "item_id": right["word1"]}, headers=_auth(token)).json()
	assert wrong["evaluated"] and not wrong["matched"]

	for i in range(4):
		client.post("/matching/pick", json={"side": "left", "item_id": left[f"kata{i}"]}, headers=_auth(token))
		last = client.post("/matching/pick", json={"side": "right", "item_id": right[f"word{i}"]}, headers=_auth(token)).json()
		assert last["matched"]

	assert last["state"]["phase"] == "complete"
	assert client.post("/matching/reset", headers=_auth(token)).json()["phase"] == "entry"


def test_live_feed_pushes_snapshots(client):
	token = _register(client)

	with client.websocket_connect(f"/live/sessions?token={token}") as ws:
		assert ws.receive_json() == {"type": "sessions", "data": []}
		client.post("/translate", json={"text": "Halo"}, headers=_auth(token))
		update = ws.receive_json()

	assert update["type"] == "sessions"
	assert update["data"][0]["title"] == "Halo"


def test_live_feed_rejects_bad_tokens(client):
	with pytest.raises(WebSocketDisconnect):
		with client.websocket_connect("/live/sessions?token=bogus") as ws:
			ws.receive_json()


def test_info(client):
	body = client.get("/info").json()
	assert body["status"] == "ok"
	assert "gemini_configured" in body


def test_live_feed_rejects_malformed_session_ids(client):
	token = _register(client)

	with pytest.raises(WebSocketDisconnect) as exc_info:
		with client.websocket_connect(f"/live/messages?token={token}&session_id=a%2Fb") as ws:
			ws.receive_json()

	assert exc_info.value.code == 4400
