import pytest

from quizgame.models import Question

from conftest import bearer


def payload(**overrides):
	body = {
		"category": "HEALTH",
		"type": "MISSING_NUTRIENT",
		"difficulty": 2,
		"translations": {
			"th": {"question_text": "ส้มมีวิตามินอะไร", "correct_answers": ["วิตามินซี"]},
			"en": {"question_text": "Which vitamin is in oranges?", "correct_answers": ["vitamin c"], "explanation": "Citrus"},
		},
	}
	body.update(overrides)
	return body


def create(client, headers, **overrides):
	return client.post("/admin/questions", json=payload(**overrides), headers=headers)


def test_admin_only(client, signup):
	tokens = signup("player")
	assert client.get("/admin/stats", headers=bearer(tokens)).status_code == 403
	assert client.get("/admin/stats").status_code == 401


def test_create_and_get_question(client, admin_headers):
	r = create(client, admin_headers)
	assert r.status_code == 201, r.text
	q = r.json()
	assert q["input_type"] == "TEXT"
	assert q["translations"]["en"]["correct_answers"] == ["vitamin c"]
	fetched = client.get(f"/admin/questions/{q['id']}", headers=admin_headers).json()
	assert fetched == q
	assert client.get("/admin/questions/nope", headers=admin_headers).status_code == 404


@pytest.mark.parametrize("overrides", [
	{"category": "SPORTS"},
	{"type": "ARITHMETIC_TARGET"},
	{"input_type": "CALCULATION"},
	{"translations": {}},
	{"translations": {"fr": {"question_text": "q", "correct_answers": ["a"]}}},
	{"translations": {"th": {"question_text": "q", "correct_answers": []}}},
	{"translations": {"th": {"question_text": "q", "correct_answers": ["  "]}}},
])
def test_create_rejects_ungradable_questions(client, admin_headers, overrides):
	assert create(client, admin_headers, **overrides).status_code == 400


def test_calculation_needs_target(client, admin_headers):
	base = {"category": "FINANCE", "type": "ARITHMETIC_TARGET"}
	missing = create(client, admin_headers, **base, translations={"th": {"question_text": "ทำให้ได้ 10"}})
	assert missing.status_code == 400
	ok = create(client, admin_headers, **base, translations={"th": {"question_text": "ทำให้ได้ 10", "target_value": 10}})
	assert ok.status_code == 201
	assert ok.json()["input_type"] == "CALCULATION"


def test_multiple_choice_answer_must_be_an_option(client, admin_headers):
	base = {"category": "DIGITAL", "type": "SCAM_TEXT"}
	bad = {"th": {"question_text": "q", "options": ["A", "B", "C", "D"], "correct_answers": ["E"]}}
	good = {"th": {"question_text": "q", "options": ["A", "B", "C", "D"], "correct_answers": ["C"]}}
	assert create(client, admin_headers, **base, translations=bad).status_code == 400
	assert create(client, admin_headers, **base, translations=good).status_code == 201


def test_empty_question_text_is_invalid(client, admin_headers):
	r = create(client, admin_headers, translations={"th": {"question_text": "", "correct_answers": ["a"]}})
	assert r.status_code == 422


def test_update_question(client, admin_headers):
	q = create(client, admin_headers).json()
	r = client.put(
		f"/admin/questions/{q['id']}",
		json=payload(difficulty=3, translations={"en": {"question_text": "Updated", "correct_answers": ["vit c"]}}),
		headers=admin_headers,
	)
	assert r.status_code == 200
	body = r.json()
	assert body["difficulty"] == 3
	assert body["translations"]["en"]["question_text"] == "Updated"
	# untouched languages stay
	assert body["translations"]["th"]["correct_answers"] == ["วิตามินซี"]


def test_list_questions(client, admin_headers):
	create(client, admin_headers)
	create(client, admin_headers, category="FINANCE", type="ARITHMETIC_TARGET",
		translations={"en": {"question_text": "Make ten", "target_value": 10}})

	everything = client.get("/admin/questions", headers=admin_headers).json()
	assert everything["total"] == 2
	assert everything["total_pages"] == 1

	finance = client.get("/admin/questions", params={"category": "finance"}, headers=admin_headers).json()
	assert [q["category"] for q in finance["questions"]] == ["FINANCE"]

	found = client.get("/admin/questions", params={"search": "oranges"}, headers=admin_headers).json()
	assert found["total"] == 1
	assert found["questions"][0]["category"] == "HEALTH"

	paged = client.get("/admin/questions", params={"limit": 1, "page": 2}, headers=admin_headers).json()
	assert len(paged["questions"]) == 1
	assert paged["total_pages"] == 2

	assert client.get("/admin/questions", params={"limit": 500}, headers=admin_headers).status_code == 422


def test_bulk_toggle(client, admin_headers):
	ids = [create(client, admin_headers).json()["id"] for _ in range(2)]
	r = client.post("/admin/questions/bulk-toggle", json={"ids": ids, "is_active": False}, headers=admin_headers)
	assert r.json() == {"ok": True, "updated": 2}
	inactive = client.get("/admin/questions", params={"is_active": False}, headers=admin_headers).json()
	assert inactive["total"] == 2


def test_delete_question(client, admin_headers, db):
	q = create(client, admin_headers).json()
	r = client.delete(f"/admin/questions/{q['id']}", headers=admin_headers)
	assert r.json()["deleted"] is True
	assert db.get(Question, q["id"]) is None
	assert client.delete(f"/admin/questions/{q['id']}", headers=admin_headers).status_code == 404


def test_delete_played_question_deactivates(client, admin_headers, signup):
	q = create(client, admin_headers).json()
	player = signup("player")
	game = client.post("/game/start", json={"category": "HEALTH"}, headers=bearer(player)).json()
	client.post(
		"/game/complete",
		json={"session_id": game["session_id"], "answers": [{"id": q["id"], "chosen": "vitamin c"}]},
		headers=bearer(player),
	)
	r = client.delete(f"/admin/questions/{q['id']}", headers=admin_headers).json()
	assert (r["deleted"], r["deactivated"]) == (False, True)
	assert client.get(f"/admin/questions/{q['id']}", headers=admin_headers).json()["is_active"] is False


def test_import_questions(client, admin_headers):
	good = payload()
	bad_type = payload(type="UNKNOWN")
	bad_shape = {"category": "HEALTH"}
	r = client.post("/admin/questions/import", json={"questions": [good, bad_type, bad_shape]}, headers=admin_headers)
	body = r.json()
	assert (body["success"], body["failed"]) == (1, 2)
	assert [e["index"] for e in body["errors"]] == [1, 2]
	assert client.get("/admin/questions", headers=admin_headers).json()["total"] == 1


def test_admin_stats(client, admin_headers, signup):
	create(client, admin_headers)
	create(client, admin_headers, is_active=False)
	signup("player")
	stats = client.get("/admin/stats", headers=admin_headers).json()
	assert stats["total_questions"] == 2
	assert stats["active_questions"] == 1
	assert stats["categories"]["HEALTH"] == 2
	assert stats["total_users"] == 2
	assert stats["total_games"] == 0
	assert stats["avg_score"] == 0
