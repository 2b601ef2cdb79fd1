from conftest import symptom_analysis_json


def test_health_summary_and_exports(client, fake_llm):
    fake_llm.queue(symptom_analysis_json())
    client.post("/api/symptoms/check", json={"symptoms": "I have a mild headache"})
    client.post("/api/mood/entries", json={"mood": 3})

    r = client.post("/api/reports/health-summary")
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["sync_status"] == "synced"
    summary = j["summary"]
    assert summary["totalSymptomReports"] == 1
    assert summary["totalMoodEntries"] == 1
    assert [c["condition"] for c in summary["commonConditions"]] == ["Tension headache", "Migraine"]

    reports = client.get("/api/reports/").json()
    assert [r["id"] for r in reports] == [j["report_id"]]
    assert reports[0]["conditions_summary"] == ["Tension headache", "Migraine"]

    r = client.get(f"/api/reports/{j['report_id']}/export", params={"format": "html"})
    assert "Tension headache" in r.text

    r = client.get(f"/api/reports/{j['report_id']}/export")
    assert r.content.startswith(b"%PDF")
    stamp = summary["generatedAt"][:10]
    assert r.headers["content-disposition"] == f'attachment; filename="health-summary-{stamp}.pdf"'


def test_export_unknown_report(client):
    r = client.get("/api/reports/nope/export")
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


def test_profile_created_on_first_read(client):
    r = client.get("/api/profile/")
    assert r.status_code == 200
    j = r.json()
    assert j["user_id"] == "user-1"
    assert j["age"] is None


def test_profile_update(client):
    r = client.put("/api/profile/", json={"age": 35, "gender": "male", "medications": ["Metformin"]})
    assert r.status_code == 200
    j = client.get("/api/profile/").json()
    assert j["age"] == 35
    assert j["medications"] == ["Metformin"]
    assert j["allergies"] == []

    assert client.put("/api/profile/", json={"age": 200}).status_code == 422


def test_preferences(client):
    assert client.get("/api/preferences/").json()["dark_mode"] is False

    r = client.put("/api/preferences/", json={"dark_mode": True, "reminder_time": "08:15"})
    assert r.status_code == 200
    j = client.get("/api/preferences/").json()
    assert j["dark_mode"] is True
    assert j["reminder_time"] == "08:15"
    assert j["export_format"] == "json"

    r = client.put("/api/preferences/", json={"reminder_time": "8am"})
    assert r.status_code == 422
    assert r.json()["message"] == "Invalid preferences"


def test_preferences_null_clears_a_field(client):
    client.put("/api/preferences/", json={"bookmarks": ["mood"], "language": "de"})
    r = client.put("/api/preferences/", json={"bookmarks": None})
    assert r.status_code == 200
    assert r.json()["bookmarks"] == []
    assert r.json()["language"] == "de"
