from fastapi.testclient import TestClient

from backend import db
from backend.app.main import app


def test_save_run_and_stats(tmp_path, monkeypatch):
    # point the app at a temporary sqlite file
    monkeypatch.setenv("DURHAM_DB_PATH", str(tmp_path / "durham_test.db"))

    with TestClient(app) as client:
        r = client.post("/run", json={"code": 'tlc begin "hello" end.'})
        assert r.status_code == 200
        assert r.json()["output"] == "hello"

        r2 = client.post("/save", json={"title": "script1", "code": "tlc begin castle end."})
        assert r2.status_code == 200
        sid = r2.json()["script_id"]

        lst = client.get("/scripts")
        assert lst.status_code == 200
        assert any(s.get("script_id") == sid for s in lst.json())

        one = client.get(f"/scripts/{sid}")
        assert one.status_code == 200
        assert one.json()["code_text"] == "tlc begin castle end."

        missing = client.get("/scripts/9999")
        assert missing.json() == {"error": "not found"}

        r3 = client.post("/run", json={"code": "tlc begin castle end.", "script_id": sid})
        body3 = r3.json()
        assert body3["success"] is True
        assert body3["warnings"] == []

        # failed programs are recorded too
        client.post("/run", json={"code": "tlc begin castle edinburgh butler end.", "script_id": sid})

        stats = client.get(f"/stats?script_id={sid}")
        assert stats.status_code == 200
        runs = stats.json()
        assert len(runs) == 2
        assert sorted(r["success"] for r in runs) == [False, True]
        assert any(r["output_chars"] == 1 for r in runs)

        all_runs = client.get("/stats").json()
        assert len(all_runs) == 3


def test_persist_failure_is_a_warning(tmp_path, monkeypatch):
    monkeypatch.setenv("DURHAM_DB_PATH", str(tmp_path / "durham_test.db"))

    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    with TestClient(app) as client:
        monkeypatch.setattr(db, "save_run", broken)
        r = client.post("/run", json={"code": "tlc begin castle end."})
        body = r.json()
        assert body["success"] is True
        assert body["output"] == "5"
        assert any("disk full" in w for w in body["warnings"])
