import time
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient
from backend.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/limited", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited():
        return {"ok": True}

    @app.post("/limitedA", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_a():
        return {"ok": True}

    @app.post("/limitedB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    app = _make_app(times=2, seconds=60)
    client = TestClient(app)
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 429


def test_rate_limit_is_per_path_and_token(monkeypatch):
    app = _make_app(times=2, seconds=60)
    client = TestClient(app)
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    alice = {"Authorization": "Bearer alice-token"}
    bob = {"Authorization": "Bearer bob-token"}

    assert client.post("/limitedA", headers=alice).status_code == 200
    assert client.post("/limitedA", headers=alice).status_code == 200
    assert client.post("/limitedA", headers=alice).status_code == 429

    # autre utilisateur: compteur distinct
    assert client.post("/limitedA", headers=bob).status_code == 200
    # autre chemin: compteur distinct
    assert client.post("/limitedB", headers=alice).status_code == 200


def test_rate_limit_resets_after_window_sleep(monkeypatch):
    app = _make_app(times=2, seconds=1)
    client = TestClient(app)
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 429

    time.sleep(1.1)
    assert client.post("/limited").status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=2, seconds=60)
    client = TestClient(app)
    app.state.rate_limit_enabled = False

    for _ in range(4):
        assert client.post("/limited").status_code == 200


def test_rate_limit_without_limiter_does_not_block(monkeypatch):
    # FastAPILimiter non initialisé: aucune 429 en production
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr("fastapi_limiter.FastAPILimiter.redis", None, raising=False)
    client = TestClient(_make_app(times=1, seconds=60))
    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    from fastapi_limiter import FastAPILimiter
    app = _make_app()
    client = TestClient(app)
    app.state.rate_limit_enabled = True

    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)
    info = client.get("/rl_info").json()
    assert info == {"enabled": True, "ready": False, "backend": None}

    monkeypatch.setattr(FastAPILimiter, "redis", object(), raising=False)
    info = client.get("/rl_info").json()
    assert info == {"enabled": True, "ready": True, "backend": "redis"}


def test_rate_limit_fallback_drops_expired_clients(monkeypatch):
    app = _make_app(times=2, seconds=1)
    client = TestClient(app)
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    for i in range(5):
        assert client.post("/limited", headers={"Authorization": f"Bearer token-{i}"}).status_code == 200
    assert len(app.state._rl_store[1]) == 5

    time.sleep(1.1)
    assert client.post("/limited", headers={"Authorization": "Bearer late"}).status_code == 200
    # seules les clés encore dans la fenêtre sont conservées
    assert len(app.state._rl_store[1]) == 1
