from fastapi.testclient import TestClient

from app import main
from app.config import settings


def test_root_reports_ok():
    with TestClient(main.app) as client:
        assert client.get("/").json() == {"status": "ok"}


def test_run_serves_the_app_with_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    main.run()

    assert calls == [(("app.main:app",), {"host": settings.HOST, "port": settings.PORT, "reload": settings.DEBUG})]
