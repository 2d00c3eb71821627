"""
헬스 체크 엔드포인트 테스트
"""

from fastapi.testclient import TestClient

from adapters.mock.ledger_store import InMemoryLedgerStore
from core.constants import VERSION
from web.app import create_app


def test_health(store: InMemoryLedgerStore) -> None:
    with TestClient(create_app(store_factory=lambda: store, request_timeout=1.0)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": VERSION}


def test_lifespan_reads_settings(temp_secrets_file, monkeypatch) -> None:
    from core.config import loader

    monkeypatch.setattr(loader.Paths, "SECRETS_FILE", temp_secrets_file)
    app = create_app()

    with TestClient(app):
        assert app.state.request_timeout == 5.0
        store = app.state.store_factory()
        assert store.rest.api_key == "service_role_key_fghij"
