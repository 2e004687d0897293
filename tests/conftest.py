import pytest
from typing import Optional
from queryhub.config import Settings
from queryhub.services.gateway import QueryGateway
from tests.fakes import FakeUpstream


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = {
            "data_dir": str(tmp_path / "database"),
            "mask_rejection_latency": False,
            "admin_password": "test-password",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def make_gateway(make_settings):
    def _make(upstream: Optional[FakeUpstream] = None, **overrides) -> QueryGateway:
        config = make_settings(**overrides)
        return QueryGateway(config, upstream=upstream or FakeUpstream())

    return _make
