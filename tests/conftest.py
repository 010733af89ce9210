import pytest
from loguru import logger

from model_autoconfig import ConnectionSettings, ModelSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell settings out of the tests."""
    import os

    for name in list(os.environ):
        if name.startswith(("WATSONX_AI_", "AI_MODEL_")):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def connection():
    return ConnectionSettings(
        base_url="https://wx.example.com/",
        project_id="proj-123",
        iam_token="secret-token",
    )


@pytest.fixture
def settings(connection):
    return ModelSettings(connection=connection)


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
