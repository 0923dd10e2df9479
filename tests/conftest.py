"""Shared fixtures for taleflow tests."""

import pytest

from taleflow import TaleflowConfig, WorkflowConfig, WorkflowEngine, reset_engine


def make_workflow_config(**overrides) -> WorkflowConfig:
    settings = {
        "max_retries": 2,
        "retry_delay": 0,
        "timeout": 1000,
        "enable_caching": True,
        "cache_expiry": 60_000,
        "cost_limit": 0,
    }
    settings.update(overrides)
    return WorkflowConfig(**settings)


class ScriptedOperation:
    """Async operation that fails a fixed number of times before succeeding.

    Records the provider seen by every call so tests can assert on fallback.
    """

    def __init__(self, failures: int = 0, result="ok", error=RuntimeError):
        self.failures = failures
        self.result = result
        self.error = error
        self.calls = 0
        self.providers = []

    async def __call__(self, step):
        self.calls += 1
        self.providers.append(step.provider)
        if self.calls <= self.failures:
            raise self.error(f"{step.provider} failure #{self.calls}")
        return self.result


@pytest.fixture
def workflow_config():
    return make_workflow_config


@pytest.fixture
def scripted():
    return ScriptedOperation


@pytest.fixture
def engine_factory():
    def factory(**overrides) -> WorkflowEngine:
        return WorkflowEngine(TaleflowConfig(workflow=make_workflow_config(**overrides)))

    return factory


@pytest.fixture
def engine(engine_factory) -> WorkflowEngine:
    return engine_factory()


@pytest.fixture(autouse=True)
def _reset_global_engine(monkeypatch):
    monkeypatch.delenv("TALEFLOW_CONFIG", raising=False)
    monkeypatch.delenv("TALEFLOW_MAX_RETRIES", raising=False)
    monkeypatch.delenv("TALEFLOW_TIMEOUT_MS", raising=False)
    monkeypatch.delenv("TALEFLOW_ENABLE_CACHING", raising=False)
    reset_engine()
    yield
    reset_engine()
