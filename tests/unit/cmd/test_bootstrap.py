from __future__ import annotations
from pathlib import Path
import pytest
from ai_classifier.application.provider_router import ProviderRouter
from ai_classifier.cmd.bootstrap import build_engine
from ai_classifier.infrastructure.circuit_breaker import CircuitBreakingClient


ENV_TO_CLEAR = (
    "GEMINI_ENABLED",
    "GEMINI_API_KEY",
    "SERVICE_CATALOG_URL",
    "SERVICE_CATALOG_PATH",
    "AI_PROVIDERS_FILE",
    "AI_DEFAULT_PROVIDER",
    "AI_DEFAULT_MODEL",
    "AI_FALLBACK_MODEL",
)

@pytest.fixture
def azure_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_TO_CLEAR:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AZURE_OPENAI_ENABLED", "true")
    monkeypatch.setenv("AZURE_OPENAI_RESOURCE_NAME", "caesb-openai")
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "secret-key")
    return monkeypatch

def test_build_engine_with_azure_only(azure_env: pytest.MonkeyPatch) -> None:
    engine = build_engine()

    assert engine.registry.available_providers() == ["azure-openai"]
    assert engine.registry.default_model == "gpt-4o-mini"
    assert len(engine.catalog.services) == 61

    router: ProviderRouter = engine.router
    assert router.registered_providers() == ["azure-openai"]
    assert isinstance(router.get_client("azure-openai"), CircuitBreakingClient)
    assert router.get_client("gemini") is None

def test_providers_file_adds_gemini(azure_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    providers = tmp_path / "providers.yaml"
    providers.write_text(
        "providers:\n"
        "  azure-openai:\n"
        "    deployments:\n"
        "      gpt-4o-mini: {}\n"
        "  gemini:\n"
        "    deployments:\n"
        "      gemini-2.0-flash: {}\n",
        encoding="utf-8",
    )
    azure_env.setenv("AI_PROVIDERS_FILE", str(providers))
    azure_env.setenv("GEMINI_ENABLED", "true")
    azure_env.setenv("GEMINI_API_KEY", "gemini-key")

    engine = build_engine()

    assert sorted(engine.registry.available_providers()) == ["azure-openai", "gemini"]
    assert engine.registry.resolve_model("gemini") == "gemini-2.0-flash"

def test_bad_catalog_path_exits(azure_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    azure_env.setenv("SERVICE_CATALOG_PATH", str(tmp_path / "missing.yaml"))

    with pytest.raises(SystemExit) as exc_info:
        _ = build_engine()

    assert exc_info.value.code == 1

def test_bad_providers_file_exits(azure_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    azure_env.setenv("AI_PROVIDERS_FILE", str(tmp_path / "missing.yaml"))

    with pytest.raises(SystemExit) as exc_info:
        _ = build_engine()

    assert exc_info.value.code == 1
