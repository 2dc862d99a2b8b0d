import pytest
from ai_classifier.application.admin import AdminOperationError, AdminService
from ai_classifier.application.deployment_registry import DeploymentRegistry
from ai_classifier.application.provider_router import ProviderRouter
from ai_classifier.application.result_cache import ResultCache
from ai_classifier.config import CacheConfig
from ai_classifier.domain.errors import ErrorCode
from ai_classifier.domain.models import Deployment, ProviderRequest, ProviderResponse, RegistryState


class RotatableClient:
    def __init__(self, name: str = "azure-openai") -> None:
        self.name = name
        self.keys: list[str] = []
        self.circuit_state = "closed"

    @property
    def provider_name(self) -> str:
        return self.name

    def is_available(self) -> bool:
        return True

    def rotate_api_key(self, api_key: str) -> None:
        self.keys.append(api_key)

    def send_chat_completion(self, request: ProviderRequest) -> ProviderResponse:
        return ProviderResponse.ok(content="{}", model=request.model)

    def test_connection(self, model: str) -> ProviderResponse:
        return ProviderResponse.ok(content="{}", model=model)

class PlainClient(RotatableClient):
    rotate_api_key = None                                                   # type: ignore[assignment]

def _make_admin(client: RotatableClient | None = None) -> tuple[AdminService, DeploymentRegistry]:
    registry = DeploymentRegistry(
        RegistryState(
            deployments={
                "azure-openai": (
                    Deployment(model_id="gpt-4o-mini", deployment_name="mini", display_name="Mini"),
                    Deployment(model_id="gpt-4o", deployment_name="full", display_name="Full", description="Maior"),
                    Deployment(model_id="gpt-35", deployment_name="old", display_name="Old", enabled=False),
                ),
            },
            default_provider="azure-openai",
            default_model="gpt-4o-mini",
        )
    )
    router = ProviderRouter(registry, [client or RotatableClient()], fallback_model="gpt-4o-mini")
    cache = ResultCache(CacheConfig(ttl_minutes=5, max_size=10))
    return AdminService(registry, router, cache), registry

def test_set_default_model_returns_previous_and_current() -> None:
    admin, registry = _make_admin()

    change = admin.set_default_model(" gpt-4o ")

    assert change == {"previous_model": "gpt-4o-mini", "current_model": "gpt-4o"}
    assert registry.default_model == "gpt-4o"

def test_set_default_model_rejects_blank() -> None:
    admin, _ = _make_admin()

    with pytest.raises(AdminOperationError) as exc_info:
        admin.set_default_model("  ")

    assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR

def test_set_default_model_rejects_disabled_and_lists_available() -> None:
    admin, registry = _make_admin()

    with pytest.raises(AdminOperationError) as exc_info:
        admin.set_default_model("gpt-35")

    assert exc_info.value.error_code == ErrorCode.MODEL_NOT_AVAILABLE
    assert exc_info.value.available_models == ["gpt-4o-mini", "gpt-4o"]
    assert registry.default_model == "gpt-4o-mini"

def test_set_deployment_enabled_makes_model_routable() -> None:
    client = RotatableClient()
    admin, registry = _make_admin(client)
    router = ProviderRouter(registry, [client], fallback_model="gpt-4o-mini")

    change = admin.set_deployment_enabled("gpt-35", True)
    result = router.route(ProviderRequest(system_prompt="sys", user_prompt="user", model="gpt-35"))

    assert change == {"provider": "azure-openai", "model": "gpt-35", "enabled": True}
    assert registry.is_model_available("azure-openai", "gpt-35") is True
    assert result.success is True
    assert result.model == "gpt-35"
    assert admin.config_status()["providers"]["azure-openai"]["models"] == ["gpt-4o-mini", "gpt-4o", "gpt-35"]

def test_set_deployment_enabled_rejections() -> None:
    admin, registry = _make_admin()

    with pytest.raises(AdminOperationError) as blank:
        admin.set_deployment_enabled(" ", True)
    assert blank.value.error_code == ErrorCode.VALIDATION_ERROR

    with pytest.raises(AdminOperationError) as default:
        admin.set_deployment_enabled("gpt-4o-mini", False)
    assert default.value.error_code == ErrorCode.VALIDATION_ERROR
    assert registry.is_model_available("azure-openai", "gpt-4o-mini") is True

    with pytest.raises(AdminOperationError) as unknown:
        admin.set_deployment_enabled("gpt-5", True)
    assert unknown.value.error_code == ErrorCode.MODEL_NOT_AVAILABLE
    assert unknown.value.available_models == ["gpt-4o-mini", "gpt-4o"]

    with pytest.raises(AdminOperationError) as other_provider:
        admin.set_deployment_enabled("gpt-4o", False, provider="gemini")
    assert other_provider.value.error_code == ErrorCode.MODEL_NOT_AVAILABLE

def test_rotate_api_key_delegates_to_client() -> None:
    client = RotatableClient()
    admin, _ = _make_admin(client)

    admin.rotate_api_key(" new-key ")

    assert client.keys == ["new-key"]

def test_rotate_api_key_validation_and_unsupported_client() -> None:
    admin, _ = _make_admin(PlainClient())

    with pytest.raises(AdminOperationError) as blank:
        admin.rotate_api_key("")
    assert blank.value.error_code == ErrorCode.VALIDATION_ERROR

    with pytest.raises(AdminOperationError) as unsupported:
        admin.rotate_api_key("key")
    assert unsupported.value.error_code == ErrorCode.UNKNOWN_PROVIDER

    with pytest.raises(AdminOperationError) as unknown:
        admin.rotate_api_key("key", provider="gemini")
    assert unknown.value.error_code == ErrorCode.UNKNOWN_PROVIDER

def test_config_status_has_no_secrets_and_reports_circuit() -> None:
    admin, _ = _make_admin()

    status = admin.config_status()

    assert status["default_provider"] == "azure-openai"
    assert status["default_model"] == "gpt-4o-mini"
    assert status["fallback_model"] == "gpt-4o-mini"
    provider = status["providers"]["azure-openai"]
    assert provider["available"] is True
    assert provider["client_registered"] is True
    assert provider["models"] == ["gpt-4o-mini", "gpt-4o"]
    assert provider["circuit_state"] == "closed"
    assert status["cache"] == {"size": 0, "max_size": 10, "ttl_minutes": 5}
    assert "api_key" not in str(status)

def test_list_providers_marks_defaults() -> None:
    admin, _ = _make_admin()

    listing = admin.list_providers()

    assert listing["total_models"] == 3
    provider = listing["providers"][0]
    assert provider["id"] == "azure-openai"
    assert provider["default"] is True
    defaults = [m["id"] for m in provider["models"] if m["default"]]
    assert defaults == ["gpt-4o-mini"]
