"""Tests for the daemon registry error taxonomy."""

from daemon_registry.errors import (
    ConfigurationError,
    DocumentUnavailableError,
    InvalidDaemonURLError,
    RegistryError,
    StoreUnavailableError,
)


class TestRegistryError:
    """Tests for the base error."""

    def test_to_dict(self) -> None:
        error = RegistryError("registry:test/error", "boom", {"a": 1})
        assert error.to_dict() == {
            "code": "registry:test/error",
            "message": "boom",
            "details": {"a": 1},
        }
        assert str(error) == "boom"

    def test_details_default_to_empty(self) -> None:
        assert RegistryError("registry:test/error", "boom").details == {}


class TestSubclasses:
    """Codes, messages and details of the concrete errors."""

    def test_store_unavailable(self) -> None:
        error = StoreUnavailableError("announced_daemons", "put", "timeout")
        assert isinstance(error, RegistryError)
        assert error.code == "registry:store/unavailable"
        assert "announced_daemons" in error.message
        assert "timeout" in error.message
        assert error.details == {"key": "announced_daemons", "operation": "put"}

    def test_invalid_url(self) -> None:
        error = InvalidDaemonURLError("nope", "missing host")
        assert error.code == "registry:input/invalid_url"
        assert error.reason == "missing host"
        assert error.details == {"url": "nope"}

    def test_configuration(self) -> None:
        error = ConfigurationError("DAEMON_REGISTRY_HTTP_TIMEOUT", "-1", "must be positive")
        assert error.code == "registry:config/invalid"
        assert "DAEMON_REGISTRY_HTTP_TIMEOUT" in error.message

    def test_document_unavailable(self) -> None:
        error = DocumentUnavailableError("https://x.example.com/daemon.md", "HTTP 500")
        assert error.code == "registry:document/unavailable"
        assert error.to_dict()["details"] == {"url": "https://x.example.com/daemon.md"}
