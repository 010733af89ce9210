from unittest import mock

from model_autoconfig import Capability, CohereChatOptions, ModelRegistry


def test_first_registration_wins():
    registry = ModelRegistry()
    options = CohereChatOptions()
    first = registry.register(Capability.CHAT, "client-a", options, provider="a")
    second = registry.register(Capability.CHAT, "client-b", options, provider="b")

    assert second is first
    assert registry.get(Capability.CHAT).client == "client-a"
    assert registry.is_registered(Capability.CHAT)
    assert not registry.is_registered(Capability.EMBEDDING)


def test_clear_allows_reassembly():
    registry = ModelRegistry()
    registry.register(Capability.EMBEDDING, "client", CohereChatOptions(), provider="a")
    registry.clear()

    assert registry.registrations() == []
    assert registry.get(Capability.EMBEDDING) is None


def test_clear_closes_each_shared_client_once():
    api = mock.Mock()
    chat = mock.Mock(api=api)
    embedding = mock.Mock(api=api)
    registry = ModelRegistry()
    registry.register(Capability.CHAT, chat, CohereChatOptions(), provider="a")
    registry.register(Capability.EMBEDDING, embedding, CohereChatOptions(), provider="a")

    registry.clear()

    api.close.assert_called_once_with()
    assert registry.registrations() == []


def test_clear_can_leave_clients_open():
    api = mock.Mock()
    registry = ModelRegistry()
    registry.register(Capability.CHAT, mock.Mock(api=api), CohereChatOptions(), provider="a")

    registry.clear(close_clients=False)

    api.close.assert_not_called()
    assert not registry.is_registered(Capability.CHAT)
