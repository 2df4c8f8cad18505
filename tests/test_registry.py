"""Tests for ToolRegistry."""

import pytest

from companion.tools import registry as registry_mod
from companion.tools.life import default_tools
from companion.tools.registry import ToolRegistry
from tests.mock_providers import MockProvider
from tests.mock_tools import BrokenTool, EchoTool, SlowTool


class TestToolRegistry:
    """Test suite for ToolRegistry."""

    def test_register_and_get(self):
        reg = ToolRegistry()
        tool = EchoTool()
        reg.register(tool)
        assert reg.get("echo") is tool

    def test_get_returns_none_for_unknown(self):
        assert ToolRegistry().get("nonexistent") is None

    def test_require_raises_keyerror_for_unknown(self):
        with pytest.raises(KeyError, match="nonexistent"):
            ToolRegistry().require("nonexistent")

    def test_duplicate_registration_raises_valueerror(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        with pytest.raises(ValueError, match="already registered"):
            reg.register(EchoTool())

    def test_duplicate_registration_with_overwrite(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        tool2 = EchoTool()
        reg.register(tool2, overwrite=True)
        assert reg.get("echo") is tool2

    def test_list_sorted_by_name(self):
        reg = ToolRegistry()
        for tool in (SlowTool(), EchoTool(), BrokenTool()):
            reg.register(tool)
        assert reg.names() == ["broken", "echo", "slow"]
        assert len(reg) == 3

    def test_label_for(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        reg.register(SlowTool())
        assert reg.label_for("echo") == "Echo"
        assert reg.label_for("slow") == "slow"
        assert reg.label_for("missing") == "missing"

    def test_openai_schema(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        [schema] = reg.to_openai_schema()
        assert schema["type"] == "function"
        fn = schema["function"]
        assert fn["name"] == "echo"
        assert fn["parameters"]["required"] == ["message"]
        assert fn["parameters"]["additionalProperties"] is False

    def test_default_life_tools(self):
        reg = ToolRegistry()
        for tool in default_tools(MockProvider()):
            reg.register(tool)
        assert reg.names() == ["create_plan", "generate_diary"]
        assert reg.label_for("generate_diary") == "Generate diary"


class _FakeEntryPoint:
    def __init__(self, name, cls, dist_name="companion-extras"):
        self.name = name
        self._cls = cls
        self.dist = type("Dist", (), {"name": dist_name})()

    def load(self):
        return self._cls


class _NeedsProvider(EchoTool):
    def __init__(self, provider):
        self.provider = provider

    @property
    def name(self) -> str:
        return "needs_provider"


class TestPlugins:
    def test_disabled_loads_nothing(self, monkeypatch):
        monkeypatch.setattr(registry_mod, "entry_points", lambda group: [_FakeEntryPoint("echo", EchoTool)])
        reg = ToolRegistry()
        assert reg.load_plugins(enabled=False) == 0
        assert len(reg) == 0

    def test_loads_and_injects_provider(self, monkeypatch):
        eps = [_FakeEntryPoint("echo", EchoTool), _FakeEntryPoint("needs_provider", _NeedsProvider)]
        monkeypatch.setattr(registry_mod, "entry_points", lambda group: eps)
        provider = MockProvider()
        reg = ToolRegistry()
        assert reg.load_plugins(enabled=True, provider=provider) == 2
        assert reg.require("needs_provider").provider is provider

    def test_allow_lists(self, monkeypatch):
        eps = [
            _FakeEntryPoint("echo", EchoTool),
            _FakeEntryPoint("slow", SlowTool, dist_name="untrusted"),
        ]
        monkeypatch.setattr(registry_mod, "entry_points", lambda group: eps)
        reg = ToolRegistry()
        assert reg.load_plugins(enabled=True, allow_distributions={"companion-extras"}) == 1
        assert reg.names() == ["echo"]

        reg = ToolRegistry()
        assert reg.load_plugins(enabled=True, allow_tools={"slow"}) == 1
        assert reg.names() == ["slow"]
