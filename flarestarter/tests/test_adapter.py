import pytest

from flarestarter.core.plugin import PluginRegistry
from flarestarter.core.types import ToolCapability
from flarestarter.tools.adapters import FlareToolRegistry, ModernFlareTool

from conftest import FakeContract, TEST_PRIVATE_KEY

ADAPTER = "0x" + "ad" * 20


@pytest.fixture
def unified(flare, settings):
    return ModernFlareTool({"settings": settings, "flare_tool": flare})


@pytest.mark.asyncio
async def test_status_reports_network(unified):
    response = await unified.execute("status")
    assert response.success
    assert response.data["network"] == "coston2"
    assert response.data["eid"] == 40294
    assert response.data["transactions"]["total_transactions"] == 0


@pytest.mark.asyncio
async def test_empty_and_unknown_commands_fail(unified):
    empty = await unified.execute("   ")
    assert not empty.success
    assert empty.error == "Empty command"

    unknown = await unified.execute("teleport 5")
    assert not unknown.success
    assert "bridge" in unknown.metadata["available_actions"]


@pytest.mark.asyncio
async def test_area_without_subcommand_returns_help(unified):
    response = await unified.execute("adapter")
    assert not response.success
    assert response.error == "Missing adapters command"
    assert "read <chainlink|pyth|api3>" in response.metadata["help"]


@pytest.mark.asyncio
async def test_area_command_is_routed_and_logged(unified, flare):
    flare.add_contract(FakeContract(ADAPTER, reads={"read": (0, 0)}))

    response = await unified.execute(f"feed read api3 {ADAPTER}")

    assert response.success
    assert response.data == {"result": "No data has been cached yet."}
    assert flare.analytics.interactions[-1]["command"] == f"adapters read api3 {ADAPTER}"
    assert sorted(unified.tools) == ["adapters"]


@pytest.mark.asyncio
async def test_tool_errors_become_failed_responses(unified):
    response = await unified.execute("adapter read api3")
    assert not response.success
    assert response.error.startswith("Invalid command format")

    vault = await unified.execute("vault info")
    assert not vault.success
    assert "Deploy the vault first" in vault.error


@pytest.mark.asyncio
async def test_chain_queries(unified):
    response = await unified.execute("balance")
    assert response.success
    assert "1 C2FLR" in response.message


def test_validate_command(unified):
    assert unified.validate_command("bridge peers")
    assert unified.validate_command("STATUS")
    assert not unified.validate_command("")
    assert not unified.validate_command("launch")


def test_registry_validates_config():
    assert FlareToolRegistry.validate_config({"private_key": TEST_PRIVATE_KEY, "network": "coston2"})[0]
    assert FlareToolRegistry.validate_config({"private_key": TEST_PRIVATE_KEY[2:]})[0]
    assert FlareToolRegistry.validate_config({}) == (False, "Missing required field: private_key")
    assert FlareToolRegistry.validate_config({"private_key": "0x1234"}) == (False, "Invalid private key format")
    assert FlareToolRegistry.validate_config({"private_key": "0x" + "zz" * 32})[1] == "Invalid private key format"
    assert FlareToolRegistry.validate_config(
        {"private_key": TEST_PRIVATE_KEY, "network": "mars"}
    ) == (False, "Unsupported network: mars")
    assert FlareToolRegistry.get_default_config()["network"] == "coston2"


def test_plugin_registry_indexes_capabilities():
    registry = PluginRegistry()
    registry.register(ModernFlareTool)

    assert registry.get_plugin("FlareTool") is ModernFlareTool
    assert registry.get_plugins_by_capability(ToolCapability.PAYMENTS) == [ModernFlareTool]
    assert registry.metadata["FlareTool"].version == "0.1.0"


@pytest.mark.asyncio
async def test_network_without_endpoint_is_a_failed_bridge_command(unified):
    response = await unified.execute("bridge quote 1 coston")
    assert not response.success
    assert response.error == "Bridge error: Network coston has no LayerZero endpoint id"


@pytest.mark.asyncio
async def test_empty_chain_command_is_a_failed_response(unified, flare):
    assert await flare._arun("") == "Empty command. Use: balance [address] | chain_id | code_size <address>"
    response = unified._to_response(await flare._arun(""), "flare", "")
    assert not response.success
