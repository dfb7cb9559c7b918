import pytest

from flarestarter.core.exceptions import ConfigurationError
from flarestarter.main import FlareStarter
from flarestarter.tools import get_all_tools
from flarestarter.tools.crypto import (
    FAssetsTool,
    FlareTool,
    OFTBridgeTool,
    PriceFeedAdapterTool,
    WeatherInsuranceTool,
)


@pytest.mark.asyncio
async def test_create_tools_share_one_chain_tool(settings):
    starter = FlareStarter(config=settings)
    tools = await starter.create_tools(["flare", "bridge", "adapters", "insurance"], network="coston2")

    assert isinstance(tools["flare"], FlareTool)
    assert isinstance(tools["bridge"], OFTBridgeTool)
    assert tools["bridge"].flare is tools["flare"]
    assert tools["adapters"].flare is tools["flare"]
    assert tools["flare"].analytics is starter.analytics
    assert tools["flare"].config.chain_id == 114
    assert starter.get_analytics()["total_transactions"] == 0


@pytest.mark.asyncio
async def test_create_tools_rejects_unknown_and_unconfigured(settings):
    starter = FlareStarter(config=settings)
    with pytest.raises(ValueError, match="Unknown tool type"):
        await starter.create_tools(["dex"])
    with pytest.raises(ConfigurationError):
        await starter.create_tools(["vault"])


def test_unknown_network_is_a_configuration_error(settings):
    with pytest.raises(ConfigurationError):
        FlareStarter(config=settings).flare("mars")


def test_get_all_tools(flare, settings, monkeypatch):
    monkeypatch.setattr("flarestarter.core.config._global_config", settings)
    tools = get_all_tools(flare)
    assert tools[0] is flare
    assert [type(t) for t in tools[1:]] == [
        OFTBridgeTool, FAssetsTool, PriceFeedAdapterTool, WeatherInsuranceTool,
    ]
    assert tools[4].fdc.flare is flare


@pytest.mark.asyncio
async def test_command_errors_become_strings(flare):
    assert await flare._arun("chain_id") == "Chain ID: 114"
    assert await flare._arun("") == "Empty command. Use: balance [address] | chain_id | code_size <address>"
    assert (await flare._arun("code_size")).startswith("Chain error: ")
    with pytest.raises(NotImplementedError, match="only supports async"):
        flare._run("chain_id")
