import pytest
from eth_abi import decode

from flarestarter.core.exceptions import ConfigurationError, InsufficientBalanceError
from flarestarter.tools.crypto.oft_bridge import (
    COMPOSE_GAS,
    DEFAULT_UNDERLYING_ADDRESS,
    OFTBridgeTool,
    build_send_param,
    encode_redeem_compose_msg,
)
from flarestarter.utils.units import address_to_bytes32

from conftest import FakeContract, TEST_ADDRESS, make_settings

OFT = "0x" + "11" * 20
TOKEN = "0x" + "22" * 20
COMPOSER = "0x" + "33" * 20
PEER = "0x" + "44" * 20


def test_build_send_param_pads_recipient():
    param = build_send_param(40161, PEER, 1_000_000)
    assert param[0] == 40161
    assert param[1] == b"\x00" * 12 + bytes.fromhex("44" * 20)
    assert param[2] == param[3] == 1_000_000
    assert param[4:] == (b"", b"", b"")


def test_build_send_param_rejects_zero_amount():
    with pytest.raises(ValueError):
        build_send_param(40161, PEER, 0)


def test_redeem_compose_msg_decodes():
    msg = encode_redeem_compose_msg(10_000_000, DEFAULT_UNDERLYING_ADDRESS, TEST_ADDRESS)
    amount, underlying, redeemer = decode(["uint256", "string", "address"], msg)
    assert amount == 10_000_000
    assert underlying == DEFAULT_UNDERLYING_ADDRESS
    assert redeemer.lower() == TEST_ADDRESS.lower()


@pytest.mark.asyncio
async def test_scan_peers_collects_peers_and_errors(flare, settings):
    def peers(eid):
        if eid == 40161:
            return address_to_bytes32(PEER)
        if eid == 40102:
            raise RuntimeError("rpc unavailable")
        return b"\x00" * 32

    flare.add_contract(FakeContract(OFT, reads={"peers": peers}))
    tool = OFTBridgeTool(flare, settings)

    result = await tool.scan_peers(OFT, endpoints=[("Bsc", 40102), ("Sepolia", 40161), ("Celo", 40125)])

    assert result.scanned == 3
    assert result.routes == ["Sepolia"]
    assert result.peers[0].peer.lower() == PEER
    assert result.errors[0]["eid"] == 40102
    assert "| Sepolia | 40161 |" in result.to_markdown_table()


@pytest.mark.asyncio
async def test_bridge_requires_configured_adapter(flare, tmp_path):
    tool = OFTBridgeTool(flare, make_settings(tmp_path, coston2_oft_adapter=""))
    with pytest.raises(ConfigurationError):
        await tool.bridge(1_000_000, 40161)


@pytest.mark.asyncio
async def test_bridge_approves_then_sends(flare, tmp_path):
    flare.add_contract(FakeContract(TOKEN, reads={"balanceOf": 5_000_000}))
    flare.add_contract(FakeContract(OFT, reads={"token": TOKEN, "quoteSend": (123, 0)}))
    tool = OFTBridgeTool(flare, make_settings(tmp_path, coston2_oft_adapter=OFT))

    result = await tool.bridge(2_000_000, 40161)

    assert [tx.fn_name for tx in flare.sent] == ["approve", "send"]
    assert flare.sent[0].args == (OFT, 2_000_000)
    send = flare.sent[1]
    assert send.value == 123
    send_param, fee, refund = send.args
    assert send_param[0] == 40161
    assert fee == (123, 0)
    assert refund == TEST_ADDRESS
    assert result.approval is not None
    assert result.layerzero_scan_url.startswith("https://testnet.layerzeroscan.com/tx/")


@pytest.mark.asyncio
async def test_bridge_fails_on_insufficient_balance(flare, tmp_path):
    flare.add_contract(FakeContract(TOKEN, reads={"balanceOf": 10}))
    flare.add_contract(FakeContract(OFT, reads={"token": TOKEN}))
    tool = OFTBridgeTool(flare, make_settings(tmp_path, coston2_oft_adapter=OFT))

    with pytest.raises(InsufficientBalanceError):
        await tool.bridge(2_000_000, 40161)
    assert flare.sent == []


@pytest.mark.asyncio
async def test_send_and_redeem_requires_composer(flare, tmp_path):
    tool = OFTBridgeTool(flare, make_settings(tmp_path, coston2_composer=""))
    with pytest.raises(ConfigurationError):
        await tool.send_and_redeem(1_000_000)


@pytest.mark.asyncio
async def test_send_and_redeem_targets_composer_with_compose_option(flare, tmp_path):
    flare.add_contract(FakeContract(OFT, reads={"quoteSend": (500, 7), "balanceOf": 50_000_000}))
    settings = make_settings(tmp_path, sepolia_fxrp_oft=OFT, coston2_composer=COMPOSER)
    tool = OFTBridgeTool(flare, settings)

    result = await tool.send_and_redeem(10_000_000, "rXRPaddress")

    send = flare.writes_to("send")[0]
    send_param, fee, _ = send.args
    assert send_param[0] == 40294
    assert send_param[1] == address_to_bytes32(COMPOSER)
    assert format(COMPOSE_GAS, "032x") in send_param[4].hex()
    amount, underlying, _ = decode(["uint256", "string", "address"], send_param[5])
    assert (amount, underlying) == (10_000_000, "rXRPaddress")
    assert fee == (500, 7)
    assert send.value == 500
    assert result.dst_eid == 40294


@pytest.mark.asyncio
async def test_arun_reports_errors_as_text(flare, tmp_path):
    tool = OFTBridgeTool(flare, make_settings(tmp_path, coston2_composer=""))
    assert (await tool._arun("send_and_redeem 1")).startswith("Bridge error:")
    assert await tool._arun("bridge 1") == "Invalid command format. Use: bridge <amount> <dst_network> [recipient]"
    assert await tool._arun("fly") == "Unknown action: fly"


@pytest.mark.asyncio
async def test_deploy_composer_uses_network_config(flare, settings):
    tool = OFTBridgeTool(flare, settings)
    address = await tool.deploy_redeem_composer()
    name, args = flare.deployed[0]
    assert name == "FAssetRedeemComposer"
    assert args[0] == "0x6EDCE65403992e310A62460808c4b910D972f10f"
    assert address is not None
