import json

import pytest

from flarestarter.core.config import FlareStarterConfig, LoggingConfig, load_config
from flarestarter.core.exceptions import ConfigurationError, ContractNotFoundError
from flarestarter.tools.crypto.artifacts import DeploymentStore, VaultDeployment, load_artifact
from flarestarter.utils.units import (
    address_to_bytes32,
    bytes32_to_address,
    format_units,
    is_zero_bytes32,
    parse_units,
)

from conftest import make_settings


def test_yaml_config_file(tmp_path):
    path = tmp_path / "flarestarter.yaml"
    path.write_text(
        "default_network: sepolia\n"
        "coston2_composer: '0xabc'\n"
        "logging:\n"
        "  level: DEBUG\n"
    )
    config = FlareStarterConfig.from_file(path)
    assert config.default_network == "sepolia"
    assert config.coston2_composer == "0xabc"
    assert isinstance(config.logging, LoggingConfig)
    assert config.logging.level == "DEBUG"


def test_json_config_and_overrides(tmp_path, monkeypatch):
    monkeypatch.setattr("flarestarter.core.config._global_config", None)
    path = tmp_path / "flarestarter.json"
    path.write_text(json.dumps({"x402_port": 4000}))
    config = load_config(path, default_network="sepolia")
    assert config.x402_port == 4000
    assert config.default_network == "sepolia"
    assert not hasattr(config, "debug")


def test_config_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        FlareStarterConfig.from_file(tmp_path / "missing.yaml")
    ini = tmp_path / "config.ini"
    ini.write_text("[x]")
    with pytest.raises(ValueError):
        FlareStarterConfig.from_file(ini)


def test_fdc_settings_use_env_names(tmp_path, monkeypatch):
    monkeypatch.setenv("COSTON2_DA_LAYER_URL", "https://da.example/")
    monkeypatch.setenv("JQ_VERIFIER_API_KEY_TESTNET", "jq-key")
    settings = make_settings(tmp_path)
    assert settings.da_layer_url == "https://da.example/"
    assert settings.jq_verifier_api_key == "jq-key"


def test_network_rpc_overrides(tmp_path):
    settings = make_settings(tmp_path, sepolia_rpc="https://rpc.example", flare_rpc_api_key="k")
    assert settings.network("sepolia").rpc_url == "https://rpc.example"
    assert settings.network("coston2").rpc_url.endswith("?x-apikey=k")
    assert settings.network().name == "coston2"


def test_validate_credentials(tmp_path):
    report = make_settings(tmp_path, coston2_composer=None).validate_credentials()
    assert report["signer"] is True
    assert report["open_weather"] is True
    assert report["redeem_composer"] is False


def test_load_artifact_skips_debug_files(tmp_path):
    contracts = tmp_path / "artifacts" / "contracts" / "MinTempAgency.sol"
    contracts.mkdir(parents=True)
    (contracts / "MinTempAgency.dbg.json").write_text("{}")
    (contracts / "MinTempAgency.json").write_text(json.dumps({
        "contractName": "MinTempAgency",
        "sourceName": "contracts/MinTempAgency.sol",
        "abi": [{"type": "constructor", "inputs": []}],
        "bytecode": "0x6080",
    }))

    artifact = load_artifact("MinTempAgency", tmp_path / "artifacts")
    assert artifact.source_name == "contracts/MinTempAgency.sol"
    assert artifact.deployable

    with pytest.raises(ContractNotFoundError):
        load_artifact("Missing", tmp_path / "artifacts")
    with pytest.raises(ContractNotFoundError):
        load_artifact("MinTempAgency", tmp_path / "nowhere")


def test_deployment_store_persists(tmp_path):
    path = tmp_path / "records" / "deployments.json"
    store = DeploymentStore(path)
    store.set("coston2", "MinTempAgency", "0xabc")

    reloaded = DeploymentStore(path)
    assert reloaded.require("coston2", "MinTempAgency") == "0xabc"
    assert reloaded.get("sepolia", "MinTempAgency") is None
    assert reloaded.all("coston2") == {"MinTempAgency": "0xabc"}
    with pytest.raises(ContractNotFoundError):
        reloaded.require("coston2", "WeatherIdAgency")


def test_vault_deployment_validation(tmp_path):
    with pytest.raises(ConfigurationError, match="Deploy the vault first"):
        VaultDeployment.from_file(tmp_path / "deployment-addresses.json")

    path = tmp_path / "partial.json"
    path.write_text(json.dumps({"addresses": {"boringVault": "0x1"}}))
    with pytest.raises(ConfigurationError, match="teller, accountant"):
        VaultDeployment.from_file(path)

    deployment = VaultDeployment(boring_vault="0x1", teller="0x2", accountant="0x3", assets={"TUSD": "0x4"})
    with pytest.raises(ConfigurationError, match="Available: TUSD"):
        deployment.asset("FXRP")


def test_unit_helpers():
    assert parse_units("1.5", 6) == 1_500_000
    assert parse_units("0.0000019", 6) == 1
    assert format_units(1_500_000, 6) == "1.5"
    assert format_units(0, 6) == "0.0"
    assert format_units(10**20, 18) == "100.0"

    address = "0x" + "ab" * 20
    padded = address_to_bytes32(address)
    assert bytes32_to_address(padded).lower() == address
    assert is_zero_bytes32("0x" + "00" * 32)
    assert not is_zero_bytes32(padded)
    with pytest.raises(ValueError):
        address_to_bytes32("0x1234")
