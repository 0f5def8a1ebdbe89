"""Tests for config/ (deployment files, settings and network profiles).

Tests for deployment file loading, fixed-point parsing and merging with
CHAINPLAN_* settings.
"""

from pathlib import Path

import pytest
import yaml
from chainplan.config import (
    UNIT,
    ConfigLoader,
    ProvisioningConfig,
    Settings,
    get_config_path,
    get_network,
    load_config,
    parse_fixed_point,
)
from chainplan.config.deployment import parse_integer
from chainplan.config.loader import override_retry
from chainplan.core.errors import ConfigurationError


@pytest.fixture
def deploy_yaml(tmp_path):
    path = tmp_path / "deploy.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "network": "scrollSepolia",
                "submitting_identity": "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266",
                "retry": {"max_attempts": 5},
                "initial_parameters": {"mint_ratio": "0.25", "base_token_cap": "500"},
                "references": {"base_token": "0x5300000000000000000000000000000000000004"},
                "tokens": {"synthetic": {"name": "Test USD", "symbol": "tUSD"}},
                "explorer": {"api_key": "secret", "enabled": True},
            }
        )
    )
    return path


class TestParseFixedPoint:
    """Tests for parse_fixed_point."""

    def test_integer_is_already_scaled(self):
        assert parse_fixed_point(123, "x") == 123

    def test_decimal_string(self):
        assert parse_fixed_point("0.5", "x") == UNIT // 2

    def test_float(self):
        assert parse_fixed_point(0.25, "x") == UNIT // 4

    def test_whole_number_string(self):
        assert parse_fixed_point("1000000", "x") == 1_000_000 * UNIT

    def test_too_many_decimals(self):
        with pytest.raises(ConfigurationError):
            parse_fixed_point("0.0000000000000000001", "x")

    def test_not_a_number(self):
        with pytest.raises(ConfigurationError):
            parse_fixed_point("half", "x")

    def test_bool_is_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_fixed_point(True, "x")


class TestGetConfigPath:
    def test_explicit_path(self, deploy_yaml):
        assert get_config_path(deploy_yaml) == deploy_yaml

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(ConfigurationError):
            get_config_path(tmp_path / "missing.yaml")

    def test_project_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        project = tmp_path / ".chainplan" / "deploy.yaml"
        project.parent.mkdir()
        project.write_text("network: hardhat\n")

        assert get_config_path() == Path.cwd() / ".chainplan" / "deploy.yaml"


class TestConfigLoader:
    """Tests for ConfigLoader merging."""

    def test_values_from_file(self, deploy_yaml):
        config = ConfigLoader(deploy_yaml, settings=Settings()).load()

        assert config.network == "scrollSepolia"
        assert config.chain_id == 534351
        assert config.network_endpoint == get_network("scrollSepolia").rpc_url
        assert config.retry.max_attempts == 5
        assert config.initial_parameters.mint_ratio == UNIT // 4
        assert config.initial_parameters.base_token_cap == 500 * UNIT
        assert config.tokens.synthetic_symbol == "tUSD"
        assert config.tokens.leveraged_symbol == "xJETH"

    def test_explorer_from_network_profile(self, deploy_yaml):
        config = ConfigLoader(deploy_yaml, settings=Settings()).load()

        assert config.explorer.api_url == "https://api-sepolia.scrollscan.com/api"
        assert config.explorer.api_key == "secret"
        assert config.explorer.enabled
        assert "api_key" not in config.explorer.to_dict()

    def test_network_override(self, deploy_yaml):
        config = ConfigLoader(deploy_yaml, settings=Settings()).load("hardhat")

        assert config.network == "hardhat"
        assert config.chain_id == 31337

    def test_defaults_without_file(self):
        config = ConfigLoader(None, settings=Settings()).load()

        assert config.network == "hardhat"
        assert config.network_endpoint == "http://127.0.0.1:8545"
        assert config.retry.max_attempts == 3
        assert config.initial_parameters.mint_ratio == UNIT // 2
        assert config.platform_address is None

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("CHAINPLAN_RPC_URL", "http://node:8545")
        monkeypatch.setenv("CHAINPLAN_MAX_ATTEMPTS", "7")
        monkeypatch.setenv("CHAINPLAN_SUBMITTING_IDENTITY", "0xabc")

        config = ConfigLoader(None, settings=Settings()).load()

        assert config.network_endpoint == "http://node:8545"
        assert config.retry.max_attempts == 7
        assert config.platform_address == "0xabc"

    def test_unknown_network(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader(None, settings=Settings()).load("mainnet")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "deploy.yaml"
        path.write_text("network: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(path, settings=Settings()).load()

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "deploy.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(path, settings=Settings()).load()

    def test_load_config(self, deploy_yaml):
        config = load_config(deploy_yaml)

        assert isinstance(config, ProvisioningConfig)
        assert config.network == "scrollSepolia"


class TestProvisioningConfig:
    def test_round_trip(self, deploy_yaml):
        config = ConfigLoader(deploy_yaml, settings=Settings()).load()

        restored = ProvisioningConfig.from_dict(config.to_dict())

        assert restored.initial_parameters == config.initial_parameters
        assert restored.retry == config.retry
        assert restored.references == config.references

    def test_platform_defaults_to_identity(self):
        config = ProvisioningConfig(submitting_identity="0xabc")

        assert config.platform_address == "0xabc"
        config.platform = "0xdef"
        assert config.platform_address == "0xdef"

    def test_override_retry(self):
        config = override_retry(ProvisioningConfig(), max_attempts=4, base_backoff=None)

        assert config.retry.max_attempts == 4
        assert config.retry.base_backoff == 1.0

    def test_override_rejects_bad_values(self):
        with pytest.raises(ConfigurationError):
            override_retry(ProvisioningConfig(), max_attempts=0)


class TestParseInteger:
    def test_integer_and_string(self):
        assert parse_integer(300, "ema_sample_interval") == 300
        assert parse_integer("534351", "chain_id") == 534351

    @pytest.mark.parametrize("value", ["abc", None, 1.5, True, [1]])
    def test_rejected(self, value):
        with pytest.raises(ConfigurationError):
            parse_integer(value, "ema_sample_interval")


class TestInvalidDeploymentValues:
    """Malformed values surface as configuration errors, not tracebacks."""

    def test_unquoted_address(self, tmp_path):
        path = tmp_path / "deploy.yaml"
        path.write_text(
            "network: hardhat\n"
            "references:\n"
            "  base_token: 0x5300000000000000000000000000000000000004\n"
        )

        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader(path, settings=Settings()).load()

        assert exc_info.value.details["value"] == "0x5300000000000000000000000000000000000004"

    def test_unquoted_identity(self):
        with pytest.raises(ConfigurationError):
            ProvisioningConfig.from_dict({"submitting_identity": 0xF39FD6E51AAD88F6F4CE6AB8827279CFFFB92266})

    def test_non_numeric_interval(self):
        with pytest.raises(ConfigurationError):
            ProvisioningConfig.from_dict({"initial_parameters": {"ema_sample_interval": "abc"}})

    def test_non_numeric_retry(self):
        with pytest.raises(ConfigurationError):
            ProvisioningConfig.from_dict({"retry": {"max_attempts": "x"}})

    def test_bare_integer_cap_is_base_units(self):
        config = ProvisioningConfig.from_dict({"initial_parameters": {"base_token_cap": 1000000}})

        assert config.initial_parameters.base_token_cap == 1000000

    def test_quoted_cap_is_whole_tokens(self):
        config = ProvisioningConfig.from_dict({"initial_parameters": {"base_token_cap": "1000000"}})

        assert config.initial_parameters.base_token_cap == 1000000 * UNIT
