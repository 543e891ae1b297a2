"""Tests for configuration loading and validation."""

from decimal import Decimal

import pytest

from dexarb.config import Config, get_config
from dexarb.core.errors import ConfigurationError


class TestDefaults:
    """Built-in defaults."""

    def test_default_values(self):
        config = Config()

        assert config.gas.price_multiplier == Decimal("1.2")
        assert config.gas.max_gas_price_gwei == Decimal("100")
        assert config.evaluator.min_profit_threshold == Decimal("30")
        assert config.monitor.interval_sec == 30
        assert config.venues["VENUE_A"].name == "UNISWAP_V3"
        assert config.venues["VENUE_B"].name == "SUSHISWAP_V3"
        assert config.monitor.targets[0].amount_in == Decimal("1")

    def test_config_is_immutable(self):
        config = Config()

        with pytest.raises(Exception):
            config.gas = None

    def test_get_venue(self):
        config = Config()

        assert config.get_venue("VENUE_A").fee_tiers == [500, 3000, 10000]
        with pytest.raises(ConfigurationError):
            config.get_venue("VENUE_X")


class TestValidation:
    """Invalid settings surface as ConfigurationError."""

    @pytest.mark.parametrize("data", [
        {"gas": {"price_multiplier": "0"}},
        {"gas": {"price_multiplier": "-1.2"}},
        {"gas": {"max_gas_price_gwei": "0"}},
        {"gas": {"max_gas_price_gwei": "0.0000000001"}},
        {"price_oracle": {"max_age_sec": 0}},
        {"broadcast": {"send_timeout_sec": 0}},
        {"evaluator": {"min_profit_threshold": "-1"}},
        {"evaluator": {"venue_b": "VENUE_C"}},
        {"monitor": {"interval_sec": 10, "cycle_timeout_sec": 10}},
        {"monitor": {"targets": [{"token_in": "0x1", "token_out": "0x2", "amount_in": "0"}]}},
        {"venues": {"VENUE_A": {"name": "A", "quoter": "0x1", "router": "0x2", "fee_tiers": []}}},
        {"price_oracle": {"source": "static"}},
        {"price_oracle": {"source": "coingecko"}},
        {"logging": {"level": "LOUD"}},
    ])
    def test_invalid(self, data):
        with pytest.raises(ConfigurationError):
            Config.from_dict(data)

    def test_non_mapping_root(self):
        with pytest.raises(ConfigurationError):
            Config.from_dict(["not", "a", "mapping"])

    def test_log_level_normalized(self):
        assert Config.from_dict({"logging": {"level": "debug"}}).logging.level == "DEBUG"

    def test_one_wei_gas_cap_accepted(self):
        config = Config.from_dict({"gas": {"max_gas_price_gwei": "0.000000001"}})

        assert config.gas.max_gas_price_gwei == Decimal("0.000000001")


class TestLoadFromFile:
    """YAML loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            get_config(str(tmp_path / "absent.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("chain: [unclosed\n")

        with pytest.raises(ConfigurationError):
            get_config(str(path))

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEXARB_TEST_RPC", "https://rpc.example.org")
        path = tmp_path / "config.yaml"
        path.write_text(
            "chain:\n"
            "  rpc_url: \"${DEXARB_TEST_RPC}\"\n"
            "gas:\n"
            "  price_multiplier: \"1.5\"\n"
            "monitor:\n"
            "  interval_sec: 60\n"
            "  cycle_timeout_sec: 45\n"
        )

        config = get_config(str(path))

        assert config.chain.rpc_url == "https://rpc.example.org"
        assert config.gas.price_multiplier == Decimal("1.5")
        assert config.monitor.cycle_timeout_sec == 45

    def test_unset_env_variable(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DEXARB_UNSET_RPC", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "# ${DEXARB_IN_COMMENT} is ignored\n"
            "chain:\n"
            "  rpc_url: \"${DEXARB_UNSET_RPC}\"\n"
        )

        with pytest.raises(ConfigurationError, match="DEXARB_UNSET_RPC") as exc_info:
            get_config(str(path))

        assert "DEXARB_IN_COMMENT" not in str(exc_info.value)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert get_config(str(path)).evaluator.venue_a == "VENUE_A"
