"""Tests for environment-driven settings."""

from quoter.config import Settings


class TestFromEnv:
    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.port == 3000
        assert settings.chain_id == 1
        assert settings.rpc_url == "http://localhost:8545"
        assert settings.tenderly_access_key == ""

    def test_chain_specific_rpc_url(self):
        settings = Settings.from_env({"CHAIN_ID": "10", "RPC_URL_10": "http://optimism.test"})

        assert settings.chain_id == 10
        assert settings.rpc_url == "http://optimism.test"

    def test_rpc_url_wins(self):
        settings = Settings.from_env({"RPC_URL": "http://a.test", "RPC_URL_1": "http://b.test"})
        assert settings.rpc_url == "http://a.test"

    def test_flags_and_level(self):
        settings = Settings.from_env(
            {"QUOTER_DEBUG": "Yes", "QUOTER_LOG_JSON": "0", "QUOTER_LOG_LEVEL": "debug"}
        )

        assert settings.debug is True
        assert settings.log_json is False
        assert settings.log_level == "DEBUG"

    def test_tenderly_credentials(self):
        settings = Settings.from_env(
            {"TENDERLY_USER": "u", "TENDERLY_PROJECT": "p", "TENDERLY_ACCESS_KEY": "k"}
        )

        assert (settings.tenderly_user, settings.tenderly_project) == ("u", "p")
        assert settings.tenderly_access_key == "k"
