"""
Unit tests for hierarchical CLI configuration.
"""

import json

import pytest
import yaml

from cli.config import ConfigurationManager


@pytest.fixture
def manager_factory(tmp_path):
    def build(config_file=None, profile=None, environ=None, search_paths=None):
        return ConfigurationManager(
            config_file=config_file,
            profile=profile,
            search_paths=search_paths if search_paths is not None else [tmp_path / ".ftgov.yml"],
            environ=environ or {},
        )
    return build


class TestConfigurationManager:
    """Test configuration layering."""

    def test_defaults(self, manager_factory):
        manager = manager_factory()

        assert manager.get("rpc.url") == "http://localhost:26657"
        assert manager.get("governance.require_ownership_approval") is False
        assert manager.get_sources() == ["defaults"]

    def test_missing_key_default(self, manager_factory):
        assert manager_factory().get("rpc.nope", "fallback") == "fallback"

    def test_profile(self, manager_factory):
        manager = manager_factory(profile="production")

        assert manager.get("rpc.timeout") == 60
        assert manager.get("governance.require_ownership_approval") is True
        assert manager.get_sources() == ["defaults", "profile:production"]

    def test_unknown_profile(self, manager_factory):
        with pytest.raises(ValueError):
            manager_factory(profile="moon").load()

    def test_yaml_file_overrides_profile(self, manager_factory, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text(yaml.safe_dump({"rpc": {"timeout": 90}}))

        manager = manager_factory(config_file=str(path), profile="production")

        assert manager.get("rpc.timeout") == 90
        assert manager.get("rpc.max_retries") == 5

    def test_json_file(self, manager_factory, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"cli": {"output_format": "json"}}))

        assert manager_factory(config_file=str(path)).get("cli.output_format") == "json"

    def test_missing_explicit_file(self, manager_factory, tmp_path):
        with pytest.raises(FileNotFoundError):
            manager_factory(config_file=str(tmp_path / "missing.yml")).load()

    def test_search_path(self, manager_factory, tmp_path):
        (tmp_path / ".ftgov.yml").write_text("rpc:\n  url: https://found.example\n")
        assert manager_factory().get("rpc.url") == "https://found.example"

    def test_non_mapping_file(self, manager_factory, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            manager_factory(config_file=str(path)).load()

    def test_environment_overrides_file(self, manager_factory, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text(yaml.safe_dump({"rpc": {"max_retries": 1}}))
        environ = {
            "FTGOV_RPC_MAX_RETRIES": "7",
            "FTGOV_GOVERNANCE_PROPOSERS": "ftg1aa, ftg1bb",
            "FTGOV_GOVERNANCE_REQUIRE_OWNERSHIP_APPROVAL": "yes",
            "FTGOV_UNKNOWN_THING": "1",
            "OTHER_VAR": "x",
        }

        manager = manager_factory(config_file=str(path), environ=environ)

        assert manager.get("rpc.max_retries") == 7
        assert manager.get("governance.proposers") == ["ftg1aa", "ftg1bb"]
        assert manager.get("governance.require_ownership_approval") is True
        assert "unknown" not in manager.load()
        assert manager.get_sources()[-1] == "environment"

    def test_set_and_save(self, manager_factory, tmp_path):
        manager = manager_factory()
        manager.set("rpc.url", "https://saved.example")
        target = tmp_path / "out" / "config.yml"

        manager.save(str(target))

        assert yaml.safe_load(target.read_text())["rpc"]["url"] == "https://saved.example"

    def test_expand_paths(self, manager_factory, tmp_path):
        environ = {"FTGOV_SIGNER_KEY_FILE": "~/keys/issuer.hex"}
        manager = manager_factory(environ=environ)
        assert not manager.get("signer.key_file").startswith("~")

    def test_reset(self, manager_factory):
        manager = manager_factory()
        manager.set("rpc.url", "https://changed.example")
        manager.reset()
        assert manager.get("rpc.url") == "http://localhost:26657"


class TestConfigValidation:
    """Test configuration validation and conversion."""

    def test_defaults_are_valid(self, manager_factory):
        assert manager_factory().validate() == []

    def test_invalid_values(self, manager_factory):
        environ = {
            "FTGOV_RPC_URL": "ftp://node",
            "FTGOV_RPC_TIMEOUT": "0",
            "FTGOV_CLI_OUTPUT_FORMAT": "xml",
            "FTGOV_GOVERNANCE_RELAYERS": "single",
        }
        errors = manager_factory(environ=environ).validate()

        assert len(errors) == 4
        assert any("RPC url" in error for error in errors)
        assert any("relayers" in error for error in errors)

    def test_rpc_config(self, manager_factory):
        environ = {"FTGOV_RPC_TOKEN": "secret", "FTGOV_RPC_URL": "https://node.example"}
        rpc_config = manager_factory(environ=environ).rpc_config()

        assert rpc_config.url == "https://node.example"
        assert rpc_config.headers["Authorization"] == "Bearer secret"

    def test_governance_roles(self, manager_factory):
        environ = {"FTGOV_GOVERNANCE_RELAYERS": "ftg1aa,ftg1bb"}
        roles = manager_factory(profile="testnet", environ=environ).governance_roles()

        assert roles.relayers == frozenset({"ftg1aa", "ftg1bb"})
        assert roles.is_relayer("ftg1aa")
        assert not roles.is_relayer("ftg1cc")
        assert roles.require_ownership_approval is True
