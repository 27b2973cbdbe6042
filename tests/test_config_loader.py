"""Tests for ConfigLoader."""

import yaml

from peer_discovery.config.config_loader import ConfigLoader, DiscoveryConfig


def write_config(directory, data):
    path = directory / "discovery_config.yml"
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


class TestConfigLoader:

    def test_bundled_config_matches_defaults(self):
        assert ConfigLoader().load_discovery_config() == DiscoveryConfig()

    def test_missing_file_uses_defaults(self, tmp_path):
        assert ConfigLoader(str(tmp_path)).load_discovery_config() == DiscoveryConfig()

    def test_values_loaded(self, tmp_path):
        write_config(tmp_path, {"discovery": {
            "port": 5000,
            "timeout": 0.2,
            "concurrency_limit": 128,
            "address_filter": "prefix",
            "prefixes": ["10.0."],
            "exclude_reserved": True,
            "exclude_local_addresses": True,
            "min_mask_bits": 20,
            "deadline": 30,
            "verbose": True,
        }})

        config = ConfigLoader(str(tmp_path)).load_discovery_config()

        assert config == DiscoveryConfig(
            port=5000,
            timeout=0.2,
            concurrency_limit=128,
            address_filter="prefix",
            prefixes=["10.0."],
            exclude_reserved=True,
            exclude_local_addresses=True,
            min_mask_bits=20,
            deadline=30.0,
            verbose=True,
        )

    def test_partial_config_keeps_other_defaults(self, tmp_path):
        write_config(tmp_path, {"discovery": {"port": 6000}})

        config = ConfigLoader(str(tmp_path)).load_discovery_config()

        assert config.port == 6000
        assert config.timeout == 0.5
        assert config.concurrency_limit == 64

    def test_invalid_values_fall_back(self, tmp_path):
        write_config(tmp_path, {"discovery": {
            "port": 70000,
            "timeout": -1,
            "concurrency_limit": "many",
            "address_filter": "public",
            "prefixes": 42,
            "exclude_reserved": "yes",
            "min_mask_bits": 40,
            "deadline": "soon",
        }})

        config = ConfigLoader(str(tmp_path)).load_discovery_config()

        assert config == DiscoveryConfig()

    def test_single_prefix_string(self, tmp_path):
        write_config(tmp_path, {"discovery": {"prefixes": "172.16."}})

        assert ConfigLoader(str(tmp_path)).load_discovery_config().prefixes == ["172.16."]

    def test_min_mask_bits_can_be_disabled(self, tmp_path):
        write_config(tmp_path, {"discovery": {"min_mask_bits": None}})

        assert ConfigLoader(str(tmp_path)).load_discovery_config().min_mask_bits is None

    def test_malformed_yaml_uses_defaults(self, tmp_path):
        (tmp_path / "discovery_config.yml").write_text("discovery: [unclosed", encoding="utf-8")

        assert ConfigLoader(str(tmp_path)).load_discovery_config() == DiscoveryConfig()

    def test_wrong_structure_uses_defaults(self, tmp_path):
        write_config(tmp_path, {"scanner": {"port": 1}})

        assert ConfigLoader(str(tmp_path)).load_discovery_config() == DiscoveryConfig()

    def test_create_default_config_round_trips(self, tmp_path):
        loader = ConfigLoader(str(tmp_path))

        path = loader.create_default_config()

        assert path.exists()
        assert loader.load_discovery_config() == DiscoveryConfig()
