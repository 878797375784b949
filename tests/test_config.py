"""Tests for configuration schema and loader."""

from __future__ import annotations

import pytest
import yaml
from pydantic import ValidationError

from clusterplan.config import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    DeploymentConfig,
    generate_default_config,
    generate_example_config_yaml,
    load_config,
    save_config,
    validate_config,
)
from clusterplan.sizing import Role

from tests.conftest import make_config


class TestDeploymentConfig:
    """Tests for DeploymentConfig validation."""

    def test_defaults(self):
        cfg = make_config()
        assert cfg.preset == "medium"
        assert cfg.scale_factor == 100
        assert cfg.cluster.worker_count is None
        assert cfg.endpoints.discovery_address == "coordinator"
        assert cfg.storage.network_volume_gb == 0

    def test_name_required(self):
        with pytest.raises(ValidationError, match="'name' is required"):
            DeploymentConfig()

    def test_unknown_preset(self):
        with pytest.raises(ValidationError, match="Unknown cluster preset"):
            make_config(preset="huge")

    def test_unsupported_scale_factor(self):
        with pytest.raises(ValidationError, match="Unsupported scale factor"):
            make_config(scale_factor=10)

    def test_unknown_worker_type(self):
        with pytest.raises(ValidationError, match="cluster.worker_type"):
            make_config(cluster={"worker_type": "m5.large"})

    def test_zero_worker_count(self):
        with pytest.raises(ValidationError):
            make_config(cluster={"worker_count": 0})

    def test_custom_profile_accepted_as_worker_type(self):
        cfg = make_config(
            cluster={"worker_type": "m7i.8xlarge"},
            profiles=[{"name": "m7i.8xlarge", "vcpu_count": 32, "total_ram_gb": 128}],
        )
        assert cfg.get_topology().worker_profile.total_ram_gb == 128

    def test_small_custom_worker_plans(self):
        cfg = make_config(
            cluster={"worker_type": "t3.medium"},
            profiles=[{"name": "t3.medium", "vcpu_count": 2, "total_ram_gb": 4}],
        )
        worker = cfg.get_cluster_plan().worker
        assert worker.container_memory_limit_gb == 3
        assert worker.runtime_memory_gb == 3

    def test_invalid_custom_profile(self):
        with pytest.raises(ValidationError):
            make_config(profiles=[{"name": "bad", "vcpu_count": 0, "total_ram_gb": 16}])

    def test_bad_port(self):
        with pytest.raises(ValidationError):
            make_config(endpoints={"http_port": 70000})


class TestDeploymentConfigMethods:
    def test_topology_from_preset(self):
        t = make_config(preset="graviton-large").get_topology()
        assert t.worker_profile.name == "r7gd.8xlarge"
        assert t.worker_count == 4

    def test_topology_overrides(self):
        cfg = make_config(cluster={"worker_count": 8, "coordinator_type": "r7i.8xlarge"})
        t = cfg.get_topology()
        assert t.worker_count == 8
        assert t.coordinator_profile.name == "r7i.8xlarge"
        assert t.worker_profile.name == "r7i.8xlarge"

    def test_cluster_plan(self):
        cluster = make_config().get_cluster_plan()
        assert cluster.cluster_total_query_memory_gb == 1020

    def test_cluster_plan_network_volume(self):
        cluster = make_config(storage={"network_volume_gb": 100}).get_cluster_plan()
        assert cluster.worker.cache_size_gb == 50

    def test_endpoints_internal_defaults_to_discovery(self):
        ep = make_config(endpoints={"discovery_address": "10.1.2.3"}).get_endpoints()
        assert ep.internal_address == "10.1.2.3"
        assert ep.discovery_uri == "http://10.1.2.3:8080"
        assert ep.node_name == "test-fixture"

    def test_endpoints_explicit_internal(self):
        ep = make_config(
            endpoints={"discovery_address": "coord.example", "internal_address": "10.0.0.1"}
        ).get_endpoints()
        assert ep.internal_address == "10.0.0.1"

    def test_node_id_depends_on_name(self):
        a = make_config(name="a").get_endpoints().node_id(Role.WORKER)
        b = make_config(name="b").get_endpoints().node_id(Role.WORKER)
        assert a != b


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_load_minimal(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("name: demo\nscale_factor: 1000\n")
        cfg = load_config(path)
        assert cfg.name == "demo"
        assert cfg.scale_factor == 1000

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigFileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("name: [unclosed\n")
        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_top_level_list(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_empty_file_needs_name(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("")
        with pytest.raises(ConfigValidationError) as exc:
            load_config(path)
        assert exc.value.errors
        assert "'name' is required" in str(exc.value)

    def test_validation_errors_carry_location(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("name: demo\nscale_factor: 42\n")
        with pytest.raises(ConfigValidationError) as exc:
            load_config(path)
        assert "scale_factor" in str(exc.value)
        assert exc.value.errors[0]["loc"] == ("scale_factor",)

    def test_errors_share_base_class(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.yaml")


class TestSaveConfig:
    def test_save_then_load(self, tmp_path):
        cfg = make_config(
            preset="graviton-small",
            scale_factor=3000,
            profiles=[
                {
                    "name": "m7i.8xlarge",
                    "vcpu_count": 32,
                    "total_ram_gb": 128,
                    "hourly_cost": "1.6128",
                }
            ],
        )
        path = tmp_path / "saved.yaml"
        save_config(cfg, path)
        assert load_config(path).model_dump() == cfg.model_dump()

    def test_saved_file_is_plain_yaml(self, tmp_path):
        path = tmp_path / "saved.yaml"
        save_config(make_config(), path)
        data = yaml.safe_load(path.read_text())
        assert data["name"] == "test-fixture"
        assert list(data)[0] == "name"


class TestGenerators:
    def test_default_config(self):
        cfg = generate_default_config("demo", preset="large", scale_factor=1000)
        assert cfg.name == "demo"
        assert cfg.preset == "large"
        assert cfg.scale_factor == 1000

    def test_default_config_discovery_address(self):
        cfg = generate_default_config("demo", discovery_address="10.0.0.1")
        assert cfg.endpoints.discovery_address == "10.0.0.1"

    def test_default_config_rejects_bad_preset(self):
        with pytest.raises(ConfigValidationError):
            generate_default_config("demo", preset="huge")

    def test_example_yaml_is_valid(self):
        cfg = validate_config(yaml.safe_load(generate_example_config_yaml()))
        assert cfg.name == "my-cluster"
        assert cfg.preset == "medium"

    def test_example_yaml_substitutions(self):
        text = generate_example_config_yaml(name="bench", preset="xlarge", scale_factor=3000)
        cfg = validate_config(yaml.safe_load(text))
        assert (cfg.name, cfg.preset, cfg.scale_factor) == ("bench", "xlarge", 3000)
