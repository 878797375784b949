"""Tests for configuration rendering."""

from __future__ import annotations

from dataclasses import replace

import pytest

from clusterplan.render import (
    CONFIG_PROPERTIES,
    ROLE_TEMPLATES,
    Endpoints,
    TemplateRenderer,
    render,
    render_bundle,
    render_cluster,
    write_bundle,
)
from clusterplan.sizing import Role, WorkloadParameters, plan, plan_cluster

CACHE_KEYS = (
    "async-data-cache-enabled",
    "async-cache-ssd-gb",
    "async-cache-ssd-path",
    "async-cache-ssd-checkpoint-enabled",
)


@pytest.fixture
def worker_plan(plain_worker):
    return plan(plain_worker, WorkloadParameters(100, Role.WORKER))


@pytest.fixture
def nvme_plan(nvme_worker):
    return plan(nvme_worker, WorkloadParameters(3000, Role.WORKER))


@pytest.fixture
def cluster(medium_topology):
    return plan_cluster(medium_topology, 100)


# ---------------------------------------------------------------------------
# Worker config.properties
# ---------------------------------------------------------------------------


class TestWorkerRender:
    """Tests for rendering a worker plan."""

    def test_memory_keys_with_units(self, worker_plan, endpoints):
        doc = render(worker_plan, Role.WORKER, endpoints)
        e = doc.entries
        assert doc.filename == CONFIG_PROPERTIES
        assert e["coordinator"] == "false"
        assert e["system-memory-gb"] == "238"
        assert e["query-memory-gb"] == "238"
        assert e["query.max-memory-per-node"] == "238GB"
        assert e["query.max-total-memory-per-node"] == "238GB"
        assert e["system-mem-limit-gb"] == "238"

    def test_concurrency_keys(self, worker_plan, endpoints):
        e = render(worker_plan, Role.WORKER, endpoints).entries
        assert e["task.concurrency"] == "32"
        assert e["task.max-worker-threads"] == "32"
        assert e["task.max-drivers-per-task"] == "32"

    def test_discovery(self, worker_plan, endpoints):
        e = render(worker_plan, Role.WORKER, endpoints).entries
        assert e["discovery.uri"] == "http://10.0.0.10:8080"
        assert e["http-server.http.port"] == "8080"

    def test_zero_cache_omits_cache_section(self, worker_plan, endpoints):
        doc = render(worker_plan, Role.WORKER, endpoints)
        assert worker_plan.cache_size_gb == 0
        for key in CACHE_KEYS:
            assert key not in doc.entries
        assert "async" not in doc.text

    def test_cache_section_present_with_nvme(self, nvme_plan, endpoints):
        e = render(nvme_plan, Role.WORKER, endpoints).entries
        assert e["async-data-cache-enabled"] == "true"
        assert e["async-cache-ssd-gb"] == "1500"
        assert e["async-cache-ssd-path"] == "/var/presto/cache"

    def test_forced_zero_cache_omits_section(self, nvme_plan, endpoints):
        doc = render(replace(nvme_plan, cache_size_gb=0), Role.WORKER, endpoints)
        for key in CACHE_KEYS:
            assert key not in doc.entries

    def test_deterministic(self, nvme_plan, endpoints):
        assert render(nvme_plan, Role.WORKER, endpoints) == render(
            nvme_plan, Role.WORKER, endpoints
        )

    def test_sf3000_enables_global_arbitration(self, nvme_plan, endpoints):
        e = render(nvme_plan, Role.WORKER, endpoints).entries
        assert e["global-arbitration-enabled"] == "true"
        assert e["memory-pool-abort-capacity-limit"] == "40GB"

    def test_smaller_scale_omits_global_arbitration(self, worker_plan, endpoints):
        doc = render(worker_plan, Role.WORKER, endpoints)
        assert "global-arbitration-enabled" not in doc.entries
        assert "memory-pool-abort-capacity-limit" not in doc.entries

    def test_role_mismatch_rejected(self, worker_plan, endpoints):
        with pytest.raises(ValueError, match="worker"):
            render(worker_plan, Role.COORDINATOR, endpoints)

    def test_every_line_is_key_value_or_comment(self, nvme_plan, endpoints):
        doc = render(nvme_plan, Role.WORKER, endpoints)
        for line in doc.text.splitlines():
            if line and not line.startswith("#"):
                key, sep, value = line.partition("=")
                assert sep == "=" and key and value, line


# ---------------------------------------------------------------------------
# Coordinator config.properties
# ---------------------------------------------------------------------------


class TestCoordinatorRender:
    def test_cluster_wide_memory(self, cluster, endpoints):
        e = render(cluster.coordinator, Role.COORDINATOR, endpoints).entries
        assert e["coordinator"] == "true"
        assert e["query.max-memory"] == "1020GB"
        assert e["query.max-total-memory"] == "1020GB"
        assert e["query.max-memory-per-node"] == "68GB"
        assert e["memory.heap-headroom-per-node"] == "45GB"
        assert e["task.concurrency"] == "32"

    def test_internal_address(self, cluster, endpoints):
        e = render(cluster.coordinator, Role.COORDINATOR, endpoints).entries
        assert e["node.internal-address"] == "10.0.0.10"

    def test_no_internal_address_when_unset(self, cluster):
        e = render(cluster.coordinator, "coordinator", Endpoints("coord")).entries
        assert "node.internal-address" not in e

    def test_no_cache_keys(self, cluster, endpoints):
        e = render(cluster.coordinator, Role.COORDINATOR, endpoints).entries
        for key in CACHE_KEYS:
            assert key not in e


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------


class TestBundles:
    def test_worker_bundle_files(self, worker_plan, endpoints):
        bundle = render_bundle(worker_plan, Role.WORKER, endpoints)
        assert list(bundle) == ["config.properties", "node.properties", "resources.env"]

    def test_coordinator_bundle_has_jvm_config(self, cluster, endpoints):
        bundle = render_bundle(cluster.coordinator, Role.COORDINATOR, endpoints)
        assert "jvm.config" in bundle
        assert "-Xmx113G" in bundle["jvm.config"].text

    def test_resources_env(self, worker_plan, endpoints):
        env = render_bundle(worker_plan, Role.WORKER, endpoints)["resources.env"].entries
        assert env["CONTAINER_MEMORY_LIMIT"] == "250g"
        assert env["RUNTIME_MEMORY"] == "238GB"
        assert env["BUFFER_MEMORY"] == "12GB"
        assert env["SYSTEM_RESERVED_MEMORY"] == "2GB"
        assert "CACHE_SIZE" not in env

    def test_resources_env_cache(self, nvme_plan, endpoints):
        env = render_bundle(nvme_plan, Role.WORKER, endpoints)["resources.env"].entries
        assert env["CACHE_SIZE"] == "1500GB"

    def test_node_properties(self, worker_plan, endpoints):
        e = render_bundle(worker_plan, Role.WORKER, endpoints)["node.properties"].entries
        assert e["node.environment"] == "production"
        assert e["node.id"] == endpoints.node_id(Role.WORKER)
        assert e["node.data-dir"] == "/var/presto/data"
        assert "node.location" not in e

    @pytest.mark.parametrize("filename", ["node.properties", "resources.env"])
    def test_roles_share_common_templates(self, filename):
        assert ROLE_TEMPLATES[Role.COORDINATOR][filename] == f"common/{filename}.j2"
        assert ROLE_TEMPLATES[Role.WORKER][filename] == f"common/{filename}.j2"

    def test_common_template_renders_for_both_roles(self, tmp_path, cluster, endpoints):
        for templates in ROLE_TEMPLATES.values():
            for template in templates.values():
                path = tmp_path / template
                path.parent.mkdir(exist_ok=True)
                path.write_text("node.role={{ role }}\n")
        renderer = TemplateRenderer(tmp_path)
        for role in Role:
            doc = render_bundle(cluster.for_role(role), role, endpoints, renderer)
            assert doc["node.properties"].text == f"node.role={role.value}\n"

    def test_node_id_stable_and_per_role(self, endpoints):
        assert endpoints.node_id(Role.WORKER) == endpoints.node_id(Role.WORKER)
        assert endpoints.node_id(Role.WORKER) != endpoints.node_id(Role.COORDINATOR)


class TestRenderCluster:
    def test_both_roles(self, cluster, endpoints):
        rendered = render_cluster(cluster, endpoints)
        assert set(rendered.coordinator) >= {"config.properties", "jvm.config"}
        assert "jvm.config" not in rendered.worker

    def test_worker_internal_address_cleared(self, cluster, endpoints):
        rendered = render_cluster(cluster, endpoints)
        worker = rendered.for_role(Role.WORKER)[CONFIG_PROPERTIES].entries
        coordinator = rendered.for_role(Role.COORDINATOR)[CONFIG_PROPERTIES].entries
        assert "node.internal-address" not in worker
        assert coordinator["node.internal-address"] == "10.0.0.10"
        assert worker["discovery.uri"] == coordinator["discovery.uri"]


class TestWriteBundle:
    def test_writes_files(self, tmp_path, worker_plan, endpoints):
        bundle = render_bundle(worker_plan, Role.WORKER, endpoints)
        paths = write_bundle(bundle, tmp_path / "worker")
        assert [p.name for p in paths] == list(bundle)
        assert (tmp_path / "worker" / "config.properties").read_text() == bundle[
            CONFIG_PROPERTIES
        ].text


class TestTemplateRenderer:
    def test_custom_template_dir(self, tmp_path, worker_plan, endpoints):
        (tmp_path / "worker").mkdir()
        (tmp_path / "worker" / "config.properties.j2").write_text(
            "query-memory={{ plan.query_memory_gb | gb }}\n"
        )
        doc = render(worker_plan, Role.WORKER, endpoints, renderer=TemplateRenderer(tmp_path))
        assert doc.text == "query-memory=238GB\n"
