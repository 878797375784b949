"""Configuration rendering for coordinator and worker nodes.

Serializes a :class:`ResourcePlan` into the line-oriented ``key=value``
files the node runtime reads.  Rendering is pure formatting: no sizing
decisions are made here and the plan is trusted as already verified.

Files per role:

* ``config.properties`` -- runtime configuration (the primary document)
* ``node.properties`` -- node identity and data directory
* ``jvm.config`` -- coordinator only, heap size
* ``resources.env`` -- container limits consumed by the bootstrap layer
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from clusterplan._constants import (
    CACHE_DIR,
    DATA_DIR,
    DEFAULT_HTTP_PORT,
    ENGINE_VERSION,
    SPILL_DIR,
)
from clusterplan.sizing.model import ClusterPlan, ResourcePlan, Role

logger = logging.getLogger(__name__)

# Primary document per role
CONFIG_PROPERTIES = "config.properties"

# Filename -> template path, in bundle order.  Files whose content does not
# depend on the role live under common/.
ROLE_TEMPLATES: dict[Role, dict[str, str]] = {
    Role.COORDINATOR: {
        CONFIG_PROPERTIES: "coordinator/config.properties.j2",
        "node.properties": "common/node.properties.j2",
        "jvm.config": "coordinator/jvm.config.j2",
        "resources.env": "common/resources.env.j2",
    },
    Role.WORKER: {
        CONFIG_PROPERTIES: "worker/config.properties.j2",
        "node.properties": "common/node.properties.j2",
        "resources.env": "common/resources.env.j2",
    },
}

ROLE_FILES: dict[Role, tuple[str, ...]] = {
    role: tuple(templates) for role, templates in ROLE_TEMPLATES.items()
}

# Stable namespace so the same node name always yields the same node id
_NODE_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_DNS, "clusterplan.nodes")


@dataclass(frozen=True)
class Endpoints:
    """Network addresses baked into node configuration.

    ``internal_address`` is the node's own routable address; leave it empty
    for workers whose address is only known at boot time.
    """

    discovery_address: str
    http_port: int = DEFAULT_HTTP_PORT
    internal_address: str = ""
    node_name: str = "clusterplan"
    environment: str = "production"
    location: str = ""

    @property
    def discovery_uri(self) -> str:
        return f"http://{self.discovery_address}:{self.http_port}"

    def node_id(self, role: Role) -> str:
        return str(uuid.uuid5(_NODE_ID_NAMESPACE, f"{self.node_name}/{Role(role).value}"))


@dataclass(frozen=True)
class ConfigurationDocument:
    """One rendered configuration file."""

    role: Role
    filename: str
    text: str

    @property
    def entries(self) -> dict[str, str]:
        """Parse ``key=value`` lines, skipping blanks and comments.

        JVM option files carry no ``=`` on most lines; those are skipped.
        """
        result: dict[str, str] = {}
        for line in self.text.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, _, value = stripped.partition("=")
            result[key.strip()] = value.strip()
        return result

    def write(self, directory: Path) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_text(self.text)
        return path


@dataclass
class RenderedCluster:
    """Rendered bundles for both roles, keyed by filename."""

    coordinator: dict[str, ConfigurationDocument] = field(default_factory=dict)
    worker: dict[str, ConfigurationDocument] = field(default_factory=dict)

    def for_role(self, role: Role) -> dict[str, ConfigurationDocument]:
        return self.coordinator if Role(role) is Role.COORDINATOR else self.worker


def _gb(value: int) -> str:
    """Format a GB quantity with the unit suffix the runtime expects."""
    return f"{value}GB"


class TemplateRenderer:
    """Renders Jinja2 templates for node configuration files."""

    def __init__(self, template_dir: Path | None = None):
        """Initialize template renderer.

        Args:
            template_dir: Path to templates directory. Defaults to package templates.
        """
        if template_dir is None:
            # Templates ship as package data next to this module
            from clusterplan._resources import get_templates_dir

            template_dir = get_templates_dir()

        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["gb"] = _gb

    def render(self, template_name: str, context: Mapping[str, Any]) -> str:
        """Render a template with the given context.

        Args:
            template_name: Name of template file (e.g., "worker/config.properties.j2")
            context: Template variables

        Returns:
            Rendered file content
        """
        template = self.env.get_template(template_name)
        return template.render(**context)


_default_renderer: TemplateRenderer | None = None


def _get_renderer(renderer: TemplateRenderer | None) -> TemplateRenderer:
    global _default_renderer
    if renderer is not None:
        return renderer
    if _default_renderer is None:
        _default_renderer = TemplateRenderer()
    return _default_renderer


def _build_context(plan: ResourcePlan, role: Role, endpoints: Endpoints) -> dict[str, Any]:
    return {
        "plan": plan,
        "role": role.value,
        "endpoints": endpoints,
        "node_id": endpoints.node_id(role),
        "engine_version": ENGINE_VERSION,
        "data_dir": DATA_DIR,
        "spill_dir": SPILL_DIR,
        "cache_dir": CACHE_DIR,
    }


def _render_file(
    plan: ResourcePlan,
    role: Role,
    endpoints: Endpoints,
    filename: str,
    renderer: TemplateRenderer | None,
) -> ConfigurationDocument:
    if plan.role is not role:
        raise ValueError(f"Cannot render a {plan.role.value} plan as {role.value} configuration")
    text = _get_renderer(renderer).render(
        ROLE_TEMPLATES[role][filename], _build_context(plan, role, endpoints)
    )
    return ConfigurationDocument(role=role, filename=filename, text=text)


def render(
    plan: ResourcePlan,
    role: Role,
    endpoints: Endpoints,
    renderer: TemplateRenderer | None = None,
) -> ConfigurationDocument:
    """Render the runtime ``config.properties`` for *role*.

    The cache block is omitted entirely when ``plan.cache_size_gb`` is 0:
    an empty cache section would be read as "enabled with no space".
    """
    return _render_file(plan, Role(role), endpoints, CONFIG_PROPERTIES, renderer)


def render_bundle(
    plan: ResourcePlan,
    role: Role,
    endpoints: Endpoints,
    renderer: TemplateRenderer | None = None,
) -> dict[str, ConfigurationDocument]:
    """Render every configuration file for *role*, keyed by filename."""
    role = Role(role)
    return {
        filename: _render_file(plan, role, endpoints, filename, renderer)
        for filename in ROLE_FILES[role]
    }


def render_cluster(
    cluster: ClusterPlan,
    endpoints: Endpoints,
    renderer: TemplateRenderer | None = None,
) -> RenderedCluster:
    """Render bundles for both roles of a planned cluster.

    Workers share one bundle; their internal address is resolved at boot,
    so it is cleared from the worker endpoints.
    """
    worker_endpoints = Endpoints(
        discovery_address=endpoints.discovery_address,
        http_port=endpoints.http_port,
        node_name=endpoints.node_name,
        environment=endpoints.environment,
        location=endpoints.location,
    )
    return RenderedCluster(
        coordinator=render_bundle(cluster.coordinator, Role.COORDINATOR, endpoints, renderer),
        worker=render_bundle(cluster.worker, Role.WORKER, worker_endpoints, renderer),
    )


def write_bundle(bundle: Mapping[str, ConfigurationDocument], directory: Path) -> list[Path]:
    """Write each document of *bundle* into *directory*.

    Returns:
        Paths written, in bundle order
    """
    paths = [doc.write(directory) for doc in bundle.values()]
    logger.info("Wrote %d configuration files to %s", len(paths), directory)
    return paths
