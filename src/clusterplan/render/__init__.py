"""Rendering of resource plans into node configuration files."""

from .renderer import (
    CONFIG_PROPERTIES,
    ROLE_TEMPLATES,
    ConfigurationDocument,
    Endpoints,
    RenderedCluster,
    TemplateRenderer,
    render,
    render_bundle,
    render_cluster,
    write_bundle,
)

__all__ = [
    "CONFIG_PROPERTIES",
    "ROLE_TEMPLATES",
    "ConfigurationDocument",
    "Endpoints",
    "RenderedCluster",
    "TemplateRenderer",
    "render",
    "render_bundle",
    "render_cluster",
    "write_bundle",
]
