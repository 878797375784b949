"""Locate data files shipped inside the clusterplan package."""

from __future__ import annotations

from pathlib import Path

PACKAGE_DIR = Path(__file__).parent


def get_templates_dir() -> Path:
    """Return the directory holding the per-role Jinja2 templates.

    Raises:
        FileNotFoundError: If the package was installed without its
            ``templates/**/*.j2`` data files
    """
    path = PACKAGE_DIR / "templates"
    if not path.is_dir():
        raise FileNotFoundError(f"Template directory missing: {path}")
    return path
