"""clusterplan CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from clusterplan import __version__
from clusterplan._constants import DEFAULT_CONFIG
from clusterplan.config import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    DeploymentConfig,
    generate_example_config_yaml,
    load_config,
    validate_config,
)
from clusterplan.render import render_cluster, write_bundle
from clusterplan.sizing import (
    INSTANCE_PROFILES,
    PRESETS,
    ClusterPlan,
    ClusterTopology,
    PlanInvariantViolation,
    ResourcePlan,
    Role,
    SizingError,
    check_invariants,
    plan_cluster,
    resolve_topology,
    validate_scale_factor,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="clusterplan",
    help="Size and configure coordinator + worker query clusters",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    epilog="[dim]Workflow: init -> validate -> plan -> render[/dim]",
)

console = Console()


# =============================================================================
# Helper Functions
# =============================================================================


def resolve_config_path(
    config_file: Path | None,
    file_option: Path | None = None,
    required: bool = True,
) -> Path | None:
    """Resolve config file path, using ./clusterplan.yaml as default.

    Supports both positional argument and --file/-f option.
    If both are provided, --file takes precedence.  When *required* is
    False a missing default file resolves to None instead of exiting.
    """
    path = file_option or config_file
    if path is not None:
        return path

    default = Path(DEFAULT_CONFIG)
    if default.exists():
        return default
    if not required:
        return None

    console.print(f"[red]ERROR[/red] No config file specified and ./{DEFAULT_CONFIG} not found")
    console.print("[blue]INFO[/blue] Create one with: clusterplan init")
    raise typer.Exit(1)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]OK[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]ERROR[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]WARN[/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]...[/blue] {message}")


def _configure_logging(verbose: bool) -> None:
    """Route package logs to stderr through rich; DEBUG when verbose."""
    pkg_logger = logging.getLogger("clusterplan")
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in pkg_logger.handlers):
        pkg_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, show_time=False)
        )


def _load_or_exit(config_file: Path) -> DeploymentConfig:
    """Load a config file, printing a readable error and exiting on failure."""
    try:
        return load_config(config_file)
    except ConfigFileNotFoundError as e:
        print_error(f"File not found: {e}")
        raise typer.Exit(1)  # noqa: B904
    except ConfigValidationError as e:
        print_error("Config validation failed:")
        for err in e.errors:
            loc = ".".join(str(x) for x in err["loc"]) or "<root>"
            console.print(f"  [red]•[/red] {loc}: {err['msg']}")
        raise typer.Exit(1)  # noqa: B904
    except ConfigError as e:
        print_error(f"Config error: {e}")
        raise typer.Exit(1)  # noqa: B904


def _topology_table(topology: ClusterTopology) -> Table:
    table = Table(title=f"Topology ({topology.preset or 'custom'})")
    table.add_column("Role", style="cyan")
    table.add_column("Instance")
    table.add_column("Count", justify="right")
    table.add_column("vCPU", justify="right")
    table.add_column("RAM", justify="right")
    table.add_column("NVMe", justify="right")
    table.add_column("$/hr", justify="right")

    for role, profile, count in (
        (Role.COORDINATOR, topology.coordinator_profile, 1),
        (Role.WORKER, topology.worker_profile, topology.worker_count),
    ):
        table.add_row(
            role.value,
            profile.name,
            str(count),
            str(profile.vcpu_count),
            f"{profile.total_ram_gb} GB",
            f"{profile.ephemeral_storage_gb} GB" if profile.has_local_nvme else "-",
            f"{profile.hourly_cost * count:.2f}",
        )
    return table


def _gb_or_dash(value: int | None) -> str:
    return "-" if value is None else f"{value} GB"


def _plan_table(cluster: ClusterPlan) -> Table:
    table = Table(title=f"Resource plan (SF{cluster.worker.scale_factor})")
    table.add_column("Setting", style="cyan")
    table.add_column("Coordinator", justify="right")
    table.add_column("Worker", justify="right")

    coord, worker = cluster.coordinator, cluster.worker
    rows: list[tuple[str, str, str]] = [
        ("Memory tier", "-", worker.memory_tier),
        (
            "Container limit",
            _gb_or_dash(coord.container_memory_limit_gb),
            _gb_or_dash(worker.container_memory_limit_gb),
        ),
        (
            "System reserved",
            _gb_or_dash(coord.system_reserved_gb),
            _gb_or_dash(worker.system_reserved_gb),
        ),
        (
            "Runtime memory",
            _gb_or_dash(coord.runtime_memory_gb),
            _gb_or_dash(worker.runtime_memory_gb),
        ),
        (
            "Query memory",
            _gb_or_dash(coord.query_memory_gb),
            _gb_or_dash(worker.query_memory_gb),
        ),
        (
            "Buffer memory",
            _gb_or_dash(coord.buffer_memory_gb),
            _gb_or_dash(worker.buffer_memory_gb),
        ),
        ("Heap headroom", _gb_or_dash(coord.heap_headroom_gb), "-"),
        ("Task concurrency", str(coord.task_concurrency), str(worker.task_concurrency)),
        (
            "Cache",
            "-",
            (
                f"{worker.cache_size_gb} GB ({worker.cache_backing})"
                if worker.cache_enabled
                else "off"
            ),
        ),
    ]
    for row in rows:
        table.add_row(*row)
    return table


def _report_invariants(label: str, plan: ResourcePlan, cluster: ClusterPlan) -> int:
    """Print invariant status for one role; return the number of violations."""
    profile = (
        cluster.topology.coordinator_profile
        if plan.role is Role.COORDINATOR
        else cluster.topology.worker_profile
    )
    violations = check_invariants(plan, profile)
    if violations:
        for v in violations:
            print_error(f"{label}: {v}")
    else:
        print_success(f"{label} plan satisfies all invariants ({profile.name})")
    return len(violations)


# =============================================================================
# Commands
# =============================================================================


@app.callback()
def _callback(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging from the planner and renderer",
        ),
    ] = False,
) -> None:
    """Size and configure coordinator + worker query clusters."""
    _configure_logging(verbose)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"clusterplan version {__version__}")


@app.command()
def init(
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Output file path for configuration",
        ),
    ] = Path(DEFAULT_CONFIG),
    name: Annotated[
        str,
        typer.Option(
            "--name",
            "-n",
            help="Deployment name",
        ),
    ] = "my-cluster",
    preset: Annotated[
        str,
        typer.Option(
            "--preset",
            "-p",
            help="Cluster-size preset (see 'clusterplan presets')",
        ),
    ] = "medium",
    scale: Annotated[
        int,
        typer.Option(
            "--scale",
            "-s",
            help="TPC-H scale factor (100, 1000 or 3000)",
        ),
    ] = 100,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing file",
        ),
    ] = False,
) -> None:
    """Generate a starter configuration file.

    Creates a commented YAML configuration with every option shown at its
    default.  Edit it, then run 'clusterplan validate'.
    """
    if output.exists() and not force:
        print_error(f"File already exists: {output}")
        print_info("Use --force to overwrite")
        raise typer.Exit(1)

    config_content = generate_example_config_yaml(name=name, preset=preset, scale_factor=scale)

    # Validate before writing so a bad preset or scale never lands on disk
    try:
        validate_config(yaml.safe_load(config_content))
    except ConfigValidationError as e:
        print_error("Invalid init options:")
        for err in e.errors:
            loc = ".".join(str(x) for x in err["loc"]) or "<root>"
            console.print(f"  [red]•[/red] {loc}: {err['msg']}")
        raise typer.Exit(1)  # noqa: B904

    output.write_text(config_content)
    print_success(f"Created configuration file: {output}")
    print_info(f"Preset: {preset}, scale factor: {scale}")
    print_info("Then run: clusterplan validate")


@app.command()
def validate(
    config_file: Annotated[
        Path | None,
        typer.Argument(
            help="Path to configuration YAML file (default: ./clusterplan.yaml)",
        ),
    ] = None,
    file_option: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Path to configuration YAML file (alternative to positional argument)",
        ),
    ] = None,
) -> None:
    """Validate configuration and check the resulting plan.

    This command performs the following checks:
    - YAML syntax is valid
    - Required fields are present
    - Preset and instance types resolve
    - Worker and coordinator plans satisfy every safety invariant
    """
    config_path = resolve_config_path(config_file, file_option)
    assert config_path is not None
    console.print(Panel(f"Validating: [bold]{config_path}[/bold]", expand=False))

    console.print("\n[bold]Configuration[/bold]")
    cfg = _load_or_exit(config_path)
    print_success("Config syntax valid")

    console.print("\n[bold]Topology[/bold]")
    try:
        cluster = cfg.get_cluster_plan()
    except PlanInvariantViolation as e:
        print_error(f"Plan for {e.profile_name} is unsafe:")
        for v in e.violations:
            console.print(f"  [red]•[/red] {v}")
        raise typer.Exit(1)  # noqa: B904
    except SizingError as e:
        print_error(str(e))
        raise typer.Exit(1)  # noqa: B904

    topology = cluster.topology
    print_success(
        f"Coordinator {topology.coordinator_profile.name}, "
        f"{topology.worker_count} x {topology.worker_profile.name}"
    )

    console.print("\n[bold]Invariants[/bold]")
    failed = _report_invariants("Worker", cluster.worker, cluster)
    failed += _report_invariants("Coordinator", cluster.coordinator, cluster)

    console.print()
    if failed:
        print_error(f"{failed} invariant violation(s)")
        raise typer.Exit(1)
    print_success("Configuration is valid")


@app.command()
def profiles() -> None:
    """List the built-in instance profile catalog."""
    table = Table(title="Instance profiles")
    table.add_column("Name", style="cyan")
    table.add_column("Arch")
    table.add_column("vCPU", justify="right")
    table.add_column("RAM", justify="right")
    table.add_column("NVMe", justify="right")
    table.add_column("$/hr", justify="right")

    for profile in INSTANCE_PROFILES.values():
        table.add_row(
            profile.name,
            profile.architecture.value,
            str(profile.vcpu_count),
            f"{profile.total_ram_gb} GB",
            f"{profile.ephemeral_storage_gb} GB" if profile.has_local_nvme else "-",
            f"{profile.hourly_cost:.4f}",
        )
    console.print(table)


@app.command()
def presets() -> None:
    """List the cluster-size presets."""
    table = Table(title="Cluster presets")
    table.add_column("Preset", style="cyan")
    table.add_column("Coordinator")
    table.add_column("Workers")
    table.add_column("Description")

    for name, preset in PRESETS.items():
        if name == "default":
            continue
        table.add_row(
            name,
            preset.coordinator_type,
            f"{preset.worker_count} x {preset.worker_type}",
            preset.description,
        )
    console.print(table)
    console.print("[dim]'default' is an alias for 'medium'[/dim]")


@app.command("plan")
def plan_command(
    config_file: Annotated[
        Path | None,
        typer.Argument(
            help="Path to configuration YAML file (default: ./clusterplan.yaml if present)",
        ),
    ] = None,
    file_option: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Path to configuration YAML file (alternative to positional argument)",
        ),
    ] = None,
    preset: Annotated[
        str | None,
        typer.Option("--preset", "-p", help="Cluster-size preset"),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", min=1, help="Override the number of workers"),
    ] = None,
    worker_type: Annotated[
        str | None,
        typer.Option("--worker-type", help="Override the worker instance type"),
    ] = None,
    coordinator_type: Annotated[
        str | None,
        typer.Option("--coordinator-type", help="Override the coordinator instance type"),
    ] = None,
    scale: Annotated[
        int | None,
        typer.Option("--scale", "-s", help="TPC-H scale factor (100, 1000 or 3000)"),
    ] = None,
) -> None:
    """Show the resolved topology and per-role resource plan.

    Works with or without a config file.  Command-line overrides take
    precedence over the config file, which takes precedence over the preset.
    """
    config_path = resolve_config_path(config_file, file_option, required=False)
    cfg = _load_or_exit(config_path) if config_path is not None else None

    try:
        if cfg is not None:
            topology = resolve_topology(
                preset or cfg.preset,
                worker_count=workers if workers is not None else cfg.cluster.worker_count,
                worker_type=worker_type or cfg.cluster.worker_type,
                coordinator_type=coordinator_type or cfg.cluster.coordinator_type,
                catalog=cfg.get_catalog(),
            )
            scale_factor = validate_scale_factor(scale if scale is not None else cfg.scale_factor)
            network_volume_gb = cfg.storage.network_volume_gb
        else:
            topology = resolve_topology(
                preset or "medium",
                worker_count=workers,
                worker_type=worker_type,
                coordinator_type=coordinator_type,
            )
            scale_factor = validate_scale_factor(scale if scale is not None else 100)
            network_volume_gb = 0

        cluster = plan_cluster(topology, scale_factor, network_volume_gb)
    except SizingError as e:
        print_error(str(e))
        raise typer.Exit(1)  # noqa: B904

    console.print(_topology_table(topology))
    console.print(_plan_table(cluster))
    console.print(
        f"Cluster query memory: [bold]{cluster.cluster_total_query_memory_gb} GB[/bold]  "
        f"Hourly cost: [bold]${topology.hourly_cost:.2f}[/bold]"
    )


@app.command()
def render(
    config_file: Annotated[
        Path | None,
        typer.Argument(
            help="Path to configuration YAML file (default: ./clusterplan.yaml)",
        ),
    ] = None,
    file_option: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Path to configuration YAML file (alternative to positional argument)",
        ),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output-dir",
            "-o",
            help="Directory for rendered bundles (default: output.directory from config)",
        ),
    ] = None,
) -> None:
    """Render coordinator and worker configuration bundles.

    Files are written to <output>/<name>/coordinator/ and
    <output>/<name>/worker/.  Every worker uses the same bundle.
    """
    config_path = resolve_config_path(config_file, file_option)
    assert config_path is not None
    cfg = _load_or_exit(config_path)

    try:
        cluster = cfg.get_cluster_plan()
    except SizingError as e:
        print_error(str(e))
        raise typer.Exit(1)  # noqa: B904

    rendered = render_cluster(cluster, cfg.get_endpoints())
    base = (output_dir or Path(cfg.output.directory)) / cfg.name
    logger.debug("Rendering %s (%s) into %s", cfg.name, cluster.topology.preset, base)

    for role in (Role.COORDINATOR, Role.WORKER):
        paths = write_bundle(rendered.for_role(role), base / role.value)
        for path in paths:
            print_success(f"Wrote {path}")

    print_info(
        f"Copy {base / Role.WORKER.value} to each of the "
        f"{cluster.topology.worker_count} worker(s)"
    )


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
