"""Shared constants for clusterplan."""

# Default config file name for auto-discovery by the CLI
DEFAULT_CONFIG = "clusterplan.yaml"

# Rendered bundles land in <output>/<deployment-name>/<role>/
DEFAULT_OUTPUT_DIR = "./clusterplan-output"

# HTTP port shared by coordinator and workers
DEFAULT_HTTP_PORT = 8080

# Must match exactly between coordinator and workers
ENGINE_VERSION = "testversion"

# On-node paths mounted into the runtime container
DATA_DIR = "/var/presto/data"
SPILL_DIR = "/var/presto/data/spill"
CACHE_DIR = "/var/presto/cache"
