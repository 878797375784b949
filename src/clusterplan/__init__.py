"""Resource planning and configuration rendering for query-engine clusters."""

__version__ = "0.1.0"
