"""relkit: release orchestration with pluggable targets."""

__version__ = "0.1.0"
