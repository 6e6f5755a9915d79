"""cargo-neat: find unused workspace dependencies in Cargo workspaces."""

__version__ = "0.3.0"
