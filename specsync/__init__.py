"""specsync: keeps generated-documentation modules in sync with a prose spec."""

__version__ = "0.1.0"
