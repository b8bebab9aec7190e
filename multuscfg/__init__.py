"""Loading and preparation of multi-network CNI configurations and delegate settings."""

__version__ = "0.1.0"
__all__ = ["types", "inject", "delegate", "runtime", "netconf"]