"""wideload: synthetic workload generator and live dashboard for wide-column data stores."""

__version__ = "0.1.0"
