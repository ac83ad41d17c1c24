"""Cluster infrastructure lifecycle: network convergence and safe teardown on AWS."""

__version__ = "0.1.0"
