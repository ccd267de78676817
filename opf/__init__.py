"""Node and subgraph data layer for Optimum-Path Forest classifiers."""

__version__ = "0.1.0"
