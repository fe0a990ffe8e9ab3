"""
Graph construction and visibility management.

- events: flatten principal chains into per-hop events and chain links
- builder: build nodes and edges from a dataset
- visibility: coalesce single-child chains and reveal nodes
"""
