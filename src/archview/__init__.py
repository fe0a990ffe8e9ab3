"""
archview - graph-state engine for hierarchical resource/event diagrams.

Turns raw resource and event records into a renderable, hierarchically
collapsible graph and keeps selection, environment inheritance, detected
issues and layout in sync through a single action dispatch.
"""

__version__ = "0.1.0"
