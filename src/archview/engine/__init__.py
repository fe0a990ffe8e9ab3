"""
Selection/Action Engine.

A single transition function, `reduce(state, action)`, maps the current
QueryData and one tagged action to the next QueryData. Side effects
(environment persistence, label measurement) come in through Capabilities.
"""

from .actions import Action
from .capabilities import Capabilities
from .reducer import reduce

__all__ = ["Action", "Capabilities", "reduce"]
