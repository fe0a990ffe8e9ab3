"""
Action handlers, one module per action family.

Every handler takes the previous QueryData and returns the next one. A
handler that changes nothing returns the very same object.
"""
