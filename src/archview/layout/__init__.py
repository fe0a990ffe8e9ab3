"""
Layout: request building, the solver protocol and viewport fitting.
"""
