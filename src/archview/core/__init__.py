"""
archview Core Module.

Data model, identifier utilities, environment inheritance and issue
detection shared by the graph, layout and engine packages.
"""
