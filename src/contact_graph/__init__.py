"""contact_graph

Keeps contact documents consistent with respect to the typed relationships
between them.
"""

__version__ = "0.1.0"
