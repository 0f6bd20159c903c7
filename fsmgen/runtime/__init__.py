"""
Graph analysis over a machine definition: adjacency, reachability and cycles.
"""
