"""
Source synthesis: name conversion, the dispatch IR and the Python emitter.
"""
