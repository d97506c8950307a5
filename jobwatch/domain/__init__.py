"""
Domain Layer

Pure snapshot model, ordering rules, errors and events. No I/O.
"""
