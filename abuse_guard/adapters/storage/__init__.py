"""Key/value storage adapters.

This package provides a small abstraction over "local storage" so the counters
can persist records in process memory, in a JSON file standing in for a browser
profile, or in any other string key/value backend without changing the
counters themselves.
"""
