"""
Test suites package.

Kept importable so tests can share doubles through ``testsuites.doubles``.
"""
