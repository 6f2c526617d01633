"""
Command-line tooling built on the orchestration core.
"""
