"""
refgraph test suite.

- Unit tests for individual components
- Integration tests for full analysis runs and the CLI
"""
