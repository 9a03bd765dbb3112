"""
apitools - Declarative HTTP API tools for agents, with guarded egress.

Tool authors describe an outbound API call in a YAML file; apitools loads and
validates those files, advertises a JSON parameter schema for each one, and
executes calls under strict network rules:
- Private, internal and cloud-metadata hosts are always blocked
- Every request must target a host on the definition's allow-list
- Secrets come from the environment through {{env.NAME}} placeholders
- Every call is bounded by a timeout with a hard ceiling

Example usage:
    $ apitools list ./agent
    $ apitools call ./agent create_issue --arg title="Broken build"
"""

__version__ = "0.1.0"
__author__ = "apitools Contributors"

__all__ = [
    "__version__",
    "__author__",
]
