"""actionpin — pin third-party CI action references and generate typed bindings.

Tracks declared actions in a JSON manifest, resolves each reference to an
immutable commit, and keeps one generated Python binding per action in sync
with the manifest.
"""

__version__ = "0.1.0"
