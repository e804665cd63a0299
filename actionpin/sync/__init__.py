"""Manifest sync — keep generated bindings and the manifest in agreement.

This package provides the primitives for:
- Orchestration: one add/update/remove/regenerate step with rollback of its files
- Engine: batches of steps against a single load and a single persist
- Drift detection: divergence between the manifest and the bindings on disk
"""
