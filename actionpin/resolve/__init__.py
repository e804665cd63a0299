"""Version resolution — turn a requested ref (or none) into an immutable pin.

- Selector: pure choice between an explicit ref and the latest version tag
- Resolver: asks the source provider for the commit behind that choice
"""
