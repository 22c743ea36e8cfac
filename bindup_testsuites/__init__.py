"""
BiNDup test suites package.

Kept importable so the engine can be used from:
  - pytest suites under this package
  - ad-hoc scripts driving a BiNDup session
  - CI/CD module imports

All content is demo-safe and does not include production secrets.
"""
