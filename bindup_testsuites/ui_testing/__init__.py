"""BiNDup UI automation: element engine (framework) and browser tests (tests)."""
