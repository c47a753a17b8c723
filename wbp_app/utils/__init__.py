"""
Utility functions module.

Time Semantics:
- All persisted instants are integer epoch milliseconds (UTC)
- Components take an injectable clock returning epoch milliseconds so
  tests can pin "now" without patching the system clock
"""
