"""
Test package marker.

Lets pytest import these modules as `tests.test_*` so names cannot clash with
test modules kept beside the code (e.g. `tradeledger/time/tests`).
"""
