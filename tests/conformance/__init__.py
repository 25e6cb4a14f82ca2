"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the ledger engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. balance_invariant.py - total == available + held, checked against a reference model
2. atomicity.py - Rejected operations leave balances and history untouched
3. duplicate_rejection.py - A transaction id is applied at most once per account
4. spill_transparency.py - Spilling to disk never changes what the store returns
5. determinism.py - Same input stream, same output snapshot

These tests use hypothesis for property-based testing.
"""
