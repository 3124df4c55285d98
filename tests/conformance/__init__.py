"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the deposit ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Pool mirrors the registry; receipts back every accepted deposit
2. atomicity.py - All-or-nothing execute semantics
3. determinism.py - Reproducible state, journal replay

These tests use hypothesis for property-based testing.
"""
