"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the campaign engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Escrow holds exactly what campaigns owe
2. atomicity.py - All-or-nothing operation semantics
3. idempotency.py - Repeated triggers and one-shot claims
4. invariants.py - Record bounds and lifecycle edges under random calls
5. temporal.py - Funding windows, expiry days and late-day counting
6. determinism.py - Identical inputs produce identical outputs
"""
