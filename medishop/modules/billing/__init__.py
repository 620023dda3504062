"""
Billing package.

- calculations: pure line/bill total helpers (no DB)
- numbering:    daily bill number sequences
- cart:         Cart, the in-memory draft of a bill
- engine:       BillingEngine (commit bills, apply returns, read bills)

Import the submodules directly; this package does not re-export them so the
repositories can use the pure calculations without pulling in the engine.
"""
