"""Single-till point-of-sale ledger with offline-first order sync."""
