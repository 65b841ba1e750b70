"""Hospital billing and payment-reconciliation engine."""
