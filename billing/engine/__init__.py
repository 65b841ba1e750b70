"""Pure billing computations: pricing, totals, payments and status."""

from billing.engine.calculator import price_line_item
from billing.engine.aggregator import BillDraft, BillTotals, aggregate
from billing.engine.ledger import LedgerResult, apply_payment, find_duplicate
from billing.engine.status import check_override, resolve_for, resolve_status, with_resolved_status
