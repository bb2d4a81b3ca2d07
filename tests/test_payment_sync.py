# tests/test_payment_sync.py
import pytest

from medsupply_billing.database.repositories import Invoice, Payment
from medsupply_billing.modules.payments.reconciliation import PaymentSynchronizer
from medsupply_billing.modules.payments.reconciliation.payment_sync import PaymentMatch, score_match


@pytest.fixture()
def sync(payments_repo, invoices_repo, allocations_repo):
    return PaymentSynchronizer(payments_repo, invoices_repo, allocations_repo)


def _invoice(repo, ids, number, total, *, customer="cust_a", date="2026-01-10", paid=0.0, status="draft"):
    return repo.create(
        Invoice(
            id=None,
            company_id=ids["company"],
            customer_id=ids[customer],
            invoice_number=number,
            total_amount=total,
            paid_amount=paid,
            balance_due=total - paid,
            status=status,
            invoice_date=date,
        )
    )


def _payment(repo, ids, number, amount, *, customer="cust_a", date="2026-02-01"):
    return repo.create(
        Payment(
            id=None,
            company_id=ids["company"],
            customer_id=ids[customer] if customer else None,
            payment_number=number,
            amount=amount,
            payment_method="mpesa",
            payment_date=date,
        )
    )


# -------------------------
# Scoring
# -------------------------

def _inv(total, paid=0.0, balance=None):
    return Invoice(id="x", company_id="c", invoice_number="INV", total_amount=total,
                   paid_amount=paid, balance_due=(total - paid) if balance is None else balance)


def _pay(amount):
    return Payment(id="p", company_id="c", payment_number="PAY", amount=amount)


def test_score_balance_match_is_high():
    assert score_match(_pay(400), _inv(1000, paid=600)) == ("high", "Exact amount match with invoice balance")


def test_score_total_match_is_medium():
    assert score_match(_pay(1000), _inv(1000, paid=600))[0] == "medium"


def test_score_partial_is_low():
    assert score_match(_pay(250), _inv(1000, paid=600))[0] == "low"


def test_score_overpayment_has_no_match():
    assert score_match(_pay(1500), _inv(1000)) is None


def test_score_zero_balance_falls_back_to_total_minus_paid():
    # balance_due stored as 0 although nothing was paid
    assert score_match(_pay(1000), _inv(1000, paid=0, balance=0))[0] == "high"


# -------------------------
# Analysis
# -------------------------

def test_analysis_counts_and_ranks(ids, sync, invoices_repo, payments_repo, allocations_repo):
    inv_a = _invoice(invoices_repo, ids, "INV-A", 1000, paid=600, status="partial")
    inv_b = _invoice(invoices_repo, ids, "INV-B", 400)
    _invoice(invoices_repo, ids, "INV-OLD", 400, date="2025-06-01")                # outside window
    _invoice(invoices_repo, ids, "INV-OTHER", 400, customer="cust_b")              # other customer
    _invoice(invoices_repo, ids, "INV-LATER", 400, date="2026-03-01")              # after payment

    allocated = _payment(payments_repo, ids, "PAY-ALLOC", 600)
    allocations_repo.create(payment_id=allocated, invoice_id=inv_a, amount_allocated=600)
    _payment(payments_repo, ids, "PAY-400", 400)
    _payment(payments_repo, ids, "PAY-ANON", 400, customer=None)

    analysis = sync.analyze_payment_sync_status(ids["company"])

    assert analysis.total_payments == 3
    assert analysis.payments_with_allocations == 1
    assert analysis.payments_without_allocations == 2
    assert {p.payment_number for p in analysis.unallocated_payments} == {"PAY-400", "PAY-ANON"}

    ranked = [(m.payment.payment_number, m.invoice.invoice_number, m.confidence) for m in analysis.potential_matches]
    # INV-A balance 400 -> high; INV-B total 400 & balance 400 -> high
    assert ranked == [("PAY-400", "INV-A", "high"), ("PAY-400", "INV-B", "high")] or \
        ranked == [("PAY-400", "INV-B", "high"), ("PAY-400", "INV-A", "high")]
    assert inv_b in {m.invoice.id for m in analysis.potential_matches}

    # header says 600 paid and allocations agree
    assert analysis.invoices_needing_recalculation == []


def test_analysis_flags_headers_out_of_step(ids, sync, invoices_repo):
    _invoice(invoices_repo, ids, "INV-DRIFT", 500, paid=200, status="partial")

    analysis = sync.analyze_payment_sync_status(ids["company"])

    assert [i.invoice_number for i in analysis.invoices_needing_recalculation] == ["INV-DRIFT"]


def test_analysis_sorts_high_before_low(ids, sync, invoices_repo, payments_repo):
    _invoice(invoices_repo, ids, "INV-BIG", 5000)
    _invoice(invoices_repo, ids, "INV-EXACT", 300)
    _payment(payments_repo, ids, "PAY-300", 300)

    matches = sync.analyze_payment_sync_status(ids["company"]).potential_matches

    assert [(m.invoice.invoice_number, m.confidence) for m in matches] == [("INV-EXACT", "high"), ("INV-BIG", "low")]


# -------------------------
# Apply
# -------------------------

def test_synchronize_allocates_and_rolls_header_forward(ids, sync, invoices_repo, payments_repo, allocations_repo):
    inv = _invoice(invoices_repo, ids, "INV-S", 1000)
    p1 = _payment(payments_repo, ids, "PAY-S1", 400)
    p2 = _payment(payments_repo, ids, "PAY-S2", 600)
    header = invoices_repo.get_invoice_by_id(inv)

    result = sync.synchronize_payments([
        PaymentMatch(payments_repo.get(p1), header, "low", "Partial payment amount"),
        PaymentMatch(payments_repo.get(p2), header, "low", "Partial payment amount"),
    ])

    assert result.success is True
    assert result.allocations_created == 2
    assert result.invoices_updated == 2
    assert result.errors == []
    assert [d["payment"] for d in result.details] == ["PAY-S1", "PAY-S2"]

    after = invoices_repo.get_invoice_by_id(inv)
    assert (after.paid_amount, after.balance_due, after.status) == (1000, 0, "paid")
    assert len(allocations_repo.get_allocations_by_invoice_id(inv)) == 2


def test_synchronize_records_failures_and_continues(ids, sync, invoices_repo, payments_repo):
    inv = _invoice(invoices_repo, ids, "INV-OK", 100)
    good = payments_repo.get(_payment(payments_repo, ids, "PAY-OK", 100))
    ghost_invoice = Invoice(id="ghost", company_id=ids["company"], invoice_number="INV-GHOST", total_amount=50)

    result = sync.synchronize_payments([
        PaymentMatch(good, ghost_invoice, "high", ""),
        PaymentMatch(good, invoices_repo.get_invoice_by_id(inv), "high", ""),
    ])

    assert result.allocations_created == 1
    assert result.invoices_updated == 1
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to create allocation for payment PAY-OK")
    assert result.success is True


def test_recalculate_all_rewrites_only_drifted(ids, sync, invoices_repo, payments_repo, allocations_repo):
    ok = _invoice(invoices_repo, ids, "INV-FINE", 100)
    bad = _invoice(invoices_repo, ids, "INV-BAD", 100, paid=100, status="paid")

    out = sync.recalculate_all_invoice_balances(ids["company"])

    assert out.updated == 1
    assert out.errors == []
    assert invoices_repo.get_invoice_by_id(ok).status == "draft"
    assert invoices_repo.get_invoice_by_id(bad).status == "draft"
    assert invoices_repo.get_invoice_by_id(bad).balance_due == 100
