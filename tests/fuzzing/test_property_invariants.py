"""
Hypothesis-based property tests for the pure engines.

Properties checked here:
- Balances are independent of posting order, and a ledger of balanced
  entries has debit-normal balances equal to credit-normal balances
- Any entry whose credit total equals its debit total validates; an
  imbalance of at least 0.001 never does
- Inventory costing conserves value for every method
- IRR recovers the rate of a two-flow investment and discounts a
  conventional project to (near) zero
- GSTR-1 classification is order independent and conserves taxable value
"""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from ledger_engines.balances import compute_balances
from ledger_engines.entry_validator import validate_entry
from ledger_engines.inventory import CostingMethod, InventoryLot, inventory_valuation
from ledger_engines.invoice_classifier import classify_outward_supplies
from ledger_engines.time_value import irr, npv
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.ledger import EntryLine, LedgerPosting
from ledger_kernel.domain.polarity import AccountPolarity, AccountType
from tests.builders import REGISTERED_GSTIN, inter_state_item, intra_state_item, sales_invoice

ACCOUNTS = {
    "cash": Account("cash", "1000", "Cash", AccountType.ASSET),
    "payables": Account("payables", "2000", "Payables", AccountType.LIABILITY),
    "capital": Account("capital", "3000", "Capital", AccountType.EQUITY),
    "sales": Account("sales", "4000", "Sales", AccountType.INCOME),
    "rent": Account("rent", "5000", "Rent", AccountType.EXPENSE),
}

T0 = datetime(2024, 4, 1, tzinfo=UTC)
FY_START = date(2024, 4, 1)


# =============================================================================
# Strategies
# =============================================================================


money_amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("999999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


@composite
def balanced_postings(draw):
    """Postings of 1-15 two-line entries, each debiting one account and crediting another."""
    postings = []
    for index in range(draw(st.integers(min_value=1, max_value=15))):
        debit_account, credit_account = draw(
            st.lists(st.sampled_from(sorted(ACCOUNTS)), min_size=2, max_size=2, unique=True),
        )
        amount = draw(money_amounts)
        day = FY_START + timedelta(days=draw(st.integers(min_value=0, max_value=90)))
        created_at = T0 + timedelta(minutes=index)
        entry_id = f"e{index}"
        postings.append(LedgerPosting(
            entry_id=entry_id, account_id=debit_account, entry_date=day,
            created_at=created_at, sequence=0, debit=amount,
        ))
        postings.append(LedgerPosting(
            entry_id=entry_id, account_id=credit_account, entry_date=day,
            created_at=created_at, sequence=1, credit=amount,
        ))
    return postings


@composite
def inventory_lots(draw):
    count = draw(st.integers(min_value=1, max_value=8))
    return tuple(
        InventoryLot(
            quantity=Decimal(draw(st.integers(min_value=1, max_value=500))),
            unit_cost=draw(st.decimals(min_value=Decimal("0.01"), max_value=Decimal("999.99"), places=2)),
            lot_id=f"L{index}",
        )
        for index in range(count)
    )


@composite
def outward_invoices(draw):
    """Regular sales invoices to registered and unregistered parties."""
    invoices = []
    for index in range(draw(st.integers(min_value=1, max_value=12))):
        intra = draw(st.booleans())
        make_item = intra_state_item if intra else inter_state_item
        items = [
            make_item(
                str(draw(money_amounts)),
                rate=draw(st.sampled_from(["5", "12", "18", "28"])),
                hsn=draw(st.sampled_from(["8471", "9983", None])),
            )
            for _ in range(draw(st.integers(min_value=1, max_value=3)))
        ]
        invoices.append(sales_invoice(
            str(index),
            *items,
            gstin=draw(st.sampled_from([REGISTERED_GSTIN, None])),
            place_of_supply="29" if intra else "27",
        ))
    return invoices


# =============================================================================
# Balances
# =============================================================================


class TestBalanceProperties:
    """Order independence and double-entry equality of balances."""

    @given(data=st.data(), postings=balanced_postings())
    @settings(max_examples=60, deadline=None)
    def test_balances_independent_of_order(self, data, postings):
        shuffled = data.draw(st.permutations(postings))
        as_of = date(2024, 6, 30)
        original = compute_balances(ACCOUNTS, postings, as_of)
        reordered = compute_balances(ACCOUNTS, shuffled, as_of)
        for account_id in ACCOUNTS:
            assert original.balance_of(account_id) == reordered.balance_of(account_id)

    @given(postings=balanced_postings())
    @settings(max_examples=60, deadline=None)
    def test_debit_normal_equals_credit_normal(self, postings):
        result = compute_balances(ACCOUNTS, postings, date(2024, 6, 30))
        debit_side = sum(
            result.balance_of(a.account_id) for a in ACCOUNTS.values()
            if AccountPolarity.is_debit_normal(a.account_type)
        )
        credit_side = sum(
            result.balance_of(a.account_id) for a in ACCOUNTS.values()
            if not AccountPolarity.is_debit_normal(a.account_type)
        )
        assert debit_side == credit_side


# =============================================================================
# Entry validation
# =============================================================================


class TestValidatorProperties:
    """Balance rule of the double-entry validator."""

    @given(amounts=st.lists(money_amounts, min_size=1, max_size=10))
    @settings(max_examples=100, deadline=None)
    def test_matching_credit_validates(self, amounts):
        lines = [EntryLine("rent", debit=amount) for amount in amounts]
        lines.append(EntryLine("cash", credit=sum(amounts, Decimal("0"))))
        assert validate_entry(lines).is_valid

    @given(
        amounts=st.lists(money_amounts, min_size=1, max_size=10),
        drift=st.decimals(min_value=Decimal("0.001"), max_value=Decimal("100"), places=3),
    )
    @settings(max_examples=100, deadline=None)
    def test_imbalance_never_validates(self, amounts, drift):
        lines = [EntryLine("rent", debit=amount) for amount in amounts]
        lines.append(EntryLine("cash", credit=sum(amounts, Decimal("0")) + drift))
        result = validate_entry(lines)
        assert not result.is_valid
        assert "UNBALANCED" in {violation.code for violation in result.violations}


# =============================================================================
# Inventory
# =============================================================================


class TestInventoryProperties:
    """Value conservation of inventory costing."""

    @given(
        lots=inventory_lots(),
        sold=st.integers(min_value=0, max_value=5000),
        method=st.sampled_from(list(CostingMethod)),
    )
    @settings(max_examples=100, deadline=None)
    def test_cogs_plus_remaining_is_total(self, lots, sold, method):
        result = inventory_valuation(lots, sold, method)
        total_value = sum((lot.value for lot in lots), Decimal("0")).quantize(Decimal("0.01"))
        assert result.cost_of_goods_sold + result.remaining_value == total_value
        assert result.cost_of_goods_sold >= 0
        assert result.remaining_value >= 0

    @given(lots=inventory_lots(), sold=st.integers(min_value=0, max_value=5000))
    @settings(max_examples=60, deadline=None)
    def test_remaining_quantity(self, lots, sold):
        result = inventory_valuation(lots, sold, CostingMethod.FIFO)
        total_quantity = sum(lot.quantity for lot in lots)
        assert result.remaining_quantity == max(total_quantity - sold, 0)
        assert sum(lot.quantity for lot in result.remaining_lots) == result.remaining_quantity


# =============================================================================
# Time value
# =============================================================================


class TestIrrProperties:
    """IRR as the root of NPV."""

    @given(
        principal=st.integers(min_value=100, max_value=100000),
        rate=st.integers(min_value=0, max_value=50),
    )
    @settings(max_examples=60, deadline=None)
    def test_two_flow_rate_recovered(self, principal, rate):
        r = Decimal(rate) / 100
        flows = [-Decimal(principal), Decimal(principal) * (1 + r)]
        assert irr(flows) == r

    @given(
        principal=st.integers(min_value=100, max_value=100000),
        ratio=st.decimals(min_value=Decimal("0.5"), max_value=Decimal("2"), places=2),
    )
    @settings(max_examples=60, deadline=None)
    def test_npv_at_irr_is_near_zero(self, principal, ratio):
        payment = Decimal(principal) * ratio
        flows = [-Decimal(principal), payment, payment, payment]
        rate = irr(flows, precision=6)
        assert rate is not None
        assert abs(npv(rate, flows)) <= Decimal(principal) * Decimal("0.0001")


# =============================================================================
# GSTR-1 classification
# =============================================================================


class TestClassificationProperties:
    """Determinism and conservation of outward-supply classification."""

    @given(data=st.data(), invoices=outward_invoices())
    @settings(max_examples=40, deadline=None)
    def test_order_independent(self, data, invoices):
        shuffled = data.draw(st.permutations(invoices))
        assert classify_outward_supplies(shuffled) == classify_outward_supplies(invoices)

    @given(invoices=outward_invoices())
    @settings(max_examples=40, deadline=None)
    def test_rerun_is_identical(self, invoices):
        first = classify_outward_supplies(invoices)
        assert classify_outward_supplies(invoices) == first

    @given(invoices=outward_invoices())
    @settings(max_examples=40, deadline=None)
    def test_taxable_value_conserved(self, invoices):
        result = classify_outward_supplies(invoices)
        assert result.total_taxable_value == sum(invoice.taxable_value for invoice in invoices)
        assert result.warnings == ()
        assert sorted(result.included_invoice_ids) == sorted(invoice.invoice_id for invoice in invoices)
