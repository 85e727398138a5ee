"""
Tests for the settlement planner.
"""
from datetime import date
from decimal import Decimal
from tripledger.schemas.expense import ExpenseRead, SplitRead
from tripledger.schemas.participant import ParticipantRead
from tripledger.services.settlement_service import (
    daily_settlement_states,
    name_resolver,
    plan_settlements,
)

NAMES = {"a": "Ana", "b": "Ben", "c": "Cy", "d": "Dee"}


def resolve(participant_id):
    return NAMES[participant_id]


def apply(balances, settlements):
    """Balances after executing every transfer."""
    result = dict(balances)
    for s in settlements:
        result[s.from_participant_id] += s.amount
        result[s.to_participant_id] -= s.amount
    return result


def test_debtors_pay_largest_creditor():
    balances = {"a": Decimal("60"), "b": Decimal("-40"), "c": Decimal("-20")}

    settlements = plan_settlements(balances, resolve)

    assert [(s.from_name, s.to_name, s.amount) for s in settlements] == [
        ("Ben", "Ana", Decimal("40")),
        ("Cy", "Ana", Decimal("20")),
    ]
    assert sum(s.amount for s in settlements) == Decimal("60")
    assert all(v == 0 for v in apply(balances, settlements).values())


def test_settled_balances_need_no_transfers():
    balances = {"a": Decimal("0.01"), "b": Decimal("-0.005"), "c": Decimal("0")}
    assert plan_settlements(balances, resolve) == []


def test_multiple_creditors_and_debtors():
    balances = {
        "a": Decimal("-55.50"),
        "b": Decimal("70.25"),
        "c": Decimal("15.25"),
        "d": Decimal("-30"),
    }

    settlements = plan_settlements(balances, resolve)

    assert [(s.from_participant_id, s.to_participant_id, s.amount) for s in settlements] == [
        ("a", "b", Decimal("55.50")),
        ("d", "b", Decimal("14.75")),
        ("d", "c", Decimal("15.25")),
    ]
    assert all(v == 0 for v in apply(balances, settlements).values())


def test_ties_keep_input_order():
    balances = {"a": Decimal("-10"), "b": Decimal("-10"), "c": Decimal("20")}

    settlements = plan_settlements(balances, resolve)

    assert [s.from_participant_id for s in settlements] == ["a", "b"]


def test_input_balances_are_not_mutated():
    balances = {"a": Decimal("10"), "b": Decimal("-10")}
    plan_settlements(balances, resolve)
    assert balances == {"a": Decimal("10"), "b": Decimal("-10")}


def test_name_resolver_falls_back_to_unknown():
    resolver = name_resolver([ParticipantRead(id="a", name="Ana"), ParticipantRead(id="b", email="ben@example.com")])
    assert resolver("a") == "Ana"
    assert resolver("b") == "ben@example.com"
    assert resolver("zzz") == "Unknown"


def test_daily_states_run_planner_on_each_prefix():
    participants = [ParticipantRead(id="a", name="Ana"), ParticipantRead(id="b", name="Ben")]
    expenses = [
        ExpenseRead(
            id="e1", title="Taxi", amount=Decimal("40"), payer_id="a", date=date(2024, 5, 1),
            splits=[SplitRead(participant_id="a", amount=Decimal("20")), SplitRead(participant_id="b", amount=Decimal("20"))]
        ),
        ExpenseRead(
            id="e2", title="Settlement", category="Settlement", amount=Decimal("20"), payer_id="b",
            date=date(2024, 5, 2), splits=[SplitRead(participant_id="a", amount=Decimal("20"))]
        ),
    ]

    states = daily_settlement_states(participants, expenses, resolve)

    assert [s.date for s in states] == [date(2024, 5, 1), date(2024, 5, 2)]
    assert [(t.from_name, t.to_name, t.amount) for t in states[0].settlements] == [("Ben", "Ana", Decimal("20"))]
    assert [b.participant_id for b in states[0].balances] == ["a", "b"]
    assert states[1].settlements == []
    assert states[1].balances == []
