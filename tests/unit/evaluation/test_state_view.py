"""Unit tests for block journal state views."""

from __future__ import annotations

from decimal import Decimal

from evaluation.state_view import BlockJournal, JournalStateView, StateDelta


class _BaseView:
    def get_state(self, address: str) -> object | None:
        return {"origin": "base"} if address == "order:o-1" else None

    def get_balance(self, address: str, currency: str) -> Decimal:
        return Decimal("100")


def test_views_stay_pinned_to_their_version() -> None:
    """Earlier views never observe writes applied after them."""
    journal = BlockJournal()
    before = JournalStateView(_BaseView(), journal, journal.version)
    first = journal.apply(StateDelta(states={"avatar-a": {"level": 1}}))
    second = journal.apply(
        StateDelta(
            states={"avatar-a": {"level": 2}},
            balances={("agent-a", "NCG"): Decimal("90")},
        )
    )

    after_first = JournalStateView(_BaseView(), journal, first)
    after_second = JournalStateView(_BaseView(), journal, second)

    assert (
        before.get_state("avatar-a") is None
        and after_first.get_state("avatar-a") == {"level": 1}
        and after_first.get_balance("agent-a", "NCG") == Decimal("100")
        and after_second.get_state("avatar-a") == {"level": 2}
        and after_second.get_balance("agent-a", "NCG") == Decimal("90")
    )


def test_deleted_state_shadows_base() -> None:
    """A key written as None reads as removed, not as the base value."""
    journal = BlockJournal()
    version = journal.apply(StateDelta(states={"order:o-1": None}))

    assert (
        JournalStateView(_BaseView(), journal, version).get_state("order:o-1") is None
        and JournalStateView(_BaseView(), journal, 0).get_state("order:o-1") == {"origin": "base"}
    )


def test_empty_delta_keeps_version() -> None:
    """Failed actions add nothing to the journal."""
    journal = BlockJournal()
    journal.apply(StateDelta(states={"avatar-a": {}}))

    assert journal.apply(StateDelta()) == 1 and journal.version == 1
