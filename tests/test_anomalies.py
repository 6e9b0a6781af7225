"""Overstay anomaly sweep tests."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.models.custody import Anomaly, CustodySession
from custody_gate.models.holder import Holder
from custody_gate.models.item import Item
from custody_gate.models.operator import Operator
from custody_gate.services import anomalies, ledger

NOW = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


async def _open_session(
    session: AsyncSession, operator_id: int, *, item_id: int, opened_at: datetime
) -> int:
    """Persist an item, a holder and an open custody session; return its id."""
    session.add(
        Holder(
            id=item_id,
            document=f"DOC{item_id}",
            first_name="Luis",
            last_name="Pardo",
        )
    )
    session.add(Item(id=item_id, serial_number=f"SN-{item_id:04d}", label="HP"))
    await session.flush()
    custody_session = await ledger.open_session(
        session,
        item_id=item_id,
        holder_id=item_id,
        operator_id=operator_id,
        now=opened_at,
    )
    await session.commit()
    return custody_session.id


async def _anomalies(session: AsyncSession) -> list[Anomaly]:
    result = await session.execute(select(Anomaly).order_by(Anomaly.id))
    return list(result.scalars().all())


class TestSweep:
    """Flagging of sessions open past the threshold."""

    @pytest.mark.asyncio
    async def test_flags_overstay_once(
        self, db_session: AsyncSession, operator: Operator
    ) -> None:
        """Flag a nine-hour session and skip it on the next sweep.

        Parameters
        ----------
        db_session : AsyncSession
            Test database session.
        operator : Operator
            Operator running the sweep.

        Returns
        -------
        None
            Asserts single flagging.
        """
        operator_id = operator.id
        session_id = await _open_session(
            db_session, operator_id, item_id=1, opened_at=NOW - timedelta(hours=9)
        )

        first = await anomalies.sweep(db_session, operator_id=operator_id, now=NOW)
        second = await anomalies.sweep(
            db_session, operator_id=operator_id, now=NOW + timedelta(hours=1)
        )

        assert first.flagged_count == 1
        assert first.errors == []
        assert second.flagged_count == 0
        rows = await _anomalies(db_session)
        assert len(rows) == 1
        assert rows[0].session_id == session_id
        assert rows[0].flagged_by_id == operator_id
        assert not rows[0].resolved
        assert "9.0 hours" in rows[0].description

    @pytest.mark.asyncio
    async def test_threshold_is_strict(
        self, db_session: AsyncSession, operator: Operator
    ) -> None:
        """Leave sessions at or under the threshold alone.

        Parameters
        ----------
        db_session : AsyncSession
            Test database session.
        operator : Operator
            Operator running the sweep.

        Returns
        -------
        None
            Asserts boundary handling.
        """
        operator_id = operator.id
        await _open_session(
            db_session, operator_id, item_id=1, opened_at=NOW - timedelta(hours=8)
        )
        await _open_session(
            db_session, operator_id, item_id=2, opened_at=NOW - timedelta(hours=2)
        )

        report = await anomalies.sweep(db_session, operator_id=operator_id, now=NOW)

        assert report.flagged_count == 0
        assert await _anomalies(db_session) == []

    @pytest.mark.asyncio
    async def test_custom_threshold(
        self, db_session: AsyncSession, operator: Operator
    ) -> None:
        """Honor a caller-supplied threshold.

        Parameters
        ----------
        db_session : AsyncSession
            Test database session.
        operator : Operator
            Operator running the sweep.

        Returns
        -------
        None
            Asserts threshold override.
        """
        operator_id = operator.id
        await _open_session(
            db_session, operator_id, item_id=1, opened_at=NOW - timedelta(hours=3)
        )

        report = await anomalies.sweep(
            db_session, operator_id=operator_id, threshold_hours=2.5, now=NOW
        )

        assert report.flagged_count == 1

    @pytest.mark.asyncio
    async def test_sweep_never_closes_sessions(
        self, db_session: AsyncSession, operator: Operator
    ) -> None:
        """Keep flagged sessions open.

        Parameters
        ----------
        db_session : AsyncSession
            Test database session.
        operator : Operator
            Operator running the sweep.

        Returns
        -------
        None
            Asserts sessions are untouched.
        """
        operator_id = operator.id
        session_id = await _open_session(
            db_session, operator_id, item_id=1, opened_at=NOW - timedelta(hours=12)
        )

        await anomalies.sweep(db_session, operator_id=operator_id, now=NOW)

        custody_session = await db_session.get(CustodySession, session_id)
        assert custody_session is not None
        assert custody_session.closed_at is None
        assert await ledger.count_open_sessions(db_session) == 1

    @pytest.mark.asyncio
    async def test_failed_flag_does_not_stop_sweep(
        self, db_session: AsyncSession, operator: Operator
    ) -> None:
        """Collect a refused insert and keep flagging the other sessions.

        Parameters
        ----------
        db_session : AsyncSession
            Test database session.
        operator : Operator
            Operator running the sweep.

        Returns
        -------
        None
            Asserts error collection and the surviving flag.
        """
        operator_id = operator.id
        kept_id = await _open_session(
            db_session, operator_id, item_id=1, opened_at=NOW - timedelta(hours=10)
        )
        refused_id = await _open_session(
            db_session, operator_id, item_id=2, opened_at=NOW - timedelta(hours=10)
        )
        await db_session.execute(
            text(
                "CREATE TRIGGER refuse_anomaly BEFORE INSERT ON custody_anomalies "
                f"WHEN NEW.session_id = {refused_id} "
                "BEGIN SELECT RAISE(ABORT, 'anomaly refused'); END"
            )
        )
        await db_session.commit()

        report = await anomalies.sweep(db_session, operator_id=operator_id, now=NOW)

        assert report.flagged_count == 1
        assert report.errors == [f"Could not flag custody session {refused_id}"]
        rows = await _anomalies(db_session)
        assert [row.session_id for row in rows] == [kept_id]

    @pytest.mark.asyncio
    async def test_closed_session_anomaly_is_resolved(
        self, db_session: AsyncSession, operator: Operator
    ) -> None:
        """Resolve an open anomaly once its session has closed.

        Parameters
        ----------
        db_session : AsyncSession
            Test database session.
        operator : Operator
            Operator running the sweep.

        Returns
        -------
        None
            Asserts implicit resolution.
        """
        operator_id = operator.id
        session_id = await _open_session(
            db_session, operator_id, item_id=1, opened_at=NOW - timedelta(hours=9)
        )
        await anomalies.sweep(db_session, operator_id=operator_id, now=NOW)

        custody_session = await ledger.get_custody_session(db_session, session_id)
        await ledger.close_session(
            db_session, custody_session, operator_id=operator_id, now=NOW
        )
        await db_session.commit()

        report = await anomalies.sweep(
            db_session, operator_id=operator_id, now=NOW + timedelta(minutes=5)
        )

        assert report.resolved_count == 1
        assert report.flagged_count == 0
        rows = await _anomalies(db_session)
        assert rows[0].resolved
        assert rows[0].resolved_at is not None
        assert await anomalies.list_pending_anomalies(db_session) == []


class TestManualResolution:
    """Administrative resolution of anomalies."""

    @pytest.mark.asyncio
    async def test_resolved_anomaly_allows_new_flag(
        self, db_session: AsyncSession, operator: Operator
    ) -> None:
        """Flag again after a manual resolution if the item is still inside.

        Parameters
        ----------
        db_session : AsyncSession
            Test database session.
        operator : Operator
            Operator running the sweep.

        Returns
        -------
        None
            Asserts resolution and re-flagging.
        """
        operator_id = operator.id
        await _open_session(
            db_session, operator_id, item_id=1, opened_at=NOW - timedelta(hours=9)
        )
        await anomalies.sweep(db_session, operator_id=operator_id, now=NOW)
        pending = await anomalies.list_pending_anomalies(db_session)
        assert len(pending) == 1

        resolved = await anomalies.resolve_anomaly(db_session, pending[0].id, now=NOW)
        await db_session.commit()
        assert resolved is not None and resolved.resolved

        report = await anomalies.sweep(
            db_session, operator_id=operator_id, now=NOW + timedelta(hours=1)
        )
        assert report.flagged_count == 1
        assert await anomalies.resolve_anomaly(db_session, 999) is None
