from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from order_approval.errors import DataInconsistencyError
from order_approval.models import AuditRecord, CalendarDay, Role
from order_approval.providers import (
    DatabaseCalendar,
    HistoryRoleDirectory,
    StaticRoleDirectory,
    WeekdayCalendar,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def setup_database():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def march_calendar(session):
    """March 2024 with weekends and the 8th off."""
    day = date(2024, 3, 1)
    while day.month == 3:
        working = day.weekday() < 5 and day != date(2024, 3, 8)
        session.add(CalendarDay(day=day, is_working=working))
        day += timedelta(days=1)
    session.commit()
    return DatabaseCalendar(session)


class TestWeekdayCalendar:
    def test_skips_weekend(self):
        calendar = WeekdayCalendar()
        assert calendar.deadline_after(date(2024, 3, 8), 1) == date(2024, 3, 11)
        assert calendar.deadline_after(date(2024, 3, 7), 2) == date(2024, 3, 11)

    def test_within_week(self):
        assert WeekdayCalendar().deadline_after(date(2024, 3, 4), 3) == date(2024, 3, 7)

    def test_skips_holidays(self):
        calendar = WeekdayCalendar(holidays=[date(2024, 3, 11)])
        assert not calendar.is_business_day(date(2024, 3, 11))
        assert calendar.deadline_after(date(2024, 3, 8), 1) == date(2024, 3, 12)

    def test_accepts_datetime_start(self):
        assert WeekdayCalendar().deadline_after(datetime(2024, 3, 8, 17, 30), 1) == date(2024, 3, 11)

    @pytest.mark.parametrize("days", [0, -2])
    def test_non_positive_count_raises(self, days):
        with pytest.raises(DataInconsistencyError):
            WeekdayCalendar().deadline_after(date(2024, 3, 4), days)


class TestDatabaseCalendar:
    def test_counts_only_working_days(self, march_calendar):
        # Thu 7th, then the 8th off and the weekend
        assert march_calendar.deadline_after(date(2024, 3, 6), 2) == date(2024, 3, 11)

    def test_start_day_is_not_counted(self, march_calendar):
        assert march_calendar.deadline_after(date(2024, 3, 4), 1) == date(2024, 3, 5)

    def test_falls_back_to_weekdays_past_end_of_calendar(self, march_calendar):
        assert march_calendar.deadline_after(date(2024, 3, 29), 5) == date(2024, 4, 5)

    def test_fallback_never_lands_on_weekend(self, march_calendar):
        # Friday 29th is the last day in the table
        deadline = march_calendar.deadline_after(date(2024, 3, 29), 1)
        assert deadline == date(2024, 4, 1)
        assert deadline.weekday() < 5

    def test_non_positive_count_raises(self, march_calendar):
        with pytest.raises(DataInconsistencyError):
            march_calendar.deadline_after(date(2024, 3, 4), 0)


class TestStaticRoleDirectory:
    def test_known_and_unknown_names(self):
        directory = StaticRoleDirectory({"tech": Role.technologist})
        assert directory.role_of("tech") == Role.technologist
        assert directory.role_of("someone") is None

    def test_register(self):
        directory = StaticRoleDirectory()
        directory.register("head", Role.head_order_department)
        assert directory.role_of("head") == Role.head_order_department


class TestHistoryRoleDirectory:
    def _record(self, recipient_name, recipient_role, sender_name=None, sender_role=None):
        return AuditRecord(
            order_id=1,
            receipt_date=datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc),
            recipient_role=recipient_role,
            recipient_name=recipient_name,
            sender_role=sender_role,
            sender_name=sender_name,
        )

    def test_role_from_recipient_history(self, session):
        session.add(self._record("tech", Role.technologist, "manager", Role.order_manager))
        session.commit()

        directory = HistoryRoleDirectory(session)
        assert directory.role_of("tech") == Role.technologist

    def test_role_from_sender_history(self, session):
        session.add(self._record("tech", Role.technologist, "manager", Role.order_manager))
        session.commit()

        assert HistoryRoleDirectory(session).role_of("manager") == Role.order_manager

    def test_latest_role_wins(self, session):
        session.add(self._record("ivanov", Role.technologist))
        session.add(self._record("ivanov", Role.head_order_department))
        session.commit()

        assert HistoryRoleDirectory(session).role_of("ivanov") == Role.head_order_department

    def test_unknown_name(self, session):
        assert HistoryRoleDirectory(session).role_of("nobody") is None
