# clinic_admin/utils/dates.py
"""
Timezone helpers shared by the booking flow, reports and serializers.

Timestamps are stored in UTC. The clinic timezone is only used to interpret
naive input, to build reporting windows and to format patient-facing text.
"""
from datetime import datetime, timedelta, time

import pytz
from dateutil import parser
from flask import current_app
from sqlalchemy import String, func, literal, literal_column
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement

UTC = pytz.UTC


def clinic_tz():
    """Timezone the clinic operates in"""
    return pytz.timezone(current_app.config.get('TIMEZONE', 'America/Sao_Paulo'))


def now_utc():
    return datetime.now(UTC)


def as_utc(value):
    """Attach UTC to naive values read back from the database"""
    if value is None:
        return None
    if value.tzinfo is None:
        return UTC.localize(value)
    return value.astimezone(UTC)


def parse_datetime(value):
    """
    Parse an ISO-8601 timestamp. Naive values are read as clinic local time.
    Raises ValueError on anything unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValueError('empty timestamp')
        parsed = parser.isoparse(value.strip())

    if parsed.tzinfo is None:
        parsed = clinic_tz().localize(parsed)
    return parsed.astimezone(UTC)


def local_day_window(start_date, end_date):
    """UTC bounds of [start_date 00:00, end_date + 1 day 00:00) in clinic time"""
    tz = clinic_tz()
    lower = tz.localize(datetime.combine(start_date, time.min))
    upper = tz.localize(datetime.combine(end_date + timedelta(days=1), time.min))
    return lower.astimezone(UTC), upper.astimezone(UTC)


def to_local(value):
    return as_utc(value).astimezone(clinic_tz())


def isoformat(value):
    """Serialize a stored timestamp, tolerating nulls"""
    if value is None:
        return None
    return as_utc(value).isoformat()


class local_date(FunctionElement):
    """
    Clinic-local calendar day ('YYYY-MM-DD') of a UTC timestamp column, so
    daily reports can GROUP BY in the database.

    PostgreSQL converts with the zone name. SQLite has no zone database and
    shifts by the offset in force at ``reference`` instead.
    """
    type = String()
    name = 'local_date'
    inherit_cache = True

    def __init__(self, column, reference=None):
        tz = clinic_tz()
        moment = as_utc(reference or now_utc()).replace(tzinfo=None)
        minutes = int(tz.utcoffset(moment).total_seconds() // 60)
        super().__init__(column, literal(tz.zone), literal(f'{minutes:+d} minutes'))


@compiles(local_date)
def _local_date_postgresql(element, compiler, **kw):
    column, zone, _ = list(element.clauses)
    return compiler.process(func.to_char(func.timezone(zone, column), literal_column("'YYYY-MM-DD'")), **kw)


@compiles(local_date, 'sqlite')
def _local_date_sqlite(element, compiler, **kw):
    column, _, modifier = list(element.clauses)
    return compiler.process(func.date(column, modifier), **kw)
