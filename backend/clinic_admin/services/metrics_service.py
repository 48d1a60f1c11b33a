# clinic_admin/services/metrics_service.py
"""
Operational metrics for the dashboard
"""
import logging
from collections import Counter, OrderedDict
from datetime import datetime, time
from typing import Dict, List

from sqlalchemy import and_, func

from clinic_admin.extensions import db
from clinic_admin.models import Appointment, ChatMessage, Doctor, User
from clinic_admin.models.conversation import SENDERS
from clinic_admin.utils.dates import clinic_tz, local_date, local_day_window, now_utc, to_local, UTC

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                       'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')
UNKNOWN_PROCEDURE = 'Não informado'
OTHER_PROCEDURES = 'Outros'
TOP_PROCEDURES = 6


def month_label(year: int, month: int) -> str:
    return f'{MONTH_ABBREVIATIONS[month - 1]}/{year % 100:02d}'


def appointments_by_month(now=None) -> List[Dict]:
    """Appointment counts for the current month and the five before it"""
    today = to_local(now or now_utc()).date()
    year, month = today.year, today.month - 5
    if month < 1:
        year, month = year - 1, month + 12

    first_day = clinic_tz().localize(datetime.combine(today.replace(year=year, month=month, day=1), time.min))
    starts = db.session.query(Appointment.start_time) \
        .filter(Appointment.start_time >= first_day.astimezone(UTC)).all()

    counts = Counter()
    for (start_time,) in starts:
        local = to_local(start_time)
        counts[(local.year, local.month)] += 1

    return [{
        'mes': f'{year_}-{month_:02d}',
        'mes_label': month_label(year_, month_),
        'total': total,
    } for (year_, month_), total in sorted(counts.items())]


class MetricsReport:
    """Counts over [start, end + 1 day) in clinic time"""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        self.lower, self.upper = local_day_window(start, end)

    @property
    def period(self) -> Dict:
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}

    def _messages(self):
        return ChatMessage.query.filter(
            ChatMessage.created_at >= self.lower,
            ChatMessage.created_at < self.upper,
        )

    def _appointments(self):
        return Appointment.query.filter(
            Appointment.start_time >= self.lower,
            Appointment.start_time < self.upper,
        )

    def summary(self) -> Dict:
        total_messages = self._messages().count()
        sessions = self._messages().with_entities(
            func.count(func.distinct(ChatMessage.session_id))
        ).scalar() or 0
        total_users = User.query.filter(
            User.created_at >= self.lower,
            User.created_at < self.upper,
        ).count()

        return {
            'total_messages': total_messages,
            'total_users': total_users,
            'total_appointments': self._appointments().count(),
            'avg_messages_per_conversation': round(total_messages / sessions, 1) if sessions else 0,
            'period': self.period,
        }

    def messages_by_day(self) -> List[Dict]:
        day = local_date(ChatMessage.created_at, self.lower).label('dia')
        rows = self._messages().with_entities(day, ChatMessage.sender, func.count(ChatMessage.id)) \
            .group_by(day, ChatMessage.sender).order_by(day.asc()).all()

        days = OrderedDict()
        for dia, sender, total in rows:
            bucket = days.setdefault(dia, {'dia': dia, 'user': 0, 'ai': 0, 'human': 0})
            if sender in SENDERS:
                bucket[sender] += int(total)
        return list(days.values())

    def doctors_ranking(self) -> List[Dict]:
        total = func.count(Appointment.id)
        rows = db.session.query(Doctor.name, Doctor.active, total.label('total_agendamentos')) \
            .outerjoin(Appointment, and_(
                Appointment.dr_responsible == Doctor.name,
                Appointment.start_time >= self.lower,
                Appointment.start_time < self.upper,
            )) \
            .group_by(Doctor.name, Doctor.active) \
            .order_by(total.desc(), Doctor.name.asc()).all()

        return [{
            'name': row.name,
            'active': bool(row.active),
            'total_agendamentos': int(row.total_agendamentos),
        } for row in rows]

    def procedures_distribution(self) -> List[Dict]:
        counts = Counter()
        for (procedure,) in self._appointments().with_entities(Appointment.procedure).all():
            name = (procedure or '').strip()
            counts[name.lower().title() if name else UNKNOWN_PROCEDURE] += 1

        rows = [{'procedure': name, 'total': total}
                for name, total in sorted(counts.items(), key=lambda item: (-item[1], item[0]))]
        if len(rows) <= TOP_PROCEDURES:
            return rows

        others = sum(row['total'] for row in rows[TOP_PROCEDURES:])
        return rows[:TOP_PROCEDURES] + [{'procedure': OTHER_PROCEDURES, 'total': others}]
