from datetime import datetime
from types import SimpleNamespace

import pytest

from clinic_admin import create_app
from clinic_admin.config import TestingConfig
from clinic_admin.extensions import db
from clinic_admin.models import Doctor, User
from clinic_admin.utils.dates import UTC
from clinic_admin.utils.exceptions import (
    CalendarEventNotFound,
    CalendarServiceError,
    MessagingServiceError,
    ReminderServiceError,
)

# Everything in the booking tests happens before the 2025-06-10 agenda
FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class FakeCalendar:
    def __init__(self):
        self.events = {}
        self.created = []
        self.deleted = []
        self.fail_create = False
        self.fail_delete = False

    def create_event(self, calendar_id, summary, start, end, description=''):
        if self.fail_create:
            raise CalendarServiceError("calendar unavailable")
        event_id = f'evt{len(self.created) + 1}'
        self.events[event_id] = {'calendar_id': calendar_id, 'summary': summary, 'start': start, 'end': end}
        self.created.append(event_id)
        return {'id': event_id, 'summary': summary, 'start': start.isoformat(), 'end': end.isoformat()}

    def delete_event(self, calendar_id, event_id):
        self.deleted.append((calendar_id, event_id))
        if self.fail_delete:
            raise CalendarServiceError("calendar unavailable")
        if event_id not in self.events:
            raise CalendarEventNotFound(f"{event_id} not found")
        del self.events[event_id]

    def check_availability(self, calendar_id, start, end):
        for event_id, event in self.events.items():
            if event['calendar_id'] == calendar_id and event['start'] < end and start < event['end']:
                return {'available': False, 'conflict': {
                    'id': event_id,
                    'summary': event['summary'],
                    'start': event['start'].isoformat(),
                    'end': event['end'].isoformat(),
                }}
        return {'available': True}


class FakeMessenger:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send_text(self, number, text):
        if self.fail:
            raise MessagingServiceError("evolution down")
        self.sent.append((number, text))


class FakeReminders:
    def __init__(self):
        self.scheduled = []
        self.unscheduled = []
        self.fail = False

    def schedule(self, event_id, number, start_time):
        if self.fail:
            raise ReminderServiceError("scheduler down")
        self.scheduled.append((event_id, number, start_time))

    def unschedule(self, event_id):
        if self.fail:
            raise ReminderServiceError("scheduler down")
        self.unscheduled.append(event_id)


class FakeEmbeddings:
    """Stands in for the OpenAI client's embeddings resource"""

    def __init__(self):
        self.calls = []
        self.error = None

    def create(self, model, input):
        if self.error:
            raise self.error
        self.calls.append(input)
        return SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2, 0.3])])


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        FILES_BASE_DIR = str(tmp_path / 'files')

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def reminders():
    return FakeReminders()


@pytest.fixture
def scheduler(monkeypatch, calendar, messenger, reminders):
    from clinic_admin.routes import agenda
    from clinic_admin.services.booking_service import AppointmentScheduler

    instance = AppointmentScheduler(calendar, messenger, reminders, now=lambda: FIXED_NOW)
    monkeypatch.setattr(agenda, 'scheduler', instance)
    return instance


@pytest.fixture
def doctor_payload():
    return {
        'name': 'Dra. Ana',
        'doctor_number': '5511988887777',
        'calendar_id': 'ana@clinic.test',
        'active': True,
        'procedures': [
            {'nome': 'Limpeza', 'duracao_minutos': 30, 'preco': 150},
            {'nome': 'Canal', 'duracao_minutos': 90, 'preco': 'definir_com_doutor'},
        ],
        'available_weekdays': [1, 2, 3, 4, 5],
        'working_hours': {
            'manha': {'inicio': '08:00', 'fim': '12:00'},
            'tarde': {'inicio': '14:00', 'fim': '18:00'},
        },
        'insurances': [' Unimed ', 'AMIL', ''],
    }


@pytest.fixture
def make_doctor(app, doctor_payload):
    def _make(**overrides):
        payload = dict(doctor_payload, **overrides)
        doctor = Doctor()
        doctor.apply(payload)
        db.session.add(doctor)
        db.session.commit()
        return doctor
    return _make


@pytest.fixture
def make_user(app):
    def _make(phone_number='5511999990000', complete_name='Maria Souza', **fields):
        user = User(phone_number=phone_number, complete_name=complete_name, **fields)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()
