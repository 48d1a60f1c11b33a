from datetime import datetime, timedelta

import pytest

from clinic_admin.extensions import db
from clinic_admin.models import Appointment, BookingRequest
from clinic_admin.utils.dates import UTC, parse_datetime


def book(client, doctor, start_time='2025-06-10T09:00', **extra):
    payload = {
        'user_number': '5511999990000',
        'doctor_id': doctor.id,
        'procedure': 'Limpeza',
        'start_time': start_time,
    }
    payload.update(extra)
    return client.post('/api/admin/agenda', json=payload)


def test_booking_sets_end_from_procedure_duration(client, scheduler, make_doctor, make_user):
    doctor = make_doctor()
    make_user()

    response = book(client, doctor)

    assert response.status_code == 201
    body = response.get_json()
    assert body['status'] == 'pending'
    assert body['event_id'] == 'evt1'
    start = parse_datetime(body['start_time'])
    end = parse_datetime(body['end_time'])
    assert end - start == timedelta(minutes=30)
    # 09:00 in Sao Paulo
    assert start == datetime(2025, 6, 10, 12, 0, tzinfo=UTC)

    appointment = Appointment.query.filter_by(event_id='evt1').one()
    assert appointment.status == 'pending'
    assert appointment.dr_responsible == 'Dra. Ana'
    assert appointment.doctor_id == doctor.id
    assert appointment.summary == 'Consulta Maria Souza'
    assert appointment.description == 'Agendado pelo painel admin'


def test_booking_notifies_doctor_and_schedules_reminder(client, scheduler, make_doctor, make_user,
                                                        messenger, reminders):
    doctor = make_doctor()
    make_user(metadata_={'convenio_tipo': 'Bradesco'})

    response = book(client, doctor, convenio='unimed', description='Primeira consulta')

    assert response.status_code == 201
    number, text = messenger.sent[0]
    assert number == '5511988887777'
    assert 'Paciente: Maria Souza' in text
    assert 'Data: 10/06/2025' in text
    assert 'Horário: 09:00 às 09:30' in text
    assert 'Convênio: Unimed' in text
    assert 'Observações: Primeira consulta' in text

    event_id, patient, start = reminders.scheduled[0]
    assert event_id == 'evt1'
    assert patient == '5511999990000'
    assert start == datetime(2025, 6, 10, 12, 0, tzinfo=UTC)


def test_notification_falls_back_to_patient_insurance(client, scheduler, make_doctor, make_user, messenger):
    doctor = make_doctor()
    make_user(metadata_={'convenio_tipo': 'Bradesco'})

    book(client, doctor)

    assert 'Convênio: Bradesco' in messenger.sent[0][1]


def test_unknown_patient_uses_contact_reference(client, scheduler, make_doctor, calendar, messenger):
    doctor = make_doctor()

    response = book(client, doctor)

    assert response.status_code == 201
    assert calendar.events['evt1']['summary'] == 'Consulta 5511999990000'
    assert 'Convênio: Não informado' in messenger.sent[0][1]


def test_past_start_is_rejected_without_side_effects(client, scheduler, make_doctor, calendar, messenger, reminders):
    doctor = make_doctor()

    response = book(client, doctor, start_time='2025-05-20T09:00')

    assert response.status_code == 400
    assert calendar.created == []
    assert messenger.sent == []
    assert reminders.scheduled == []
    assert Appointment.query.count() == 0


@pytest.mark.parametrize('missing', ['user_number', 'doctor_id', 'procedure', 'start_time'])
def test_missing_fields_are_rejected(client, scheduler, make_doctor, calendar, missing):
    doctor = make_doctor()
    payload = {
        'user_number': '5511999990000',
        'doctor_id': doctor.id,
        'procedure': 'Limpeza',
        'start_time': '2025-06-10T09:00',
    }
    del payload[missing]

    response = client.post('/api/admin/agenda', json=payload)

    assert response.status_code == 400
    assert calendar.created == []


def test_invalid_start_time_is_rejected(client, scheduler, make_doctor, calendar):
    response = book(client, make_doctor(), start_time='amanhã cedo')

    assert response.status_code == 400
    assert calendar.created == []


def test_inactive_doctor_is_not_found_before_any_external_call(client, scheduler, make_doctor, calendar):
    doctor = make_doctor(active=False)

    response = book(client, doctor)

    assert response.status_code == 404
    assert response.get_json()['error'] == 'Doctor not found or inactive'
    assert calendar.created == []


def test_unknown_procedure_is_not_found(client, scheduler, make_doctor, calendar):
    response = book(client, make_doctor(), procedure='limpeza')

    assert response.status_code == 404
    assert calendar.created == []


def test_calendar_failure_fails_booking_and_persists_nothing(client, scheduler, make_doctor, calendar, reminders):
    calendar.fail_create = True

    response = book(client, make_doctor())

    assert response.status_code == 500
    assert Appointment.query.count() == 0
    assert reminders.scheduled == []


def test_failed_insert_removes_the_calendar_event(client, scheduler, make_doctor, calendar):
    doctor = make_doctor()
    # Row already holding the event id the calendar will hand out
    db.session.add(Appointment(
        user_number='5511000000000',
        event_id='evt1',
        dr_responsible='Dr. Bruno',
        start_time=datetime(2025, 6, 20, 12, 0, tzinfo=UTC),
        end_time=datetime(2025, 6, 20, 12, 30, tzinfo=UTC),
    ))
    db.session.commit()

    response = book(client, doctor)

    assert response.status_code == 500
    assert calendar.deleted == [('ana@clinic.test', 'evt1')]
    assert calendar.events == {}
    assert Appointment.query.count() == 1


def test_notification_and_reminder_failures_do_not_fail_booking(client, scheduler, make_doctor,
                                                                 messenger, reminders):
    messenger.fail = True
    reminders.fail = True

    response = book(client, make_doctor())

    assert response.status_code == 201
    assert Appointment.query.count() == 1


def test_insurance_alias_is_accepted(client, scheduler, make_doctor, messenger):
    book(client, make_doctor(), insurance='amil')

    assert 'Convênio: Amil' in messenger.sent[0][1]


@pytest.mark.parametrize('field, value', [
    ('convenio', 123),
    ('insurance', ['unimed']),
    ('description', {'texto': 'dor'}),
])
def test_non_text_optional_fields_are_rejected_before_side_effects(client, scheduler, make_doctor, calendar,
                                                                   reminders, field, value):
    response = book(client, make_doctor(), **{field: value})

    assert response.status_code == 400
    assert calendar.created == []
    assert reminders.scheduled == []
    assert Appointment.query.count() == 0


def test_notification_formatting_failure_does_not_fail_booking(client, scheduler, make_doctor, messenger,
                                                               reminders, monkeypatch):
    def broken(self, *args, **kwargs):
        raise TypeError('bad template')
    monkeypatch.setattr(BookingRequest, 'doctor_notification', broken)

    response = book(client, make_doctor())

    assert response.status_code == 201
    assert messenger.sent == []
    assert [event_id for event_id, _, _ in reminders.scheduled] == ['evt1']


def test_doctor_without_number_is_not_notified(client, scheduler, make_doctor, messenger):
    response = book(client, make_doctor(doctor_number=None))

    assert response.status_code == 201
    assert messenger.sent == []


def test_advisory_check_reports_overlap_but_booking_does_not_block(client, scheduler, make_doctor):
    doctor = make_doctor()
    first = book(client, doctor)
    assert first.get_json()['end_time'] == '2025-06-10T12:30:00+00:00'

    check = client.get('/api/admin/agenda/availability', query_string={
        'calendar_id': doctor.calendar_id,
        'start': '2025-06-10T09:15',
        'end': '2025-06-10T09:45',
    })
    assert check.status_code == 200
    body = check.get_json()
    assert body['available'] is False
    assert body['conflict']['id'] == 'evt1'

    second = book(client, doctor, start_time='2025-06-10T09:15')
    assert second.status_code == 201
    assert Appointment.query.count() == 2


def test_availability_requires_parameters(client, scheduler):
    response = client.get('/api/admin/agenda/availability', query_string={'calendar_id': 'x'})
    assert response.status_code == 400


def test_free_slot_is_available(client, scheduler, make_doctor):
    doctor = make_doctor()
    book(client, doctor)

    response = client.get('/api/admin/agenda/availability', query_string={
        'calendar_id': doctor.calendar_id,
        'start': '2025-06-10T09:30',
        'end': '2025-06-10T10:00',
    })

    assert response.get_json() == {'available': True}


def test_cancel_removes_row_event_and_reminder(client, scheduler, make_doctor, calendar, reminders):
    book(client, make_doctor())

    response = client.delete('/api/admin/agenda/evt1')

    assert response.status_code == 200
    assert response.get_json() == {'status': 'cancelado', 'event_id': 'evt1'}
    assert Appointment.query.count() == 0
    assert calendar.deleted == [('ana@clinic.test', 'evt1')]
    assert reminders.unscheduled == ['evt1']


def test_cancel_succeeds_when_calendar_event_is_already_gone(client, scheduler, make_doctor, calendar):
    book(client, make_doctor())
    calendar.events.clear()

    response = client.delete('/api/admin/agenda/evt1')

    assert response.status_code == 200
    assert Appointment.query.count() == 0


def test_cancel_tolerates_calendar_errors(client, scheduler, make_doctor, calendar):
    book(client, make_doctor())
    calendar.fail_delete = True

    response = client.delete('/api/admin/agenda/evt1')

    assert response.status_code == 200
    assert Appointment.query.count() == 0


def test_cancel_resolves_calendar_by_doctor_name_for_legacy_rows(client, scheduler, make_doctor, calendar):
    make_doctor()
    db.session.add(Appointment(
        user_number='5511999990000',
        event_id='legacy1',
        dr_responsible='Dra. Ana',
        procedure='Limpeza',
        start_time=datetime(2025, 6, 12, 12, 0, tzinfo=UTC),
        end_time=datetime(2025, 6, 12, 12, 30, tzinfo=UTC),
    ))
    db.session.commit()

    response = client.delete('/api/admin/agenda/legacy1')

    assert response.status_code == 200
    assert calendar.deleted == [('ana@clinic.test', 'legacy1')]


def test_cancel_unknown_event_leaves_store_untouched(client, scheduler, make_doctor, calendar):
    book(client, make_doctor())

    response = client.delete('/api/admin/agenda/nope')

    assert response.status_code == 404
    assert Appointment.query.count() == 1
    assert calendar.deleted == []


def test_list_agenda_for_local_days(client, scheduler, make_doctor, make_user):
    doctor = make_doctor()
    make_user(metadata_={'convenio_tipo': 'unimed'})
    book(client, doctor, start_time='2025-06-10T20:30')
    book(client, doctor, start_time='2025-06-10T08:00')
    book(client, doctor, start_time='2025-06-11T08:00')

    response = client.get('/api/admin/agenda', query_string={'start': '2025-06-10', 'end': '2025-06-10'})

    assert response.status_code == 200
    items = response.get_json()
    assert [item['event_id'] for item in items] == ['evt2', 'evt1']
    assert items[0]['patient_name'] == 'Maria Souza'
    assert items[0]['convenio'] == 'unimed'


def test_list_agenda_filters_by_doctor(client, scheduler, make_doctor):
    book(client, make_doctor())
    other = make_doctor(name='Dr. Bruno', calendar_id='bruno@clinic.test')
    book(client, other)

    response = client.get('/api/admin/agenda', query_string={
        'start': '2025-06-10', 'end': '2025-06-10', 'doctor': 'Dr. Bruno',
    })

    items = response.get_json()
    assert len(items) == 1
    assert items[0]['dr_responsible'] == 'Dr. Bruno'
    assert items[0]['patient_name'] == '5511999990000'


def test_list_agenda_requires_period(client, scheduler):
    response = client.get('/api/admin/agenda', query_string={'start': '2025-06-10'})
    assert response.status_code == 400
